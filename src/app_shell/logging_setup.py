import logging

from src.shell.http.request_id import install_request_id_factory

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    """
    Configure root logging with the request id in every line.

    Safe to call more than once. Handlers already on the root logger
    (installed by a server or a test runner) are kept.
    """
    install_request_id_factory()
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
