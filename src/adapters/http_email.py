"""HTTP email adapter targeting a Postmark-compatible REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.core.ports.email import EmailResult

logger = logging.getLogger(__name__)


class HttpEmailAdapter:
    """
    Sends transactional email through `POST {base_url}/email`.

    Implements EmailPort. Transport errors and non-2xx responses are
    reported as failed results; the caller decides what a failure means.
    """

    TOKEN_HEADER = "X-Postmark-Server-Token"

    def __init__(
        self,
        *,
        base_url: str,
        sender: str,
        authorization_token: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._sender = sender
        self._authorization_token = authorization_token
        self._timeout = timeout
        self._client = client

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        payload: dict[str, Any] = {
            "From": self._sender,
            "To": recipient,
            "Subject": subject,
            "HtmlBody": body_html,
            "TextBody": body_text or "",
        }
        headers = {self.TOKEN_HEADER: self._authorization_token}
        url = f"{self._base_url}/email"

        try:
            if self._client is not None:
                response = self._client.post(
                    url, json=payload, headers=headers, timeout=self._timeout
                )
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Email provider rejected message to %s with status %s",
                recipient,
                exc.response.status_code,
            )
            return EmailResult.failed(recipient, f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.warning("Email provider unreachable: %s", exc)
            return EmailResult.failed(recipient, str(exc) or exc.__class__.__name__)

        return EmailResult.success(recipient, message_id=self._message_id(response))

    def _message_id(self, response: httpx.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return None
        if isinstance(data, dict) and data.get("MessageID"):
            return str(data["MessageID"])
        return None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
