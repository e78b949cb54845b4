from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class ApplicationSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=0, le=65535)
    base_url: str = "http://127.0.0.1:8000"


class DatabaseSettings(BaseModel):
    path: str = "./data/subscriptions.db"
    busy_timeout_seconds: float = Field(default=5.0, gt=0)


class EmailClientSettings(BaseModel):
    kind: Literal["dev", "http"] = "dev"
    base_url: str = "http://localhost"
    sender_email: str = "newsletter@example.com"
    authorization_token: SecretStr = SecretStr("")
    timeout_milliseconds: int = Field(default=10_000, gt=0)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_milliseconds / 1000


class NewsletterSettings(BaseModel):
    site_name: str = "Our Newsletter"


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    email_client: EmailClientSettings = Field(default_factory=EmailClientSettings)
    newsletter: NewsletterSettings = Field(default_factory=NewsletterSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
