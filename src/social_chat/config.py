from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    CHAT_WS_URL: str = "ws://localhost:8080/ws"
    API_URL: str = "http://localhost:8080/api"

    WS_TOKEN_QUERY_PARAM: str | None = "token"
    WS_HEARTBEAT_SECONDS: float = 30.0
    WS_OPEN_TIMEOUT: float = 10.0

    API_TIMEOUT: float = 10.0

    CREDENTIALS_FILE: str = "~/.social_chat/token.json"

    RECONNECT_ENABLED: bool = False
    RECONNECT_BASE_DELAY: float = 0.5
    RECONNECT_MAX_DELAY: float = 30.0
    RECONNECT_MAX_ATTEMPTS: int = 8
    RECONNECT_JITTER: float = 0.25

    JWT_SECRET: str = "dev-secret"
    JWT_ALGORITHM: str = "HS256"

    HUB_REQUIRE_TOKEN: bool = True
    HUB_SEED_FILE: str | None = None
    HUB_HOST: str = "0.0.0.0"
    HUB_PORT: int = 8080

    CORS_ORIGINS: list[str] = ["*"]

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
