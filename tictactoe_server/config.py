"""Runtime configuration read from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"


def _split_origins(value: str) -> list[str]:
    return [o.strip() for o in value.split(",") if o.strip()]


@dataclass
class Settings:
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    oracle_url: str | None = None
    oracle_timeout: float = 15.0
    database_url: str = "sqlite:///./tictactoe.db"
    cors_origins: list[str] = field(default_factory=lambda: _split_origins(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv()
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
            oracle_url=os.getenv("ORACLE_URL") or None,
            oracle_timeout=float(os.getenv("ORACLE_TIMEOUT", "15")),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./tictactoe.db"),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
