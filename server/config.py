"""
Server configuration loaded from environment variables.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _get_optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


class Config:
    """Server configuration."""

    # Server settings
    HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("SERVER_PORT", "8765"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Game settings
    REQUIRED_PLAYERS: int = int(os.getenv("REQUIRED_PLAYERS", "2"))
    RESHUFFLE_DISCARD: bool = _get_bool("RESHUFFLE_DISCARD", "true")
    DECK_SEED: int | None = _get_optional_int("DECK_SEED")

    # Timeouts (seconds)
    CONNECT_TIMEOUT: float = float(os.getenv("CONNECT_TIMEOUT", "30"))
    PROMPT_TIMEOUT: float = float(os.getenv("PROMPT_TIMEOUT", "120"))


config = Config()
settings = config  # Alias for backward compatibility
