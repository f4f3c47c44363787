"""
Client configuration settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class ClientSettings:
    """Client configuration."""

    # Server connection
    server_host: str = "localhost"
    server_port: int = 8765
    connect_timeout: float = 10.0

    @property
    def server_url(self) -> str:
        return f"ws://{self.server_host}:{self.server_port}"


def load_settings() -> ClientSettings:
    """Load settings from environment variables."""
    return ClientSettings(
        server_host=os.getenv("UNO_SERVER_HOST", "localhost"),
        server_port=int(os.getenv("UNO_SERVER_PORT", "8765")),
        connect_timeout=float(os.getenv("UNO_CONNECT_TIMEOUT", "10.0")),
    )


settings = load_settings()
