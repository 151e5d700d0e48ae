"""
Configuration settings - edit values directly here
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class Settings:
    """Application settings - configure values below"""

    # ===================
    # UTxO RPC endpoint
    # ===================
    u5c_url: str = "http://localhost:50051"  # https:// switches to TLS
    u5c_headers: Optional[Dict[str, str]] = field(default=None)  # e.g., {"dmtr-api-key": "..."}

    # ===================
    # Timeouts (seconds)
    # ===================
    request_timeout: float = 30.0
    confirmation_timeout: float = 120.0

    # Large UTxO sets come back in a single message
    max_message_size: int = 50 * 1024 * 1024


# Global settings instance - import this
settings = Settings()
