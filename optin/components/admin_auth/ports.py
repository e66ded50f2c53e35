from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


class TokenFactoryPort(Protocol):
    def __call__(self) -> str: ...
