"""
Exception hierarchy for VidQuarry.
"""

from __future__ import annotations

from typing import Optional


class VidQuarryError(Exception):
    """Base exception for all VidQuarry errors."""

    pass


class InvalidInputError(VidQuarryError, ValueError):
    """Raised when caller-supplied input (URL, batch) is unusable."""

    pass


class FetchError(VidQuarryError):
    """Raised when a page cannot be retrieved over HTTP."""

    def __init__(self, url: str, message: str, status: Optional[int] = None) -> None:
        self.url = url
        self.status = status
        self.message = message
        super().__init__(self.__str__())

    def __str__(self) -> str:
        if self.status is not None:
            return f"HTTP error with status code {self.status} for {self.url}: {self.message}"
        return f"Network error for {self.url}: {self.message}"


class ExportError(VidQuarryError):
    """Raised when an analysis cannot be serialized or written."""

    pass
