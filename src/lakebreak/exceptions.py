"""
Error types raised by the lakebreak pipeline.
"""

from typing import Optional


class LakebreakError(Exception):
    """Base class for all lakebreak errors."""


class SchemaError(LakebreakError, ValueError):
    """Table header does not describe a usable wide-format layout."""


class RequestError(LakebreakError):
    """
    Request-level failure that aborts the whole call.

    Args:
        message: Human-readable error message
        status_code: HTTP-style status code (400 for bad input, 500 for I/O)
        detail: Optional extra context
    """

    def __init__(self, message: str, status_code: int = 400, detail: Optional[object] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail
