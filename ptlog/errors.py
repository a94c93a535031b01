"""
Error taxonomy shared by the repository and the HTTP layer.
"""

from __future__ import annotations

import re

_CREDENTIALS_IN_URL = re.compile(r"(?P<scheme>[a-zA-Z][\w+.-]*://)(?P<user>[^:/@\s]*):[^@/\s]*@")


def mask_credentials(text: str) -> str:
    """Replace passwords embedded in connection URLs with ``***``."""
    return _CREDENTIALS_IN_URL.sub(r"\g<scheme>\g<user>:***@", text)


class PtLogError(Exception):
    """Base class for errors raised by the PT-Log core."""


class NotFoundError(PtLogError):
    """The targeted project or log entry does not exist."""


class PersistenceError(PtLogError):
    """
    The backend rejected or failed an operation.

    The message is masked so connection credentials never leak to callers.
    """

    def __init__(self, message: str):
        super().__init__(mask_credentials(message))


class ConstraintViolationError(PersistenceError):
    """A unique or integrity constraint rejected the write."""


class PoolExhaustedError(PersistenceError):
    """No pooled connection became available within the connection timeout."""


class ConfigurationError(PtLogError):
    """The backend is misconfigured or unreachable at startup."""

    def __init__(self, message: str):
        super().__init__(mask_credentials(message))
