"""Error taxonomy for a copy collection run.

Only `ConfigError` and `SerializationError` abort a run. Everything else is
recorded inside the result bundle.
"""

from __future__ import annotations

from typing import Optional


class CopyError(Exception):
    """Base class for podcopy errors."""


class ConfigError(CopyError):
    """No usable cluster configuration/client."""


class SerializationError(CopyError):
    """An error payload or the final bundle could not be encoded."""


class SelectorError(CopyError):
    def __init__(self, selector: str, message: str) -> None:
        super().__init__(message)
        self.selector = selector
        self.message = message


class ExecConnectionError(CopyError):
    """The remote execution channel could not be opened."""


class StreamError(CopyError):
    """The channel opened but the command did not complete successfully.

    Carries whatever output was captured before the failure.
    """

    def __init__(self, message: str, *, stdout: Optional[bytes] = None, stderr: Optional[bytes] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stdout = stdout
        self.stderr = stderr


__all__ = [
    "ConfigError",
    "CopyError",
    "ExecConnectionError",
    "SelectorError",
    "SerializationError",
    "StreamError",
]
