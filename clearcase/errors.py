"""
clearcase/errors.py
Exception types. Parse misses are not errors (they return None / empty);
only remote and storage failures raise.
"""


class ClearCaseError(Exception):
    """Base class for clearcase failures."""


class RemoteServiceError(ClearCaseError):
    """Remote organize call failed: network, non-2xx, malformed JSON or ok=false."""

    def __init__(self, message: str, code: str = ''):
        super().__init__(message)
        self.code = code
