"""
Sweep exceptions.

Fatal errors abort the whole run; everything raised inside the per-record
loop is caught by the sweep and counted instead.
"""

from typing import Optional


class SweepError(Exception):
    """Base exception for the sweep module"""
    pass


class SweepFatalError(SweepError):
    """Raised when the run cannot continue (roster or source unavailable)"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RosterFetchError(SweepFatalError):
    """Raised when the client roster cannot be loaded"""
    pass


class SourceFetchError(SweepFatalError):
    """Raised when the Open Data snapshot cannot be fetched"""
    pass


class SweepAlreadyRunningError(SweepError):
    """Raised when another sweep holds the single-flight guard"""
    pass


class AliasCollisionError(SweepError):
    """Raised by the reject policy when two clients share a normalized name"""

    def __init__(self, name: str, existing_client_id: str, new_client_id: str):
        super().__init__(
            f"Name '{name}' maps to both client {existing_client_id} and client {new_client_id}"
        )
        self.name = name
        self.existing_client_id = existing_client_id
        self.new_client_id = new_client_id
