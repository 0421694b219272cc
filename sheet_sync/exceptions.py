"""
Custom exceptions for the sheet sync layer.

Network and data-shape problems never surface as exceptions from the public
helpers; these are reserved for caller misuse.
"""


class SyncError(Exception):
    """Base class for sheet sync errors."""


class PermissionDenied(SyncError):
    """Raised when the current session lacks a required permission."""

    def __init__(self, permission: str, username: str = ""):
        self.permission = permission
        self.username = username
        who = username or "anonymous"
        super().__init__(f"{who} is missing permission {permission!r}")
