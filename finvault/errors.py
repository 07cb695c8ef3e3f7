"""
Exception types raised by the access core.

Authorization denials are not exceptions: they surface as ``False`` plus a
CRITICAL audit entry. These errors cover integrity and protocol misuse.
"""


class FinVaultError(ValueError):
    """Base class for access-core errors."""


class DuplicateIdentityError(FinVaultError):
    """An identity with the same id already exists."""


class InvalidAssignmentError(FinVaultError):
    """``assigned_to`` does not reference an existing associate."""


class IdentityInUseError(FinVaultError):
    """The identity is still referenced by assigned customers."""


class NotAuthenticatedError(FinVaultError):
    """An operation needs a logged-in session."""
