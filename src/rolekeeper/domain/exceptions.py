"""Exceptions raised by role administration and persistence."""


class RoleError(Exception):
    """Base class for all role-related errors."""

    def __init__(self, message: str, role_id: str | None = None):
        self.role_id = role_id
        super().__init__(message)


class ValidationError(RoleError):
    """Raised when role input is blank or malformed."""
    pass


class ConflictError(RoleError):
    """Raised when a role id is already taken or reserved."""
    pass


class ConcurrentModificationError(ConflictError):
    """Raised when a checked write finds the role changed since it was read."""

    def __init__(self, role_id: str, expected_revision: int, actual_revision: int | None):
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Role '{role_id}' was modified concurrently "
            f"(expected revision {expected_revision}, found {actual_revision})",
            role_id=role_id,
        )


class ProtectedRoleError(RoleError):
    """Raised when a mutation targets the protected role."""

    def __init__(self, role_id: str):
        super().__init__(f"Role '{role_id}' is protected and cannot be modified", role_id=role_id)


class DefaultRoleError(RoleError):
    """Raised when deleting the default role."""

    def __init__(self, role_id: str):
        super().__init__(f"Role '{role_id}' is the default role and cannot be deleted", role_id=role_id)


class RoleNotFoundError(RoleError):
    """Raised when a role id does not exist."""

    def __init__(self, role_id: str):
        super().__init__(f"Role '{role_id}' not found", role_id=role_id)


class StoreError(RoleError):
    """Raised when the underlying store fails."""
    pass
