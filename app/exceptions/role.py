"""Role-related exceptions."""

from .base import BaseAppException


class RoleNotFoundError(BaseAppException):
    """Raised when a role does not exist or is not visible to the caller."""

    def __init__(self, message: str = "Role not found"):
        super().__init__(message=message, status_code=404, error_code="ROLE_NOT_FOUND")


class RolePermissionError(BaseAppException):
    """Raised when the caller may see a role but not perform the operation."""

    def __init__(self, message: str = "You don't have permission to modify this role"):
        super().__init__(message=message, status_code=403, error_code="ROLE_PERMISSION_DENIED")


class RoleShareNotFoundError(BaseAppException):
    """Raised when revoking a share grant that does not exist."""

    def __init__(self, message: str = "Share grant not found"):
        super().__init__(message=message, status_code=404, error_code="ROLE_SHARE_NOT_FOUND")
