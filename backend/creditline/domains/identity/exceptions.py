"""Identity domain exceptions."""

from creditline.core.exceptions import PermissionException


class AuthorizationError(PermissionException):
    """Raised when a credential cannot be turned into a tenant identity."""

    def __init__(self, message: str = "Not authorized"):
        """Initialize with default message."""
        super().__init__(message)
