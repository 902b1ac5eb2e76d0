"""
Domain error taxonomy.

Services raise these; `app.core.error_handlers` maps them to HTTP responses.
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class ServiceDeskError(Exception):
    """Base class for every domain error raised by the services."""
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ValidationError(ServiceDeskError):
    """Malformed input to a ledger or form operation."""
    status_code = 422


class NotFoundError(ServiceDeskError):
    status_code = 404


class InsufficientBalanceError(ServiceDeskError):
    """The consumption would take the bank below its floor."""
    status_code = 409

    def __init__(self, available: Decimal, requested: Decimal, floor: Decimal, message: Optional[str] = None):
        self.available = available
        self.requested = requested
        self.floor = floor
        super().__init__(
            message
            or f"Insufficient balance: {available} hours available, {requested} requested (floor {floor})."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "available": str(self.available),
            "requested": str(self.requested),
            "floor": str(self.floor),
        }


class AuthorizationError(ServiceDeskError):
    """Permission check failed."""
    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action.", redirect_to: Optional[str] = None):
        super().__init__(message)
        self.redirect_to = redirect_to

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"detail": self.message}
        if self.redirect_to:
            data["redirect_to"] = self.redirect_to
        return data


class RbacMatrixError(Exception):
    """The RBAC matrix document is inconsistent; raised at load time."""
