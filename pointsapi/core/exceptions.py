from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class AuthenticationError(BaseAPIException):
    """Authentication related errors (invalid signature / token)"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )


class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )


class ValidationError(BaseAPIException):
    """Validation errors (InvalidInput - do not retry)"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )


class InvalidEventError(BaseAPIException):
    """Malformed deposit event - rejected, never retried"""
    def __init__(self, message: str = "Invalid deposit event", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="DEPOSIT_001",
            message=message,
            details=details
        )


class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )


class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[Dict] = None,
        error_code: str = "CONFLICT_001",
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            message=message,
            details=details
        )


class NotFoundOrAlreadySettledError(ConflictError):
    """Position is missing, owned by someone else, or already withdrawn"""
    def __init__(self, position_id: int):
        super().__init__(
            message="Position not found or already withdrawn",
            details={"position_id": position_id},
            error_code="SETTLEMENT_001",
        )


class ServiceUnavailableError(BaseAPIException):
    """Store / transport failures (Unavailable - safe to retry)"""
    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        details: Optional[Dict] = None,
        error_code: str = "STORE_001",
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=error_code,
            message=message,
            details=details
        )


class StoreUnavailableError(ServiceUnavailableError):
    """Database could not be reached while ingesting"""
    def __init__(self, message: str = "Store unavailable", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="STORE_001")


class CommitFailedError(ServiceUnavailableError):
    """Settlement write failed after the ownership check passed"""
    def __init__(self, position_id: int, reason: str = ""):
        super().__init__(
            message="Failed to commit settlement",
            details={"position_id": position_id, "reason": reason},
            error_code="SETTLEMENT_002",
        )


class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )
