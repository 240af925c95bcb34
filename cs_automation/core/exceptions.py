"""Custom HTTP exceptions."""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Exception raised when a resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with id '{identifier}' not found",
        )


class WhatsAppAPIError(HTTPException):
    """Exception raised when WhatsApp API returns an error."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"WhatsApp API error: {detail}",
        )


class UnauthorizedError(HTTPException):
    """Exception raised for missing operator identity."""

    def __init__(self, detail: str = "Missing or invalid tenant identity"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class ForbiddenError(HTTPException):
    """Exception raised when access to a resource is forbidden."""

    def __init__(self, detail: str = "Access to this resource is forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class BadRequestError(HTTPException):
    """Exception raised for bad requests."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class InvalidRuleError(BadRequestError):
    """Raised when an auto-reply rule is missing trigger words or a response."""


class InvalidMessageError(BadRequestError):
    """Raised when a message payload fails validation before any store write."""


class StoreUnavailableError(HTTPException):
    """Exception raised when the conversation store cannot be reached."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Conversation store unavailable: {detail}",
        )
