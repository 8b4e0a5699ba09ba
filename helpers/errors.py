"""
Error taxonomy for the messaging domain.

Services raise these; the HTTP layer maps them to status codes in
register_exception_handlers and the socket layer turns them into "error"
events for the offending connection.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from logger.logger import logger


class MessagingError(Exception):
    """Base class for errors surfaced to callers"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(MessagingError):
    """No credential, or a credential that failed verification"""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class UnauthorizedError(MessagingError):
    """
    Authenticated but not allowed to act on the resource.

    With hide_existence set the error is reported exactly like NotFoundError,
    so callers cannot discover which conversations exist.
    """
    status_code = status.HTTP_403_FORBIDDEN
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Not allowed", hide_existence: bool = False):
        super().__init__(message)
        self.hide_existence = hide_existence
        if hide_existence:
            self.status_code = status.HTTP_404_NOT_FOUND
            self.code = NotFoundError.code


class NotFoundError(MessagingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class InvalidRequestError(MessagingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_REQUEST"


class InternalError(MessagingError):
    pass


CONVERSATION_NOT_FOUND = "Conversation not found or access denied"
MESSAGE_NOT_FOUND = "Message not found"


def register_exception_handlers(app: FastAPI):
    """Attach JSON handlers for domain and validation errors"""

    @app.exception_handler(MessagingError)
    async def messaging_error_handler(request: Request, exc: MessagingError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info(f"Validation error on {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Validation error",
                "code": InvalidRequestError.code,
                "errors": [
                    {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
                    for err in errors
                ],
            },
        )
