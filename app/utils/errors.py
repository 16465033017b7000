from fastapi import FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from .logging import get_logger
from .responses import ResponseBuilder

logger = get_logger()


class NotificationEngineError(Exception):
    """Base exception for notification engine errors."""

    def __init__(self, message: str, error_code: str = "ENGINE_ERROR"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class DatabaseError(NotificationEngineError):
    """Custom exception for database-related errors."""

    def __init__(self, message: str, error_code: str = "DB_ERROR"):
        super().__init__(message, error_code)


class EligibilityQueryError(DatabaseError):
    """Raised when an eligibility selector query fails; aborts the job run."""

    def __init__(self, message: str, error_code: str = "ELIGIBILITY_QUERY_FAILED"):
        super().__init__(message, error_code)


class DeliveryProviderError(NotificationEngineError):
    """Custom exception for push/email delivery provider failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "DELIVERY_ERROR",
        status_code: int | None = None,
    ):
        super().__init__(message, error_code)
        self.status_code = status_code


class PushDeliveryError(DeliveryProviderError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, "PUSH_DELIVERY_FAILED", status_code)


class EmailDeliveryError(DeliveryProviderError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, "EMAIL_DELIVERY_FAILED", status_code)


class WebhookAuthenticationError(NotificationEngineError):
    """Custom exception for webhook shared-secret mismatches."""

    def __init__(
        self,
        message: str = "Invalid webhook authorization",
        error_code: str = "WEBHOOK_UNAUTHORIZED",
    ):
        super().__init__(message, error_code)


class NotFoundError(NotificationEngineError):
    """Custom exception for resource not found errors."""

    def __init__(
        self, message: str = "Resource not found", error_code: str = "NOT_FOUND"
    ):
        super().__init__(message, error_code)


class UnknownJobError(NotFoundError):
    def __init__(self, job_name: str):
        super().__init__(f"Unknown job: {job_name}", "UNKNOWN_JOB")


def setup_error_handlers(app: FastAPI):
    """Setup custom error handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.error(f"Request Validation Error: {exc.errors()}")

        formatted_errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            formatted_errors.append(
                {
                    "field": field_path,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )

        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=formatted_errors,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(WebhookAuthenticationError)
    async def webhook_authentication_exception_handler(
        request: Request, exc: WebhookAuthenticationError
    ):
        logger.warning(f"Webhook Authentication Error: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    @app.exception_handler(NotFoundError)
    async def not_found_exception_handler(request: Request, exc: NotFoundError):
        logger.warning(f"Not Found Error: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_404_NOT_FOUND,
        )

    @app.exception_handler(DatabaseError)
    async def database_exception_handler(request: Request, exc: DatabaseError):
        logger.error(f"Database Error: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy Error: {str(exc)}")

        # Don't expose internal database errors to callers
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(NotificationEngineError)
    async def engine_exception_handler(request: Request, exc: NotificationEngineError):
        logger.error(f"Notification Engine Error: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled Exception: {str(exc)}", exc_info=True)

        return ResponseBuilder.error(
            request=request,
            message=str(exc) or "An unexpected error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
