"""Обработка исключений."""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pr_reviewer.core.logging import get_logger

logger = get_logger(__name__)


class ServiceException(HTTPException):
    """Базовое исключение сервиса."""

    def __init__(
        self, error_code: str, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ):
        super().__init__(status_code=http_status, detail={"code": error_code, "message": message})
        self.error_code = error_code
        self.message = message

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class NotFoundException(ServiceException):
    """Ресурс не найден."""

    def __init__(self, resource: str = "resource"):
        super().__init__("NOT_FOUND", f"{resource} not found", status.HTTP_404_NOT_FOUND)


class AlreadyExistsException(ServiceException):
    """Ресурс с таким идентификатором уже существует."""


class TeamExistsException(AlreadyExistsException):
    """Команда уже существует."""

    def __init__(self, team_name: str | None = None):
        message = f"team '{team_name}' already exists" if team_name else "team_name already exists"
        super().__init__("TEAM_EXISTS", message, status.HTTP_400_BAD_REQUEST)


class PRExistsException(AlreadyExistsException):
    """PR уже существует."""

    def __init__(self, pr_id: str | None = None):
        message = f"PR '{pr_id}' already exists" if pr_id else "PR id already exists"
        super().__init__("PR_EXISTS", message, status.HTTP_409_CONFLICT)


class PRMergedException(ServiceException):
    """PR уже в статусе MERGED."""

    def __init__(self):
        super().__init__("PR_MERGED", "cannot reassign on merged PR", status.HTTP_409_CONFLICT)


class ReviewerNotAssignedException(ServiceException):
    """Ревьювер не назначен на PR."""

    def __init__(self):
        super().__init__(
            "NOT_ASSIGNED", "reviewer is not assigned to this PR", status.HTTP_409_CONFLICT
        )


class NoCandidateException(ServiceException):
    """Нет доступных кандидатов для переназначения."""

    def __init__(self):
        super().__init__(
            "NO_CANDIDATE", "no active replacement candidate in team", status.HTTP_409_CONFLICT
        )


async def service_exception_handler(request: Request, exc: ServiceException) -> JSONResponse:
    """Обработчик исключений сервиса."""
    logger.info(
        "service_error",
        path=request.url.path,
        code=exc.error_code,
        message=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Обработчик HTTP исключений."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": exc.detail}},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Обработчик ошибок валидации.
    Возвращает по одной записи на каждое невалидное поле.
    """
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Validation error",
                "details": details,
            }
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Обработчик непредвиденных ошибок."""
    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "INTERNAL_ERROR", "message": "internal server error"}},
    )
