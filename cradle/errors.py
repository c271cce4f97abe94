# cradle/errors.py
from __future__ import annotations


class AppError(Exception):
    """
    Базовая ошибка приложения с машинным кодом.
    RPC-слой превращает её в HTTP-ответ, инструменты MCP в текст "Error: ...".
    """

    code: str = "INTERNAL_SERVER_ERROR"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Conflict"


class BadRequestError(AppError):
    code = "BAD_REQUEST"
    status_code = 400
    default_message = "Bad request"
