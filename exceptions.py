"""
Ошибки сервисного слоя.

Сервисы поднимают эти исключения, а обработчик в main.py превращает их
в JSON-ответ с соответствующим HTTP статусом.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Базовая ошибка бизнес-логики."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(ServiceError):
    """Нарушено бизнес-правило или неверные входные данные."""

    status_code = 400


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """Нарушена уникальность (имя бейджа, email и т.п.)."""

    status_code = 409
