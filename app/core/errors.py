# === backend/app/core/errors.py ===
from typing import List, Optional


class SqlEndpointError(Exception):
    """Base error. Rendered as {"status": "error", "message": ...} at the app edge."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


# definition time

class DefinitionValidationError(SqlEndpointError):
    status_code = 400

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid endpoint definition")


class DefinitionNotFoundError(SqlEndpointError):
    status_code = 404

    def __init__(self, message: str = "Endpoint not found"):
        super().__init__(message)


class DefinitionAccessError(SqlEndpointError):
    status_code = 403


class SqlSandboxError(SqlEndpointError):
    status_code = 400


# request time

class UnauthorizedError(SqlEndpointError):
    status_code = 401


class TokenInvalidError(UnauthorizedError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class ForbiddenError(SqlEndpointError):
    status_code = 403


class RouteNotFoundError(SqlEndpointError):
    status_code = 404

    def __init__(self, message: str = "Endpoint not found"):
        super().__init__(message)


class ParameterError(SqlEndpointError):
    status_code = 400


class ExecutionError(SqlEndpointError):
    """The database rejected the final statement; message is the engine's own."""

    status_code = 500
