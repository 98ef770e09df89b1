from __future__ import annotations

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Entity is absent or belongs to another tenant.

    Cross-tenant lookups raise this instead of ForbiddenError so callers cannot check
    for the existence of other tenants' records.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BusinessRuleError(HTTPException):
    """A precondition of the requested operation does not hold."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Permissão insuficiente") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
