"""Shared error helpers for route handlers."""

from fastapi import HTTPException, status


def api_error(
    *,
    code: str,
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    """Build an HTTPException with a machine-readable code."""
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message},
    )
