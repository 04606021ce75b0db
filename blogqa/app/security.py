from __future__ import annotations

"""Admin authentication for knowledge-base mutations."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from blogqa.app.settings import settings


@dataclass(frozen=True)
class AuthContext:
    """Resolved authentication context for the current request."""
    api_key: str | None
    role: str


async def require_admin(request: Request) -> AuthContext:
    """Validate an admin API key or allow anonymous admin if configured."""
    api_key = _extract_api_key(request)
    allowed = settings.admin_keys
    if not allowed:
        if settings.allow_anonymous:
            return AuthContext(api_key=None, role="admin")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if api_key is None or api_key not in allowed:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthContext(api_key=api_key, role="admin")


def _extract_api_key(request: Request) -> str | None:
    """Extract API key from headers."""
    header_key = request.headers.get("x-api-key")
    if header_key:
        return header_key.strip()
    auth = request.headers.get("authorization")
    if not auth:
        return None
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None
