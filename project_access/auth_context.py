"""
project_access/auth_context.py

Shared authentication context primitives for FastAPI dependency injection.

Identity comes from the external identity provider: its session token is a
JWT whose `sub` claim is the user id and whose optional `org_id` claim is the
user's active organization. This module only reads those claims; it never
looks up or mutates users.

Contains:
- AuthContext: who is calling, and from which organization
- require_auth_context: FastAPI dependency for auth enforcement
- get_db: per-request database connection
- verify_token: JWT token verification
"""

from __future__ import annotations

from typing import Generator, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from project_access.config import ALGORITHM, IS_DEV, SECRET_KEY
from project_access.db import DBConnection, get_db_connection

# Security scheme for HTTPBearer
security = HTTPBearer()


# ---------------------------------------------------------
# DB Helper
# ---------------------------------------------------------
def get_db() -> Generator[DBConnection, None, None]:
    """Yield one database connection for the lifetime of a request."""
    with get_db_connection() as conn:
        yield conn


# ---------------------------------------------------------
# JWT Token Verification
# ---------------------------------------------------------
def verify_token(token: str) -> dict:
    """
    Verify a session token and return its decoded payload.

    Raises:
        HTTPException(401): If token is expired or invalid
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    Caller identity derived from the session token.

    Project roles are deliberately NOT part of the context: they are resolved
    per project on every request so revocations apply immediately.
    """
    user_id: str
    organization_id: Optional[str] = None


def require_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthContext:
    """
    Auth context dependency for FastAPI routes.

    Usage:
        @router.get("/protected")
        def protected_route(ctx: AuthContext = Depends(require_auth_context)):
            ...

    Raises:
        HTTPException(401): If token is invalid, expired, or has no subject
    """
    payload = verify_token(credentials.credentials)
    user_id = payload.get("sub")

    if not user_id:
        print("[AUTH] Missing user_id in token payload")
        raise HTTPException(status_code=401, detail="Invalid token payload")

    ctx = AuthContext(user_id=str(user_id), organization_id=payload.get("org_id") or None)

    if IS_DEV:
        print(f"[AUTH] Authenticated: user_id={ctx.user_id}, organization_id={ctx.organization_id}")

    return ctx
