# timetrack/auth/auth.py
"""
Resolves the acting employee from a bearer token issued by the identity service.

Passwords, sessions and token issuance for end users live in that service;
this module only verifies the signature and looks the employee up.
"""

import os
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from timetrack.core.policy import is_privileged
from timetrack.core.sentry_config import set_actor_context
from timetrack.database.database import Employee, get_db

SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 8

is_production = os.getenv("PRODUCTION", "false").lower() == "true"
if SECRET_KEY == "your-secret-key-change-this-in-production":
    if is_production:
        raise RuntimeError("SECRET_KEY must be set in production!")
    else:
        import warnings

        warnings.warn(
            "WARNING: Using default SECRET_KEY! Set SECRET_KEY environment variable for production.",
            RuntimeWarning,
            stacklevel=2,
        )

security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token (used by service-to-service callers and tests)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Employee:
    """Employee identified by the bearer token. 401 if missing or invalid."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
        username: str | None = payload.get("sub")
    except JWTError:
        raise credentials_exception

    if username is None:
        raise credentials_exception

    actor = db.query(Employee).filter(Employee.username == username).first()
    if actor is None:
        raise credentials_exception

    request.state.actor = actor
    set_actor_context(actor.id, actor.username)
    return actor


def get_privileged_actor(actor: Employee = Depends(get_current_actor)) -> Employee:
    """Team lead, coordinator or admin. 403 otherwise."""
    if not is_privileged(actor):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Supervisor role required")
    return actor
