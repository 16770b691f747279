"""Security helpers for Auth0 integration."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterable

import httpx
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import MissingPermissionError
from ..db import get_session_dependency
from app.backend.src.models import User
from app.backend.src.services.access import Actor, resolve_actor

ALGORITHMS = ["RS256"]
_scheme = HTTPBearer(auto_error=False)

LOGGER = structlog.get_logger(__name__)


# -------------------------------------------------------
# JWKS + Token Utilities
# -------------------------------------------------------

@lru_cache()
def _fetch_jwks(domain: str) -> dict[str, Any]:
    """Fetch (and cache) the JWKS for the given Auth0 domain."""
    jwks_url = f"https://{domain}/.well-known/jwks.json"
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(jwks_url)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as exc:
        LOGGER.warning("jwks_fetch_failed", domain=domain, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to retrieve JWKS",
        ) from exc


def _get_rsa_key(token: str, domain: str) -> dict[str, str] | None:
    """Return the RSA key that matches the token header."""
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        ) from exc

    if "kid" not in unverified_header:
        return None

    for key in _fetch_jwks(domain).get("keys", []):
        if key.get("kid") == unverified_header["kid"]:
            return {
                "kty": key.get("kty"),
                "kid": key.get("kid"),
                "use": key.get("use"),
                "n": key.get("n"),
                "e": key.get("e"),
            }
    return None


def _normalize_audience_values(values: Iterable[str]) -> list[str]:
    """Return a list of canonical audience strings with slash variants."""
    normalized: list[str] = []
    for value in values:
        candidate = value.strip()
        if not candidate:
            continue

        trimmed = candidate.rstrip("/")
        for option in (candidate, trimmed, f"{trimmed}/" if trimmed else ""):
            if option and option not in normalized:
                normalized.append(option)
    return normalized


def _collect_audience_values(raw_value: str | None) -> list[str]:
    """Split the configured audience string on whitespace and commas."""
    if not raw_value:
        return []
    expanded: list[str] = []
    for candidate in raw_value.replace("\n", " ").split():
        for part in candidate.split(","):
            value = part.strip()
            if value and value not in expanded:
                expanded.append(value)
    return expanded


def _decode_token(token: str, *, domain: str, audiences: list[str]) -> dict[str, Any]:
    """Decode and validate an Auth0 access token."""
    rsa_key = _get_rsa_key(token, domain)
    if not rsa_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unable to validate token",
        )

    try:
        payload = jwt.decode(
            token,
            rsa_key,
            algorithms=ALGORITHMS,
            issuer=f"https://{domain}/",
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    audience_claim = payload.get("aud")
    if isinstance(audience_claim, str):
        token_audiences = [audience_claim]
    elif isinstance(audience_claim, (list, tuple, set)):
        token_audiences = [entry for entry in audience_claim if isinstance(entry, str)]
    else:
        token_audiences = []
    if not token_audiences:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing audience",
        )

    if not set(_normalize_audience_values(token_audiences)) & set(
        _normalize_audience_values(audiences)
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience",
        )
    return payload


# -------------------------------------------------------
# User Resolution
# -------------------------------------------------------

def _resolve_user(session: Session, payload: dict[str, Any]) -> User:
    """Map a verified Auth0 payload to an application user.

    Users are provisioned by an administrator; a token whose subject and
    email match no user is refused rather than creating an account.
    """
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
        )

    user = session.query(User).filter(User.auth0_sub == subject).one_or_none()
    if user:
        return user

    email = payload.get("email") or payload.get("https://siteflow-api/email")
    if email:
        user = session.query(User).filter(User.email == email).one_or_none()
        if user:
            if user.auth0_sub != subject:
                user.auth0_sub = subject
                session.add(user)
                session.commit()
                LOGGER.info("auth0_subject_linked", user_id=user.id, email=user.email)
            return user

    LOGGER.info("auth0_user_unknown", subject=subject, email=email)
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="User record not found",
    )


# -------------------------------------------------------
# Current User + Permission Enforcement
# -------------------------------------------------------

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
    session: Session = Depends(get_session_dependency),
) -> User:
    """Resolve the authenticated user from the Auth0 bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    settings = get_settings()
    configured_audiences = _collect_audience_values(settings.auth0_audience)
    if not settings.auth0_domain or not configured_audiences:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Auth0 configuration is incomplete",
        )

    payload = _decode_token(
        credentials.credentials,
        domain=settings.auth0_domain,
        audiences=configured_audiences,
    )
    user = _resolve_user(session, payload)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return user


def get_current_actor(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session_dependency),
) -> Actor:
    """Resolve the authenticated user's effective permissions and sites."""
    return resolve_actor(session, user)


def _enforce_permissions(actor: Actor, permissions: Iterable[str], *, require_all: bool) -> Actor:
    wanted = list(permissions)
    held = [permission for permission in wanted if actor.has(permission)]
    if (require_all and len(held) == len(wanted)) or (not require_all and held):
        return actor
    missing = [permission for permission in wanted if permission not in held]
    raise MissingPermissionError(
        f"Missing permission {', '.join(missing)}",
        permission=missing[0],
    )


def require_permission(*permissions: str, require_all: bool = True):
    """Return a dependency that enforces the given permission names."""

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        return _enforce_permissions(actor, permissions, require_all=require_all)

    return dependency


__all__ = [
    "get_current_actor",
    "get_current_user",
    "require_permission",
]
