"""Cookie attribute sets for the session and CSRF cookies.

Framework independent: :meth:`CookieSpec.as_kwargs` matches the keyword
arguments of Starlette's ``Response.set_cookie``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .config import SessionConfig


@dataclass(frozen=True)
class CookieSpec:
    key: str
    value: str
    max_age: int
    path: str
    domain: str | None
    secure: bool
    httponly: bool
    samesite: str

    def as_kwargs(self) -> dict[str, Any]:
        return asdict(self)


def _secure(config: SessionConfig, secure_transport: bool) -> bool:
    return config.cookie_secure if config.cookie_secure is not None else secure_transport


def session_cookie(
    config: SessionConfig,
    session_id: str,
    secure_transport: bool,
) -> CookieSpec:
    """HttpOnly cookie carrying the session id for the session lifetime."""
    return CookieSpec(
        key=config.cookie_name,
        value=session_id,
        max_age=config.lifetime,
        path=config.cookie_path,
        domain=config.cookie_domain,
        secure=_secure(config, secure_transport),
        httponly=True,
        samesite=config.cookie_samesite,
    )


def csrf_cookie(
    config: SessionConfig,
    token: str,
    secure_transport: bool,
) -> CookieSpec:
    """Script-readable cookie carrying the CSRF secret for double-submit."""
    return CookieSpec(
        key=config.csrf_cookie_name,
        value=token,
        max_age=config.lifetime,
        path=config.cookie_path,
        domain=config.cookie_domain,
        secure=_secure(config, secure_transport),
        httponly=False,
        samesite=config.cookie_samesite,
    )


def expired_cookie(spec: CookieSpec) -> CookieSpec:
    """Return ``spec`` emptied and expiring immediately."""
    return CookieSpec(
        key=spec.key,
        value="",
        max_age=0,
        path=spec.path,
        domain=spec.domain,
        secure=spec.secure,
        httponly=spec.httponly,
        samesite=spec.samesite,
    )
