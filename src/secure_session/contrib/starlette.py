"""Starlette/FastAPI middleware for secure session management.

Runs the full per-request pipeline: sanitize the session cookie, start
a fresh SessionManager, enforce CSRF on state-changing requests, throttle
security failures, save after the handler and emit cookies.

Install with: pip install py-secure-session[starlette]
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from ..config import SessionConfig
from ..constants import SAFE_METHODS
from ..context import set_current_session
from ..cookies import csrf_cookie, expired_cookie, session_cookie
from ..csrf import extract_token
from ..exceptions import FingerprintMismatch, RateLimitExceeded
from ..fingerprint import ClientAttributes
from ..manager import SessionManager, SessionState
from ..rate_limit import RateLimiter
from ..sanitize import sanitize_session_id
from ..stores.base import SessionStore

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class SessionMiddleware(BaseHTTPMiddleware):
    """Middleware owning the session for each request.

    The request's SessionManager is available as:
    - request.state.session (for direct access in routes)
    - get_current_session() (contextvars, for code without the request)

    Responses:
    - 403 "CSRF token mismatch" when an unsafe request lacks a valid token
    - 429 "Too many security failures" with Retry-After once the client
      exceeded its CSRF or fingerprint failure budget

    Usage:
        from fastapi import FastAPI
        from secure_session import FileStore, SessionConfig
        from secure_session.contrib.starlette import SessionMiddleware

        config = SessionConfig(lifetime=3600)
        app = FastAPI()
        app.add_middleware(
            SessionMiddleware,
            store=FileStore("/var/lib/app/sessions", config),
            config=config,
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        config: SessionConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        logger: logging.Logger | None = None,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            store: Backend shared by all workers.
            config: Session configuration. Uses defaults if None.
            rate_limiter: Failure throttle. Defaults to a per-process one.
            logger: Optional logger for debugging and security signals.
            exempt_paths: Path prefixes that skip CSRF validation (webhooks).
        """
        super().__init__(app)
        self._store = store
        self._config = config or SessionConfig()
        self._rate_limiter = rate_limiter or RateLimiter(config=self._config, logger=logger)
        self._logger = logger
        self._exempt_paths = tuple(exempt_paths)

    def _requires_csrf(self, request: Request) -> bool:
        if request.method.upper() in SAFE_METHODS:
            return False
        return not (self._exempt_paths and request.url.path.startswith(self._exempt_paths))

    async def _submitted_token(self, request: Request) -> str | None:
        form = None
        if request.headers.get("content-type", "").startswith(_FORM_TYPES):
            form = await request.form()
        return extract_token(
            form,
            request.headers,
            self._config.csrf_field_name,
            self._config.csrf_header_names,
        )

    def _too_many(self, exc: RateLimitExceeded) -> Response:
        return PlainTextResponse(
            "Too many security failures",
            status_code=429,
            headers={"Retry-After": str(exc.retry_after)},
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request inside a started session."""
        incoming_id = sanitize_session_id(
            request.cookies.get(self._config.cookie_name), logger=self._logger
        )
        client_host = request.client.host if request.client else "unknown"
        client = ClientAttributes.from_headers(request.headers, client_host)
        secure_transport = request.url.scheme == "https"

        manager = SessionManager(self._store, self._config, logger=self._logger)
        try:
            await manager.start(incoming_id, client)
        except FingerprintMismatch:
            # The manager already switched to a clean anonymous session.
            try:
                await self._rate_limiter.ensure(f"fingerprint:{client_host}")
            except RateLimitExceeded as exc:
                return self._too_many(exc)

        # Store in request.state for direct access
        request.state.session = manager
        # Store in contextvars for code without the request object
        set_current_session(manager)
        try:
            if self._requires_csrf(request):
                submitted = await self._submitted_token(request)
                if not manager.csrf.validate(submitted):
                    if self._logger:
                        self._logger.warning(
                            "CSRF token mismatch: method=%s, path=%s",
                            request.method,
                            request.url.path,
                        )
                    try:
                        await self._rate_limiter.ensure(f"csrf:{client_host}")
                    except RateLimitExceeded as exc:
                        return self._too_many(exc)
                    return PlainTextResponse("CSRF token mismatch", status_code=403)

            response = await call_next(request)

            cookie = session_cookie(self._config, manager.id or "", secure_transport)
            if manager.is_destroyed:
                response.set_cookie(**expired_cookie(cookie).as_kwargs())
                if self._config.csrf_cookie_enabled:
                    stale = csrf_cookie(self._config, "", secure_transport)
                    response.set_cookie(**expired_cookie(stale).as_kwargs())
                return response

            token = (
                manager.csrf.current()
                if manager.state is SessionState.SAVED
                else manager.csrf.token()
            )
            await manager.save()
            await manager.collect_garbage()

            response.set_cookie(**cookie.as_kwargs())
            if self._config.csrf_cookie_enabled and token:
                response.set_cookie(
                    **csrf_cookie(self._config, token, secure_transport).as_kwargs()
                )
            return response
        finally:
            set_current_session(None)
