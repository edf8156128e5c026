from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select

from taketwo.auth import Principal, Role, bearer_token
from taketwo.config import settings
from taketwo.models import Principal as PrincipalModel
from taketwo.models import WebSession


AUTH_EXEMPT_PATHS = {'/auth/login', '/auth/register', '/robots.txt', '/docs', '/openapi.json'}


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _session_expiry() -> datetime:
    return _now() + timedelta(minutes=settings.session_ttl_minutes)


def is_exempt(path: str) -> bool:
    return path in AUTH_EXEMPT_PATHS or path.startswith(settings.upload_url_prefix.rstrip('/') + '/')


def create_web_session(db, principal_id: int, ip: str | None, user_agent: str | None) -> str:
    token = secrets.token_urlsafe(48)
    web_session = WebSession(
        session_token=token,
        principal_id=principal_id,
        ip=ip,
        user_agent=user_agent,
        expires_at=_session_expiry(),
    )
    db.add(web_session)
    db.flush()
    return token


def revoke_web_session(db, token: str) -> None:
    session = db.execute(select(WebSession).where(WebSession.session_token == token)).scalar_one_or_none()
    if not session or session.revoked_at is not None:
        return
    session.revoked_at = _now()


def load_principal_from_token(db, token: str | None) -> Principal | None:
    if not token:
        return None

    row = db.execute(
        select(WebSession, PrincipalModel)
        .join(PrincipalModel, PrincipalModel.id == WebSession.principal_id)
        .where(WebSession.session_token == token)
    ).one_or_none()
    if not row:
        return None

    web_session, principal = row
    now = _now()
    if web_session.revoked_at is not None or _aware(web_session.expires_at) <= now:
        return None

    web_session.last_seen_at = now
    web_session.expires_at = _session_expiry()
    role = Role(principal.role.value if hasattr(principal.role, 'value') else principal.role)
    return Principal(
        id=principal.id,
        email=principal.email,
        role=role,
        active=principal.active,
        token=token,
    )


def install_auth_session_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def auth_session_middleware(request: Request, call_next):
        token = bearer_token(request.headers.get('authorization'))
        with request.app.state.session_factory() as db:
            principal = load_principal_from_token(db, token)
            request.state.principal = principal
            db.commit()

        if not is_exempt(request.url.path) and request.state.principal is None:
            return JSONResponse(
                {'detail': 'Not authenticated'},
                status_code=401,
                headers={'WWW-Authenticate': 'Bearer'},
            )

        response = await call_next(request)
        return response
