from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taketwo.auth import Principal, Role, get_current_principal, require_role
from taketwo.db import get_db
from taketwo.dependencies import get_client_ip
from taketwo.models import Principal as PrincipalModel
from taketwo.models import PrincipalRole
from taketwo.schemas import LoginRequest, MeResponse, RegisterRequest, TokenResponse
from taketwo.security.passwords import hash_password, password_problem, verify_password
from taketwo.security.sessions import create_web_session, revoke_web_session
from taketwo.services.audit_service import log_audit, log_auth_event

router = APIRouter(tags=['auth'])

INVALID_CREDENTIALS = 'Invalid email or password'


def _normalize_email(raw: str) -> str:
    return raw.strip().lower()


def _find_principal(db: Session, email: str) -> PrincipalModel | None:
    return db.execute(select(PrincipalModel).where(func.lower(PrincipalModel.email) == email)).scalar_one_or_none()


@router.post('/auth/login', response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    ip = get_client_ip(request)
    user_agent = request.headers.get('user-agent')

    principal = _find_principal(db, email)
    failure_reason = None
    if not principal:
        failure_reason = 'UNKNOWN_EMAIL'
    elif not principal.active:
        failure_reason = 'INACTIVE_PRINCIPAL'
    else:
        valid, updated_hash = verify_password(payload.password, principal.password_hash)
        if not valid:
            failure_reason = 'BAD_PASSWORD'
        elif updated_hash:
            principal.password_hash = updated_hash

    if failure_reason:
        log_auth_event(
            db,
            attempted_email=email,
            success=False,
            failure_reason=failure_reason,
            principal_id=principal.id if principal else None,
            ip=ip,
            user_agent=user_agent,
        )
        db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    token = create_web_session(db, principal.id, ip=ip, user_agent=user_agent)
    log_auth_event(
        db,
        attempted_email=email,
        success=True,
        failure_reason=None,
        principal_id=principal.id,
        ip=ip,
        user_agent=user_agent,
    )
    log_audit(
        db,
        actor_principal_id=principal.id,
        action='AUTH_LOGIN',
        entry_id=None,
        ip=ip,
        metadata={'email': email},
    )
    db.commit()
    return TokenResponse(access_token=token)


@router.post('/auth/register', status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not email or '@' not in email:
        raise HTTPException(status_code=400, detail='A valid email is required')
    problem = password_problem(payload.password)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    if _find_principal(db, email):
        raise HTTPException(status_code=409, detail='Email already registered')

    principal = PrincipalModel(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=PrincipalRole.STAFF,
        active=False,
    )
    db.add(principal)
    db.flush()
    log_audit(
        db,
        actor_principal_id=principal.id,
        action='AUTH_REGISTER',
        entry_id=None,
        ip=get_client_ip(request),
        metadata={'email': email},
    )
    db.commit()
    return {'status': 'pending-approval'}


@router.post('/auth/principals/{principal_id}/activate')
def activate_principal(
    principal_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_role(Role.ADMIN)),
):
    principal = db.get(PrincipalModel, principal_id)
    if not principal:
        raise HTTPException(status_code=404, detail='Principal not found')
    principal.active = True
    log_audit(
        db,
        actor_principal_id=admin.id,
        action='PRINCIPAL_ACTIVATED',
        entry_id=None,
        ip=get_client_ip(request),
        metadata={'principal_id': principal_id},
    )
    db.commit()
    return {'id': principal.id, 'active': principal.active}


@router.post('/auth/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if principal.token:
        revoke_web_session(db, principal.token)
    log_audit(
        db,
        actor_principal_id=principal.id,
        action='AUTH_LOGOUT',
        entry_id=None,
        ip=get_client_ip(request),
        metadata={},
    )
    db.commit()


@router.get('/me', response_model=MeResponse)
def me(db: Session = Depends(get_db), principal: Principal = Depends(get_current_principal)):
    row = db.get(PrincipalModel, principal.id)
    return MeResponse(email=row.email, first_name=row.first_name, last_name=row.last_name, phone=row.phone)
