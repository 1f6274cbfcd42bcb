from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from fantabeach_admin.clock import get_now
from fantabeach_admin.dependencies import get_bearer_token, get_current_user_id
from fantabeach_admin.errors import unauthorized
from fantabeach_admin.models.user import User
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.schemas import SessionResponse, UserResponse, user_to_response
from fantabeach_admin.services import audit
from fantabeach_admin.services.auth import authenticate, open_session, resolve_session

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if not v or "@" not in v:
            raise ValueError("email is invalid")
        return v.strip().lower()


@router.post("/auth/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> SessionResponse:
    user = authenticate(repo, payload.email, payload.password)
    session = open_session(repo, user, now)
    response = SessionResponse(token=session.token, user=user_to_response(user), expires_at=session.expires_at)

    audit.record(
        repo,
        actor_user_id=user.id,
        action="auth.login",
        entity_type="session",
        entity_id=user.id,
        now=now,
        after=response.model_dump(mode="json", exclude={"token"}),
    )
    repo.commit()
    return response


@router.get("/auth/me", response_model=UserResponse)
def me(
    user_id: int = Depends(get_current_user_id),
    repo: AdminRepository = Depends(get_repository),
) -> UserResponse:
    user = repo.get(User, user_id)
    if user is None:
        raise unauthorized()
    return user_to_response(user)


@router.post("/auth/logout", status_code=204)
def logout(
    token: Optional[str] = Depends(get_bearer_token),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> None:
    session = resolve_session(repo, token, now)
    user = repo.get(User, session.user_id)
    before = {
        "user": user_to_response(user).model_dump(mode="json") if user else None,
        "expires_at": session.expires_at,
    }
    repo.delete(session)
    audit.record(
        repo,
        actor_user_id=session.user_id,
        action="auth.logout",
        entity_type="session",
        entity_id=session.user_id,
        now=now,
        before=before,
    )
    repo.commit()
