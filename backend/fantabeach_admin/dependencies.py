from datetime import datetime
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fantabeach_admin.clock import get_now
from fantabeach_admin.errors import not_found, unauthorized
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.models.user import User
from fantabeach_admin.repository import AdminRepository, get_repository
from fantabeach_admin.services import lock_scheduler
from fantabeach_admin.services.auth import resolve_session

# Missing or non-bearer credentials resolve to None; resolve_session rejects them
bearer_scheme = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    if credentials is None:
        return None
    return credentials.credentials


def get_current_user_id(
    token: Optional[str] = Depends(get_bearer_token),
    repo: AdminRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> int:
    """Acting admin's user id from `Authorization: Bearer <token>`.

    Resolved as a dependency, so it fails before any guard is taken or any
    state is touched.
    """
    session = resolve_session(repo, token, now)
    user = repo.get(User, session.user_id)
    if user is None or not user.active:
        raise unauthorized()
    return user.id


def sync_lock_state(repo: AdminRepository, now: datetime) -> None:
    """Apply due lock transitions and persist them on their own."""
    if lock_scheduler.tick(repo, now):
        repo.commit()


def load_tournament(repo: AdminRepository, tournament_id: int) -> Tournament:
    tournament = repo.get(Tournament, tournament_id)
    if tournament is None:
        raise not_found("Tournament")
    return tournament
