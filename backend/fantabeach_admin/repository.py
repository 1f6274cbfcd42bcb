"""
Storage port for the admin core.

Routes and services depend on `AdminRepository` only. `SqlAdminRepository`
backs it with one SQLModel session per request; nothing is written until the
route calls `commit()` at the end of a successful operation.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from fastapi import Depends
from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_
from sqlmodel import Session, SQLModel, select

from fantabeach_admin.database import get_session
from fantabeach_admin.models.audit_log import AuditLog
from fantabeach_admin.models.entry_list_item import EntryListItem
from fantabeach_admin.models.fantasy_team import TournamentRegistration, UserTournamentTeam
from fantabeach_admin.models.league import LeaderboardRow, League
from fantabeach_admin.models.match import Match
from fantabeach_admin.models.payment_event import PaymentEvent
from fantabeach_admin.models.player import Player
from fantabeach_admin.models.scoring import ScoringRun
from fantabeach_admin.models.season import Season
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.models.user import AdminSession, User

M = TypeVar("M", bound=SQLModel)


class AdminRepository(ABC):
    # Unit of work
    @abstractmethod
    def add(self, obj: SQLModel) -> None: ...

    @abstractmethod
    def delete(self, obj: SQLModel) -> None: ...

    @abstractmethod
    def flush(self) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def get(self, model: Type[M], key: Any) -> Optional[M]: ...

    # Users and sessions
    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def users_by_ids(self, user_ids: Iterable[int]) -> Dict[int, User]: ...

    @abstractmethod
    def get_admin_session(self, token: str) -> Optional[AdminSession]: ...

    @abstractmethod
    def list_sessions_for_user(self, user_id: int) -> List[AdminSession]: ...

    # Seasons and players
    @abstractmethod
    def list_seasons(self) -> List[Season]: ...

    @abstractmethod
    def list_players(self, gender: Optional[str] = None) -> List[Player]: ...

    @abstractmethod
    def players_by_ids(self, player_ids: Iterable[int]) -> Dict[int, Player]: ...

    # Tournaments
    @abstractmethod
    def list_tournaments(
        self,
        season_id: Optional[int] = None,
        status: Optional[str] = None,
        gender: Optional[str] = None,
    ) -> List[Tournament]: ...

    @abstractmethod
    def list_unlocked_tournaments(self) -> List[Tournament]: ...

    @abstractmethod
    def get_tournament_by_slug(self, slug: str) -> Optional[Tournament]: ...

    # Entry list
    @abstractmethod
    def list_entry_items(self, tournament_id: int) -> List[EntryListItem]: ...

    @abstractmethod
    def replace_entry_items(self, tournament_id: int, items: Sequence[EntryListItem]) -> List[EntryListItem]: ...

    # Matches
    @abstractmethod
    def list_matches(self, tournament_id: Optional[int] = None) -> List[Match]: ...

    # Scoring
    @abstractmethod
    def list_scoring_runs(self, tournament_id: Optional[int] = None) -> List[ScoringRun]: ...

    @abstractmethod
    def list_teams(self, tournament_id: int) -> List[UserTournamentTeam]: ...

    @abstractmethod
    def list_registrations(self, tournament_id: int) -> List[TournamentRegistration]: ...

    # Leagues
    @abstractmethod
    def list_leagues(self, season_id: Optional[int] = None) -> List[League]: ...

    @abstractmethod
    def list_leaderboard_rows(self, league_id: int) -> List[LeaderboardRow]: ...

    @abstractmethod
    def replace_leaderboard_rows(self, league_id: int, rows: Sequence[LeaderboardRow]) -> List[LeaderboardRow]: ...

    # Audit
    @abstractmethod
    def list_audit_logs(
        self,
        offset: int,
        limit: int,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        actor_user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Tuple[List[AuditLog], int]: ...

    # Payments
    @abstractmethod
    def list_payment_events(self) -> List[PaymentEvent]: ...


class SqlAdminRepository(AdminRepository):
    def __init__(self, session: Session):
        self.session = session

    def add(self, obj: SQLModel) -> None:
        self.session.add(obj)

    def delete(self, obj: SQLModel) -> None:
        self.session.delete(obj)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def get(self, model: Type[M], key: Any) -> Optional[M]:
        return self.session.get(model, key)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(func.lower(User.email) == email.lower())).first()

    def users_by_ids(self, user_ids: Iterable[int]) -> Dict[int, User]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        users = self.session.exec(select(User).where(User.id.in_(ids))).all()
        return {u.id: u for u in users}

    def get_admin_session(self, token: str) -> Optional[AdminSession]:
        return self.session.get(AdminSession, token)

    def list_sessions_for_user(self, user_id: int) -> List[AdminSession]:
        return list(self.session.exec(select(AdminSession).where(AdminSession.user_id == user_id)).all())

    def list_seasons(self) -> List[Season]:
        return list(self.session.exec(select(Season).order_by(Season.year.desc(), Season.id.desc())).all())

    def list_players(self, gender: Optional[str] = None) -> List[Player]:
        query = select(Player)
        if gender:
            query = query.where(Player.gender == gender)
        return list(self.session.exec(query.order_by(Player.last_name, Player.first_name, Player.id)).all())

    def players_by_ids(self, player_ids: Iterable[int]) -> Dict[int, Player]:
        ids = sorted(set(player_ids))
        if not ids:
            return {}
        players = self.session.exec(select(Player).where(Player.id.in_(ids))).all()
        return {p.id: p for p in players}

    def list_tournaments(
        self,
        season_id: Optional[int] = None,
        status: Optional[str] = None,
        gender: Optional[str] = None,
    ) -> List[Tournament]:
        query = select(Tournament)
        if season_id is not None:
            query = query.where(Tournament.season_id == season_id)
        if status:
            query = query.where(Tournament.status == status)
        if gender:
            query = query.where(Tournament.gender == gender)
        query = query.order_by(Tournament.start_date.desc(), Tournament.id.desc())
        return list(self.session.exec(query).all())

    def list_unlocked_tournaments(self) -> List[Tournament]:
        query = (
            select(Tournament)
            .where(or_(Tournament.entry_list_locked == False, Tournament.lineup_locked == False))  # noqa: E712
            .order_by(Tournament.id)
        )
        return list(self.session.exec(query).all())

    def get_tournament_by_slug(self, slug: str) -> Optional[Tournament]:
        return self.session.exec(select(Tournament).where(Tournament.slug == slug)).first()

    def list_entry_items(self, tournament_id: int) -> List[EntryListItem]:
        query = (
            select(EntryListItem)
            .where(EntryListItem.tournament_id == tournament_id)
            .order_by(EntryListItem.position, EntryListItem.id)
        )
        return list(self.session.exec(query).all())

    def replace_entry_items(self, tournament_id: int, items: Sequence[EntryListItem]) -> List[EntryListItem]:
        for existing in self.list_entry_items(tournament_id):
            self.session.delete(existing)
        # Old rows must be gone before the (tournament_id, pair_id) unique index sees the new ones
        self.session.flush()
        for item in items:
            self.session.add(item)
        self.session.flush()
        return list(items)

    def list_matches(self, tournament_id: Optional[int] = None) -> List[Match]:
        query = select(Match)
        if tournament_id is not None:
            query = query.where(Match.tournament_id == tournament_id)
        return list(self.session.exec(query.order_by(Match.id)).all())

    def list_scoring_runs(self, tournament_id: Optional[int] = None) -> List[ScoringRun]:
        """Newest first."""
        query = select(ScoringRun)
        if tournament_id is not None:
            query = query.where(ScoringRun.tournament_id == tournament_id)
        return list(self.session.exec(query.order_by(ScoringRun.id.desc())).all())

    def list_teams(self, tournament_id: int) -> List[UserTournamentTeam]:
        query = (
            select(UserTournamentTeam)
            .where(UserTournamentTeam.tournament_id == tournament_id)
            .order_by(UserTournamentTeam.user_id, UserTournamentTeam.id)
        )
        return list(self.session.exec(query).all())

    def list_registrations(self, tournament_id: int) -> List[TournamentRegistration]:
        query = select(TournamentRegistration).where(TournamentRegistration.tournament_id == tournament_id)
        return list(self.session.exec(query).all())

    def list_leagues(self, season_id: Optional[int] = None) -> List[League]:
        query = select(League)
        if season_id is not None:
            query = query.where(League.season_id == season_id)
        return list(self.session.exec(query.order_by(League.id.desc())).all())

    def list_leaderboard_rows(self, league_id: int) -> List[LeaderboardRow]:
        query = select(LeaderboardRow).where(LeaderboardRow.league_id == league_id).order_by(LeaderboardRow.rank)
        return list(self.session.exec(query).all())

    def replace_leaderboard_rows(self, league_id: int, rows: Sequence[LeaderboardRow]) -> List[LeaderboardRow]:
        self.session.execute(sa_delete(LeaderboardRow).where(LeaderboardRow.league_id == league_id))
        for row in rows:
            self.session.add(row)
        self.session.flush()
        return list(rows)

    def list_audit_logs(
        self,
        offset: int,
        limit: int,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        actor_user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Tuple[List[AuditLog], int]:
        conditions = []
        if action:
            conditions.append(AuditLog.action == action)
        if entity_type:
            conditions.append(AuditLog.entity_type == entity_type)
        if entity_id:
            conditions.append(AuditLog.entity_id == entity_id)
        if actor_user_id:
            conditions.append(AuditLog.actor_user_id == actor_user_id)
        if since is not None:
            conditions.append(AuditLog.timestamp >= since)
        if until is not None:
            conditions.append(AuditLog.timestamp <= until)

        total = self.session.exec(select(func.count()).select_from(AuditLog).where(*conditions)).one()
        # Newest first; id breaks ties between entries written in the same request
        query = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.exec(query).all()), int(total)

    def list_payment_events(self) -> List[PaymentEvent]:
        query = select(PaymentEvent).order_by(PaymentEvent.received_at.desc(), PaymentEvent.id.desc())
        return list(self.session.exec(query).all())


def get_repository(session: Session = Depends(get_session)) -> AdminRepository:
    return SqlAdminRepository(session)
