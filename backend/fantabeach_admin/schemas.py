"""
Response models shared by the API and the audit trail.

Audit `before`/`after` snapshots are produced with the same models the
routes return, so a snapshot serializes exactly like the stored entity does
when read back through the API.
"""
from datetime import date, datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from fantabeach_admin.models.audit_log import AuditLog
from fantabeach_admin.models.entry_list_item import EntryListItem
from fantabeach_admin.models.fantasy_team import UserTournamentTeam
from fantabeach_admin.models.league import LeaderboardRow, League
from fantabeach_admin.models.match import Match
from fantabeach_admin.models.payment_event import PaymentEvent
from fantabeach_admin.models.player import Player
from fantabeach_admin.models.scoring import ScoringConfig, ScoringRun
from fantabeach_admin.models.season import Season
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.models.user import User

T = TypeVar("T")


class Paginated(BaseModel, Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total: int


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str
    role: Optional[str] = None
    active: bool


class SessionResponse(BaseModel):
    token: str
    user: UserResponse
    expires_at: datetime


class SeasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    year: int
    name: str
    status: str
    created_at: datetime
    updated_at: datetime


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    gender: str
    country_code: str
    rank_points: int
    status: str


class TournamentPolicy(BaseModel):
    roster_size: int
    starter_count: int
    reserve_count: int
    lineup_lock_at: str
    timezone: str
    no_retroactive_scoring: bool = True


class TournamentResponse(BaseModel):
    id: int
    season_id: int
    name: str
    slug: str
    location: str
    gender: str
    is_public: bool
    status: str
    start_date: date
    end_date: date
    policy: TournamentPolicy
    entry_list_locked: bool
    lineup_locked: bool
    bracket_generated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TournamentPair(BaseModel):
    id: str
    tournament_id: int
    player_ids: List[int]
    seed: int
    status: str


class EntryListItemResponse(BaseModel):
    id: int
    tournament_id: int
    pair: TournamentPair
    coach: Optional[str] = None
    ranking: int
    entry_status: str
    reserve_order: Optional[int] = None


class SetScore(BaseModel):
    set_number: int
    pair_a_score: int
    pair_b_score: int


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    phase: str
    day: str
    round: int
    slot: int
    status: str
    best_of: int
    pair_a_id: str
    pair_b_id: str
    set_scores: List[SetScore]
    winner_pair_id: Optional[str] = None
    scheduled_at: str
    completed_at: Optional[datetime] = None


class BracketNode(BaseModel):
    id: str
    tournament_id: int
    phase: str
    round: int
    slot: int
    match_id: Optional[int]
    label: str
    pair_a_id: Optional[str] = None
    pair_b_id: Optional[str] = None
    winner_pair_id: Optional[str] = None
    status: str


class BracketEdge(BaseModel):
    id: str
    from_node_id: str
    to_node_id: str
    outcome: str  # "winner" | "loser"
    to_slot: str  # "A" | "B"


class BracketData(BaseModel):
    tournament_id: int
    nodes: List[BracketNode]
    edges: List[BracketEdge]
    generated_at: Optional[datetime] = None


class ScoringConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tournament_id: int
    base_point_multiplier: int
    bonus_win_20: int
    bonus_win_21: int
    updated_at: datetime


class UserScoreTotal(BaseModel):
    user_id: int
    total_points: int
    counted_players: List[int]
    player_points: Dict[str, int] = {}


class ScoringRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    status: str
    triggered_by: str
    started_at: datetime
    finished_at: datetime
    totals_by_user: List[UserScoreTotal]


class LeagueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    season_id: int
    name: str
    mode: str
    status: str
    tie_breakers: List[str]
    updated_at: datetime


class LeaderboardRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    league_id: int
    user_id: int
    display_name: str
    rank: int
    total_points: int
    tie_breaker_score: int
    last_updated: datetime


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    tournament_id: int
    roster_player_ids: List[int]
    starters: List[int]
    reserves: List[int]
    created_at: datetime


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_user_id: str
    action: str
    entity_type: str
    entity_id: str
    timestamp: datetime
    before: Optional[Any] = None
    after: Optional[Any] = None


class PaymentEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider: str
    external_id: str
    status: str
    received_at: datetime
    verified_at: Optional[datetime] = None
    payload: Dict[str, Any]


class OverviewResponse(BaseModel):
    active_tournaments: int
    locked_entry_lists: int
    pending_matches: int
    completed_matches: int
    scoring_runs: int
    failed_payment_events: int


def tournament_to_response(t: Tournament) -> TournamentResponse:
    return TournamentResponse(
        id=t.id,
        season_id=t.season_id,
        name=t.name,
        slug=t.slug,
        location=t.location,
        gender=t.gender,
        is_public=t.is_public,
        status=t.status,
        start_date=t.start_date,
        end_date=t.end_date,
        policy=TournamentPolicy(
            roster_size=t.roster_size,
            starter_count=t.starter_count,
            reserve_count=t.reserve_count,
            lineup_lock_at=t.lineup_lock_at,
            timezone=t.timezone,
            no_retroactive_scoring=t.no_retroactive_scoring,
        ),
        entry_list_locked=t.entry_list_locked,
        lineup_locked=t.lineup_locked,
        bracket_generated_at=t.bracket_generated_at,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def entry_item_to_response(item: EntryListItem) -> EntryListItemResponse:
    return EntryListItemResponse(
        id=item.id,
        tournament_id=item.tournament_id,
        pair=TournamentPair(
            id=item.pair_id,
            tournament_id=item.tournament_id,
            player_ids=[item.player_a_id, item.player_b_id],
            seed=item.seed,
            status=item.pair_status,
        ),
        coach=item.coach,
        ranking=item.ranking,
        entry_status=item.entry_status,
        reserve_order=item.reserve_order,
    )


def user_to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


def tournament_snapshot(t: Tournament) -> Dict[str, Any]:
    return tournament_to_response(t).model_dump(mode="json")


def entry_list_snapshot(items: List[EntryListItem]) -> List[Dict[str, Any]]:
    return [entry_item_to_response(item).model_dump(mode="json") for item in items]


def entry_item_snapshot(item: EntryListItem) -> Dict[str, Any]:
    return entry_item_to_response(item).model_dump(mode="json")


def match_snapshot(m: Match) -> Dict[str, Any]:
    return MatchResponse.model_validate(m).model_dump(mode="json")


def season_snapshot(s: Season) -> Dict[str, Any]:
    return SeasonResponse.model_validate(s).model_dump(mode="json")


def player_snapshot(p: Player) -> Dict[str, Any]:
    return PlayerResponse.model_validate(p).model_dump(mode="json")


def scoring_config_snapshot(c: ScoringConfig) -> Dict[str, Any]:
    return ScoringConfigResponse.model_validate(c).model_dump(mode="json")


def scoring_run_snapshot(r: ScoringRun) -> Dict[str, Any]:
    return ScoringRunResponse.model_validate(r).model_dump(mode="json")


def league_snapshot(league: League) -> Dict[str, Any]:
    return LeagueResponse.model_validate(league).model_dump(mode="json")


def leaderboard_snapshot(rows: List[LeaderboardRow]) -> List[Dict[str, Any]]:
    return [LeaderboardRowResponse.model_validate(r).model_dump(mode="json") for r in rows]


def payment_event_snapshot(e: PaymentEvent) -> Dict[str, Any]:
    return PaymentEventResponse.model_validate(e).model_dump(mode="json")


def team_to_response(team: UserTournamentTeam) -> TeamResponse:
    return TeamResponse.model_validate(team)


def audit_log_to_response(log: AuditLog) -> AuditLogResponse:
    return AuditLogResponse.model_validate(log)
