from fantabeach_admin.models.audit_log import AuditLog
from fantabeach_admin.models.entry_list_item import EntryListItem
from fantabeach_admin.models.fantasy_team import TournamentRegistration, UserTournamentTeam
from fantabeach_admin.models.league import LeaderboardRow, League
from fantabeach_admin.models.match import Match
from fantabeach_admin.models.payment_event import PaymentEvent
from fantabeach_admin.models.player import Player
from fantabeach_admin.models.scoring import ScoringConfig, ScoringRun
from fantabeach_admin.models.season import Season
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.models.user import AdminSession, User

__all__ = [
    "AdminSession",
    "AuditLog",
    "EntryListItem",
    "LeaderboardRow",
    "League",
    "Match",
    "PaymentEvent",
    "Player",
    "ScoringConfig",
    "ScoringRun",
    "Season",
    "Tournament",
    "TournamentRegistration",
    "User",
    "UserTournamentTeam",
]
