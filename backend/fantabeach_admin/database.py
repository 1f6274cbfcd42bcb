import os
from typing import Any, Dict, Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fantabeach_admin.db")


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")}
    if url.startswith("sqlite"):
        # Request handlers run in FastAPI's threadpool
        options["connect_args"] = {"check_same_thread": False}
    return options


engine: Engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))


def get_session() -> Generator[Session, None, None]:
    """Request-scoped session; the repository commits explicitly."""
    with Session(engine) as session:
        yield session


def import_models() -> None:
    """Register every table with SQLModel metadata"""
    from fantabeach_admin.models.audit_log import AuditLog  # noqa: F401
    from fantabeach_admin.models.entry_list_item import EntryListItem  # noqa: F401
    from fantabeach_admin.models.fantasy_team import TournamentRegistration, UserTournamentTeam  # noqa: F401
    from fantabeach_admin.models.league import LeaderboardRow, League  # noqa: F401
    from fantabeach_admin.models.match import Match  # noqa: F401
    from fantabeach_admin.models.payment_event import PaymentEvent  # noqa: F401
    from fantabeach_admin.models.player import Player  # noqa: F401
    from fantabeach_admin.models.scoring import ScoringConfig, ScoringRun  # noqa: F401
    from fantabeach_admin.models.season import Season  # noqa: F401
    from fantabeach_admin.models.tournament import Tournament  # noqa: F401
    from fantabeach_admin.models.user import AdminSession, User  # noqa: F401


def init_db() -> None:
    """Create any missing tables."""
    import_models()
    SQLModel.metadata.create_all(engine)
