import os

# Keep the app's own engine off disk; every request is routed to test_engine below
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
# Sessions must outlive the frozen clock jumping ahead to match days
os.environ.setdefault("SESSION_TTL_HOURS", str(24 * 60))
# Minimum bcrypt cost keeps logins fast in tests
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timezone  # noqa: E402
from typing import Dict, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from fantabeach_admin.clock import get_now  # noqa: E402
from fantabeach_admin.database import get_session, import_models  # noqa: E402
from fantabeach_admin.main import app  # noqa: E402
from fantabeach_admin.models.player import Player  # noqa: E402
from fantabeach_admin.models.season import Season  # noqa: E402
from fantabeach_admin.models.user import User  # noqa: E402
from fantabeach_admin.services.auth import hash_password  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables dropped and recreated per test (see session_fixture)
# 4. get_session and get_now overridden on the app (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

ADMIN_EMAIL = "admin@fantabeach.io"
ADMIN_PASSWORD = "admin123"

# Lineup lock used by the default tournament: 2026-06-18 20:00 in Rome
DEFAULT_LOCK_AT = "2026-06-18T18:00:00Z"
DEFAULT_TIMEZONE = "Europe/Rome"


class FrozenClock:
    """Mutable stand-in for `get_now`."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


def utc(year, month, day, hour=0, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    import_models()
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="clock")
def clock_fixture() -> FrozenClock:
    return FrozenClock(utc(2026, 6, 1, 10, 0))


@pytest.fixture(name="client")
def client_fixture(session: Session, clock: FrozenClock):
    """Test client with the session and clock dependencies overridden.

    Overrides are set BEFORE TestClient() and stay in place for its lifetime.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_now] = clock

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(session: Session) -> User:
    user = User(
        email=ADMIN_EMAIL,
        display_name="Admin",
        role="super_admin",
        active=True,
        password_hash=hash_password(ADMIN_PASSWORD),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def auth_headers(client: TestClient, admin_user: User) -> Dict[str, str]:
    response = client.post("/api/admin/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def season(session: Session) -> Season:
    season = Season(year=2026, name="Season 2026", status="active")
    session.add(season)
    session.commit()
    session.refresh(season)
    return season


@pytest.fixture
def players(session: Session) -> Dict[str, List[int]]:
    """Eight men and two women."""
    created = {"men": [], "women": []}
    for index in range(8):
        player = Player(first_name=f"Man{index}", last_name="Test", gender="men", country_code="ITA")
        session.add(player)
        session.commit()
        session.refresh(player)
        created["men"].append(player.id)
    for index in range(2):
        player = Player(first_name=f"Woman{index}", last_name="Test", gender="women", country_code="ITA")
        session.add(player)
        session.commit()
        session.refresh(player)
        created["women"].append(player.id)
    return created


def tournament_payload(season_id: int, **overrides) -> dict:
    payload = {
        "season_id": season_id,
        "name": "Jesolo Open",
        "slug": "jesolo-open",
        "location": "Jesolo",
        "gender": "men",
        "is_public": True,
        "start_date": "2026-06-19",
        "end_date": "2026-06-21",
        "policy": {
            "roster_size": 8,
            "starter_count": 4,
            "reserve_count": 2,
            "lineup_lock_at": DEFAULT_LOCK_AT,
            "timezone": DEFAULT_TIMEZONE,
        },
    }
    policy = overrides.pop("policy", None)
    payload.update(overrides)
    if policy:
        payload["policy"].update(policy)
    return payload


@pytest.fixture
def tournament(client: TestClient, auth_headers, season: Season) -> dict:
    response = client.post("/api/admin/tournaments", json=tournament_payload(season.id), headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def entry_item(tournament_id: int, pair_id: str, player_ids, entry_status="pool", ranking=0, reserve_order=None) -> dict:
    return {
        "tournament_id": tournament_id,
        "pair": {"id": pair_id, "tournament_id": tournament_id, "player_ids": list(player_ids)},
        "ranking": ranking,
        "entry_status": entry_status,
        "reserve_order": reserve_order,
    }


@pytest.fixture
def entry_list(client: TestClient, auth_headers, tournament, players) -> List[dict]:
    """Four men's pairs P1..P4 on the tournament's entry list."""
    men = players["men"]
    tid = tournament["id"]
    items = [entry_item(tid, f"P{i + 1}", men[2 * i:2 * i + 2], ranking=100 - i) for i in range(4)]
    response = client.put(f"/api/admin/tournaments/{tid}/entry-list", json={"items": items}, headers=auth_headers)
    assert response.status_code == 200, response.text
    return response.json()


def audit_total(client: TestClient, headers) -> int:
    response = client.get("/api/admin/audit-logs", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["total"]
