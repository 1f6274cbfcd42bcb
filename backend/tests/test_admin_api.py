"""Seasons, players, audit trail, payments and the overview dashboard."""
from fantabeach_admin.models.payment_event import PaymentEvent
from tests.conftest import utc


def create_seasons(client, headers, clock, years):
    ids = []
    for day, year in enumerate(years, start=1):
        clock.set(utc(2026, 6, day, 9))
        response = client.post("/api/admin/seasons", json={"year": year, "name": f"Season {year}"}, headers=headers)
        assert response.status_code == 201, response.text
        ids.append(response.json()["id"])
    return ids


def test_season_create_and_list(client, auth_headers, clock):
    create_seasons(client, auth_headers, clock, [2024, 2026, 2025])
    data = client.get("/api/admin/seasons", headers=auth_headers).json()
    assert data["total"] == 3
    assert [s["year"] for s in data["items"]] == [2026, 2025, 2024]
    assert data["items"][0]["status"] == "upcoming"


def test_season_validation_errors(client, auth_headers):
    response = client.post("/api/admin/seasons", json={"year": 2019, "name": "Old"}, headers=auth_headers)
    assert response.status_code == 400
    errors = response.json()["details"]["errors"]
    assert [e["field"] for e in errors] == ["year"]


def test_season_update(client, auth_headers, season):
    response = client.patch(f"/api/admin/seasons/{season.id}", json={"status": "closed"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "closed"
    assert client.patch("/api/admin/seasons/999", json={"status": "closed"}, headers=auth_headers).status_code == 404


def test_players_filter_and_create(client, auth_headers, players):
    women = client.get("/api/admin/players", params={"gender": "women"}, headers=auth_headers).json()
    assert women["total"] == 2
    assert {p["id"] for p in women["items"]} == set(players["women"])

    response = client.post(
        "/api/admin/players",
        json={"first_name": "Marta", "last_name": "Menegatti", "gender": "women", "country_code": "ita"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["status"] == "active"

    bad = client.post(
        "/api/admin/players", json={"first_name": "X", "last_name": "Y", "gender": "mixed"}, headers=auth_headers
    )
    assert bad.status_code == 400


def test_audit_pagination_and_clamping(client, auth_headers, clock):
    create_seasons(client, auth_headers, clock, [2024, 2025, 2026])

    page = client.get("/api/admin/audit-logs", params={"page": 2, "page_size": 2}, headers=auth_headers).json()
    assert page["total"] == 4
    assert (page["page"], page["page_size"]) == (2, 2)
    assert [item["action"] for item in page["items"]] == ["season.create", "auth.login"]

    clamped = client.get("/api/admin/audit-logs", params={"page": 0, "page_size": 0}, headers=auth_headers).json()
    assert (clamped["page"], clamped["page_size"]) == (1, 1)
    assert len(clamped["items"]) == 1


def test_audit_filters(client, auth_headers, admin_user, clock):
    ids = create_seasons(client, auth_headers, clock, [2024, 2025, 2026])

    def query(**params):
        return client.get("/api/admin/audit-logs", params=params, headers=auth_headers).json()

    assert query(action="season.create")["total"] == 3
    assert query(entity_type="season", entity_id=str(ids[1]))["items"][0]["after"]["year"] == 2025
    assert query(actor_user_id=str(admin_user.id))["total"] == 4
    assert query(actor_user_id="system")["total"] == 0

    window = query(**{"from": "2026-06-02T00:00:00Z", "to": "2026-06-02T23:59:59Z"})
    assert [item["entity_id"] for item in window["items"]] == [str(ids[1])]


def test_audit_entry_by_id(client, auth_headers):
    latest = client.get("/api/admin/audit-logs", headers=auth_headers).json()["items"][0]
    response = client.get(f"/api/admin/audit-logs/{latest['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == latest
    assert client.get("/api/admin/audit-logs/999", headers=auth_headers).status_code == 404


def test_payment_reverify(client, auth_headers, session):
    event = PaymentEvent(
        provider="stripe",
        external_id="evt_123",
        status="rejected",
        received_at=utc(2026, 5, 30, 8).replace(tzinfo=None),
        payload={"amount": 499},
    )
    session.add(event)
    session.commit()
    session.refresh(event)

    listing = client.get("/api/admin/payments/events", headers=auth_headers).json()
    assert listing["total"] == 1
    assert listing["items"][0]["payload"] == {"amount": 499}

    response = client.post(f"/api/admin/payments/events/{event.id}/reverify", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "verified"
    assert response.json()["verified_at"] == "2026-06-01T10:00:00"

    log = client.get(
        "/api/admin/audit-logs", params={"action": "payment.reverify"}, headers=auth_headers
    ).json()["items"][0]
    assert log["before"]["status"] == "rejected"
    assert log["after"]["status"] == "verified"

    assert client.post("/api/admin/payments/events/999/reverify", headers=auth_headers).status_code == 404


def test_overview_counts(client, auth_headers, session, tournament):
    session.add(
        PaymentEvent(
            provider="apple",
            external_id="tx_1",
            status="rejected",
            received_at=utc(2026, 5, 30, 8).replace(tzinfo=None),
        )
    )
    session.commit()

    data = client.get("/api/admin/overview", headers=auth_headers).json()
    assert data == {
        "active_tournaments": 0,
        "locked_entry_lists": 0,
        "pending_matches": 0,
        "completed_matches": 0,
        "scoring_runs": 0,
        "failed_payment_events": 1,
    }

    client.patch(f"/api/admin/tournaments/{tournament['id']}", json={"status": "open"}, headers=auth_headers)
    assert client.get("/api/admin/overview", headers=auth_headers).json()["active_tournaments"] == 1


def test_health_check(client):
    assert client.get("/api/health").json() == {"app_name": "FantaBeach Admin API", "status": "healthy"}
