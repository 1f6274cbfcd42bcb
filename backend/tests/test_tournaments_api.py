from fantabeach_admin.models.tournament import Tournament
from tests.conftest import audit_total, tournament_payload, utc

BASE = "/api/admin/tournaments"


def audit_items(client, headers, **params):
    response = client.get("/api/admin/audit-logs", params=params, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["items"]


def test_create_tournament_with_default_scoring_config(client, auth_headers, tournament):
    assert tournament["status"] == "draft"
    assert tournament["policy"] == {
        "roster_size": 8,
        "starter_count": 4,
        "reserve_count": 2,
        "lineup_lock_at": "2026-06-18T18:00:00Z",
        "timezone": "Europe/Rome",
        "no_retroactive_scoring": True,
    }
    assert tournament["entry_list_locked"] is False
    assert tournament["lineup_locked"] is False

    config = client.get(f"{BASE}/{tournament['id']}/scoring/config", headers=auth_headers)
    assert config.status_code == 200
    assert config.json()["base_point_multiplier"] == 1
    assert config.json()["bonus_win_20"] == 6
    assert config.json()["bonus_win_21"] == 3


def test_create_audit_snapshot_matches_read_model(client, auth_headers, tournament):
    logs = audit_items(client, auth_headers, action="tournament.create")
    assert len(logs) == 1
    assert logs[0]["entity_id"] == str(tournament["id"])
    assert logs[0]["before"] is None
    assert logs[0]["after"] == client.get(f"{BASE}/{tournament['id']}", headers=auth_headers).json()


def test_policy_over_roster_is_rejected(client, auth_headers, season):
    payload = tournament_payload(season.id, policy={"roster_size": 10, "starter_count": 6, "reserve_count": 5})
    before = audit_total(client, auth_headers)

    response = client.post(BASE, json=payload, headers=auth_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "BAD_REQUEST"
    assert body["details"] == {"roster_size": 10, "starter_count": 6, "reserve_count": 5}
    assert audit_total(client, auth_headers) == before
    assert client.get(BASE, headers=auth_headers).json() == []


def test_create_requires_existing_season(client, auth_headers, season):
    response = client.post(BASE, json=tournament_payload(season.id + 100), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"season_id": season.id + 100}


def test_unknown_timezone_falls_back_to_utc(client, auth_headers, season):
    payload = tournament_payload(season.id, policy={"timezone": "Mars/Olympus_Mons"})
    response = client.post(BASE, json=payload, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["policy"]["timezone"] == "UTC"


def test_invalid_lock_timestamp_is_rejected(client, auth_headers, season):
    payload = tournament_payload(season.id, policy={"lineup_lock_at": "next friday"})
    response = client.post(BASE, json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"lineup_lock_at": "next friday"}


def test_slug_must_be_unique(client, auth_headers, tournament, season):
    response = client.post(BASE, json=tournament_payload(season.id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"slug": "jesolo-open"}


def test_end_date_before_start_date_is_a_validation_error(client, auth_headers, season):
    payload = tournament_payload(season.id, start_date="2026-06-21", end_date="2026-06-19")
    response = client.post(BASE, json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"


def test_list_filters(client, auth_headers, tournament, season):
    women = tournament_payload(season.id, slug="jesolo-women", gender="women", start_date="2026-07-03", end_date="2026-07-05")
    assert client.post(BASE, json=women, headers=auth_headers).status_code == 201

    everything = client.get(BASE, headers=auth_headers).json()
    assert [t["slug"] for t in everything] == ["jesolo-women", "jesolo-open"]
    only_men = client.get(BASE, params={"gender": "men"}, headers=auth_headers).json()
    assert [t["slug"] for t in only_men] == ["jesolo-open"]
    assert client.get(BASE, params={"season_id": season.id + 1}, headers=auth_headers).json() == []


def test_get_unknown_tournament_is_not_found(client, auth_headers):
    response = client.get(f"{BASE}/999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_status_moves_forward_unless_overridden(client, auth_headers, tournament):
    url = f"{BASE}/{tournament['id']}"
    assert client.patch(url, json={"status": "open"}, headers=auth_headers).json()["status"] == "open"

    backwards = client.patch(url, json={"status": "draft"}, headers=auth_headers)
    assert backwards.status_code == 400
    assert backwards.json()["details"] == {"current_status": "open", "status": "draft"}

    overridden = client.patch(url, json={"status": "draft", "override_status": True}, headers=auth_headers)
    assert overridden.status_code == 200
    assert overridden.json()["status"] == "draft"


def test_update_is_audited_with_before_and_after(client, auth_headers, tournament):
    url = f"{BASE}/{tournament['id']}"
    response = client.patch(url, json={"name": "Jesolo Grand Slam", "policy": {"starter_count": 5}}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["policy"]["starter_count"] == 5

    log = audit_items(client, auth_headers, action="tournament.update")[0]
    assert log["before"]["name"] == "Jesolo Open"
    assert log["after"] == response.json()


def test_gender_is_fixed_once_pairs_are_entered(client, auth_headers, tournament, entry_list):
    response = client.patch(f"{BASE}/{tournament['id']}", json={"gender": "women"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"tournament_gender": "men", "gender": "women"}


def test_lock_state_syncs_lazily_on_read(client, auth_headers, tournament, clock):
    url = f"{BASE}/{tournament['id']}"
    clock.set(utc(2026, 6, 18, 17, 59, 59))
    assert client.get(url, headers=auth_headers).json()["lineup_locked"] is False

    clock.set(utc(2026, 6, 18, 18, 0))
    data = client.get(url, headers=auth_headers).json()
    assert data["entry_list_locked"] is True
    assert data["lineup_locked"] is True
    assert data["updated_at"] == "2026-06-18T18:00:00"

    logs = audit_items(client, auth_headers, action="tournament.lock.sync")
    assert len(logs) == 1
    assert logs[0]["actor_user_id"] == "system"
    assert logs[0]["before"]["lineup_locked"] is False
    assert logs[0]["after"]["lineup_locked"] is True

    client.get(url, headers=auth_headers)
    client.get(BASE, headers=auth_headers)
    assert len(audit_items(client, auth_headers, action="tournament.lock.sync")) == 1


def test_policy_is_immutable_after_lock(client, auth_headers, tournament, clock):
    clock.set(utc(2026, 6, 19, 8))
    url = f"{BASE}/{tournament['id']}"

    response = client.patch(url, json={"policy": {"reserve_count": 1}}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"lineup_lock_at": "2026-06-18T18:00:00Z"}

    renamed = client.patch(url, json={"name": "Jesolo Open 2026"}, headers=auth_headers)
    assert renamed.status_code == 200
    assert renamed.json()["policy"]["reserve_count"] == 2


def test_entry_list_cannot_be_finalized_before_lock(client, auth_headers, tournament):
    response = client.post(f"{BASE}/{tournament['id']}/lock-entry-list", headers=auth_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "ENTRY_LIST_NOT_FINAL"
    assert body["details"] == {"lineup_lock_at": "2026-06-18T18:00:00Z", "timezone": "Europe/Rome"}


def test_entry_list_lock_after_lock_instant(client, auth_headers, tournament, clock):
    clock.set(utc(2026, 6, 18, 19))
    response = client.post(f"{BASE}/{tournament['id']}/lock-entry-list", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "entry_locked"
    assert response.json()["entry_list_locked"] is True

    actions = [log["action"] for log in audit_items(client, auth_headers, entity_type="tournament")]
    assert actions[:2] == ["tournament.entry_list.lock", "tournament.lock.sync"]


def test_entry_list_lock_with_unparseable_lock_timestamp(client, auth_headers, tournament, session):
    row = session.get(Tournament, tournament["id"])
    row.lineup_lock_at = "not-a-timestamp"
    session.add(row)
    session.commit()

    response = client.post(f"{BASE}/{tournament['id']}/lock-entry-list", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "ENTRY_LIST_LOCK_INVALID"


def test_teams_list_is_empty_for_new_tournament(client, auth_headers, tournament):
    response = client.get(f"{BASE}/{tournament['id']}/teams", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == []
