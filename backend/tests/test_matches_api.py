import pytest

from tests.conftest import audit_total, utc

# Friday of the default tournament is 2026-06-19 in Rome; creation opens on the 18th
MATCH_DAY_EVE = utc(2026, 6, 18, 10)


def match_payload(**overrides):
    payload = {
        "phase": "main_draw",
        "day": "friday",
        "round": 1,
        "slot": 1,
        "pair_a_id": "P1",
        "pair_b_id": "P2",
        "scheduled_at": "2026-06-19T09:00:00Z",
    }
    payload.update(overrides)
    return payload


def straight_sets(a_wins=True):
    if a_wins:
        return {"set_scores": [{"pair_a_score": 21, "pair_b_score": 15}, {"pair_a_score": 21, "pair_b_score": 18}]}
    return {"set_scores": [{"pair_a_score": 15, "pair_b_score": 21}, {"pair_a_score": 18, "pair_b_score": 21}]}


@pytest.fixture
def matches_url(tournament):
    return f"/api/admin/tournaments/{tournament['id']}/matches"


@pytest.fixture
def first_round(client, auth_headers, entry_list, matches_url, clock):
    """Main draw semifinals P1-P2 and P3-P4."""
    clock.set(MATCH_DAY_EVE)
    created = []
    for slot, (pair_a, pair_b) in enumerate((("P1", "P2"), ("P3", "P4")), start=1):
        response = client.post(
            matches_url, json=match_payload(slot=slot, pair_a_id=pair_a, pair_b_id=pair_b), headers=auth_headers
        )
        assert response.status_code == 201, response.text
        created.append(response.json())
    return created


def complete(client, headers, match_id, body):
    return client.post(f"/api/admin/matches/{match_id}/complete", json=body, headers=headers)


def match_audit_actions(client, headers):
    items = client.get("/api/admin/audit-logs", params={"entity_type": "match"}, headers=headers).json()["items"]
    return [item["action"] for item in items]


def test_create_match_inside_window(client, auth_headers, first_round):
    match = first_round[0]
    assert match["status"] == "scheduled"
    assert match["scheduled_at"] == "2026-06-19T09:00:00Z"
    assert match["set_scores"] == []
    assert match["winner_pair_id"] is None
    assert match_audit_actions(client, auth_headers) == ["match.create", "match.create"]


def test_scheduled_at_is_normalized_to_utc(client, auth_headers, entry_list, matches_url, clock):
    clock.set(MATCH_DAY_EVE)
    response = client.post(matches_url, json=match_payload(scheduled_at="2026-06-19T11:00:00+02:00"), headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["scheduled_at"] == "2026-06-19T09:00:00Z"


def test_scheduled_date_must_match_day_bucket(client, auth_headers, entry_list, matches_url, clock):
    clock.set(MATCH_DAY_EVE)
    # 22:30 UTC on the 19th is already Saturday in Rome
    response = client.post(matches_url, json=match_payload(scheduled_at="2026-06-19T22:30:00Z"), headers=auth_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "SCHEDULE_WINDOW_VIOLATION"
    assert body["details"] == {
        "day": "friday",
        "expected_date": "2026-06-19",
        "scheduled_date": "2026-06-20",
        "timezone": "Europe/Rome",
    }


def test_creation_outside_insertion_window(client, auth_headers, entry_list, matches_url, clock):
    clock.set(utc(2026, 6, 16, 10))
    response = client.post(matches_url, json=match_payload(), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "SCHEDULE_WINDOW_VIOLATION"
    assert response.json()["details"] == {
        "day": "friday",
        "window_start_date": "2026-06-18",
        "window_end_date": "2026-06-19",
        "today_date": "2026-06-16",
        "timezone": "Europe/Rome",
    }

    clock.set(MATCH_DAY_EVE)
    saturday = client.post(
        matches_url, json=match_payload(day="saturday", scheduled_at="2026-06-20T09:00:00Z"), headers=auth_headers
    )
    assert saturday.status_code == 400
    assert saturday.json()["details"]["window_start_date"] == "2026-06-19"


def test_unknown_pair_is_rejected(client, auth_headers, entry_list, matches_url, clock):
    clock.set(MATCH_DAY_EVE)
    response = client.post(matches_url, json=match_payload(pair_b_id="P99"), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"pair_b_id": "P99"}


def test_bracket_position_is_unique(client, auth_headers, first_round, matches_url):
    response = client.post(matches_url, json=match_payload(pair_a_id="P3", pair_b_id="P4"), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"]["match_id"] == first_round[0]["id"]


def test_placeholder_pairs_are_allowed_on_creation(client, auth_headers, first_round, matches_url):
    response = client.post(
        matches_url,
        json=match_payload(round=2, slot=1, pair_a_id="__TBD__", pair_b_id="__TBD__"),
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["pair_a_id"] == "__TBD__"


def test_complete_creates_successor_and_audits_in_order(client, auth_headers, first_round):
    response = complete(client, auth_headers, first_round[0]["id"], straight_sets())

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["match"]["status"] == "completed"
    assert data["match"]["winner_pair_id"] == "P1"
    assert data["match"]["completed_at"] == "2026-06-18T10:00:00"
    assert [s["set_number"] for s in data["match"]["set_scores"]] == [1, 2]

    assert len(data["progressed"]) == 1
    final = data["progressed"][0]
    assert (final["phase"], final["round"], final["slot"]) == ("main_draw", 2, 1)
    assert (final["pair_a_id"], final["pair_b_id"]) == ("P1", "__TBD__")
    assert len(data["bracket"]["nodes"]) == 3
    assert {(e["from_node_id"], e["to_node_id"]) for e in data["bracket"]["edges"]} == {
        (f"node_{first_round[0]['id']}", f"node_{final['id']}"),
        (f"node_{first_round[1]['id']}", f"node_{final['id']}"),
    }

    assert match_audit_actions(client, auth_headers)[:2] == ["match.complete", "match.progression.created"]


def test_second_semifinal_fills_other_side(client, auth_headers, first_round):
    final_id = complete(client, auth_headers, first_round[0]["id"], straight_sets()).json()["progressed"][0]["id"]
    response = complete(client, auth_headers, first_round[1]["id"], straight_sets(a_wins=False))

    progressed = response.json()["progressed"]
    assert [m["id"] for m in progressed] == [final_id]
    assert (progressed[0]["pair_a_id"], progressed[0]["pair_b_id"]) == ("P1", "P4")

    log = client.get(
        "/api/admin/audit-logs", params={"action": "match.progression.updated"}, headers=auth_headers
    ).json()["items"][0]
    assert log["before"]["pair_b_id"] == "__TBD__"
    assert log["after"]["pair_b_id"] == "P4"


def test_completing_placeholder_match_changes_nothing(client, auth_headers, first_round):
    final_id = complete(client, auth_headers, first_round[0]["id"], straight_sets()).json()["progressed"][0]["id"]
    before = audit_total(client, auth_headers)

    response = complete(client, auth_headers, final_id, straight_sets())

    assert response.status_code == 400
    assert response.json()["details"] == {"pair_a_id": "P1", "pair_b_id": "__TBD__"}
    assert audit_total(client, auth_headers) == before
    final = next(m for m in client.get(
        f"/api/admin/tournaments/{first_round[0]['tournament_id']}/matches", headers=auth_headers
    ).json() if m["id"] == final_id)
    assert final["status"] == "scheduled"
    assert final["set_scores"] == []


def test_complete_requires_a_winner(client, auth_headers, first_round):
    body = {"set_scores": [{"pair_a_score": 21, "pair_b_score": 15}]}
    response = complete(client, auth_headers, first_round[0]["id"], body)
    assert response.status_code == 400

    too_many = {"set_scores": [{"pair_a_score": 21, "pair_b_score": 15}] * 4}
    assert complete(client, auth_headers, first_round[0]["id"], too_many).status_code == 400


def test_complete_rejects_sets_after_the_match_is_decided(client, auth_headers, first_round):
    before = audit_total(client, auth_headers)
    body = straight_sets()
    body["set_scores"].append({"pair_a_score": 10, "pair_b_score": 15})
    response = complete(client, auth_headers, first_round[0]["id"], body)
    assert response.status_code == 400
    assert response.json()["details"] == {"best_of": 3, "decided_after_set": 2, "sets": 3}
    assert audit_total(client, auth_headers) == before


def test_completed_match_cannot_be_completed_again(client, auth_headers, first_round):
    complete(client, auth_headers, first_round[0]["id"], straight_sets())
    response = complete(client, auth_headers, first_round[0]["id"], straight_sets(a_wins=False))
    assert response.status_code == 400
    assert response.json()["details"]["status"] == "completed"


def test_correction_before_lock_reroutes_winner(client, auth_headers, first_round):
    match_id = first_round[0]["id"]
    complete(client, auth_headers, match_id, straight_sets())

    response = client.post(f"/api/admin/matches/{match_id}/correct", json=straight_sets(a_wins=False), headers=auth_headers)

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["match"]["status"] == "corrected"
    assert data["match"]["winner_pair_id"] == "P2"
    assert data["progressed"][0]["pair_a_id"] == "P2"
    assert match_audit_actions(client, auth_headers)[:2] == ["match.correct", "match.progression.updated"]


def test_correction_after_lock_is_rejected(client, auth_headers, first_round, clock):
    match_id = first_round[0]["id"]
    complete(client, auth_headers, match_id, straight_sets())
    clock.set(utc(2026, 6, 19, 12))

    response = client.post(f"/api/admin/matches/{match_id}/correct", json=straight_sets(a_wins=False), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["details"]["lineup_lock_at"] == "2026-06-18T18:00:00Z"


def test_only_finished_matches_can_be_corrected(client, auth_headers, first_round):
    response = client.post(
        f"/api/admin/matches/{first_round[0]['id']}/correct", json=straight_sets(), headers=auth_headers
    )
    assert response.status_code == 400


def test_patch_status_transitions(client, auth_headers, first_round):
    url = f"/api/admin/matches/{first_round[0]['id']}"
    assert client.patch(url, json={"status": "live"}, headers=auth_headers).json()["status"] == "live"

    back = client.patch(url, json={"status": "scheduled"}, headers=auth_headers)
    assert back.status_code == 400
    assert back.json()["details"] == {"current_status": "live", "status": "scheduled"}

    assert client.patch(url, json={"status": "cancelled"}, headers=auth_headers).json()["status"] == "cancelled"
    assert complete(client, auth_headers, first_round[0]["id"], straight_sets()).status_code == 400


def test_patch_rejects_completed_match(client, auth_headers, first_round):
    complete(client, auth_headers, first_round[0]["id"], straight_sets())
    response = client.patch(f"/api/admin/matches/{first_round[0]['id']}", json={"status": "live"}, headers=auth_headers)
    assert response.status_code == 400


def test_patch_reschedule_checks_day_bucket(client, auth_headers, first_round):
    url = f"/api/admin/matches/{first_round[0]['id']}"
    wrong = client.patch(url, json={"scheduled_at": "2026-06-20T09:00:00Z"}, headers=auth_headers)
    assert wrong.status_code == 400
    assert wrong.json()["code"] == "SCHEDULE_WINDOW_VIOLATION"

    moved = client.patch(url, json={"day": "saturday", "scheduled_at": "2026-06-20T09:00:00Z"}, headers=auth_headers)
    assert moved.status_code == 200
    assert moved.json()["day"] == "saturday"


def test_patch_unknown_match_is_not_found(client, auth_headers, first_round):
    assert client.patch("/api/admin/matches/9999", json={"status": "live"}, headers=auth_headers).status_code == 404


def test_bracket_read_and_regenerate(client, auth_headers, tournament, first_round):
    url = f"/api/admin/tournaments/{tournament['id']}"
    bracket = client.get(f"{url}/bracket", headers=auth_headers).json()
    assert bracket["generated_at"] is None
    assert [node["match_id"] for node in bracket["nodes"]] == [m["id"] for m in first_round]
    assert bracket["edges"] == []

    rebuilt = client.post(f"{url}/bracket/rebuild", headers=auth_headers)
    assert rebuilt.status_code == 200
    assert rebuilt.json()["generated_at"] == "2026-06-18T10:00:00"
    assert rebuilt.json()["nodes"] == bracket["nodes"]

    assert client.post(f"{url}/regenerate-bracket", headers=auth_headers).status_code == 200
    logs = client.get(
        "/api/admin/audit-logs", params={"action": "tournament.bracket.regenerate"}, headers=auth_headers
    ).json()
    assert logs["total"] == 2
    assert logs["items"][0]["after"]["nodes"] == bracket["nodes"]
    assert client.get(f"{url}", headers=auth_headers).json()["bracket_generated_at"] == "2026-06-18T10:00:00"
