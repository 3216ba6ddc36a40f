"""
HTTP surface: status codes and error payloads for every route group.
"""

from datetime import date

import pytest

from app.models import Bracket, Category, Group, Match, Player, Round, Tournament

DEFAULTS = {"formatType": "SETS", "winningSets": 2, "advantageRule": "ADVANTAGE", "tiebreakTrigger": "6-6"}


@pytest.fixture
def seeded(session):
    category = Category(name="Women's Singles")
    session.add(category)
    session.flush()

    tournament = Tournament(name="Club Championship", start_date=date(2026, 6, 1), category_id=category.id)
    session.add(tournament)
    p1, p2 = Player(name="Iga"), Player(name="Coco")
    session.add(p1)
    session.add(p2)
    session.flush()

    group = Group(tournament_id=tournament.id, group_number=1)
    bracket = Bracket(tournament_id=tournament.id, bracket_type="MAIN")
    session.add(group)
    session.add(bracket)
    session.flush()
    round_ = Round(tournament_id=tournament.id, bracket_id=bracket.id, round_number=1)
    session.add(round_)
    session.flush()

    match = Match(
        tournament_id=tournament.id,
        round_id=round_.id,
        match_number=1,
        player1_id=p1.id,
        player2_id=p2.id,
    )
    session.add(match)
    session.commit()
    return {
        "category_id": category.id,
        "tournament_id": tournament.id,
        "group_id": group.id,
        "bracket_id": bracket.id,
        "round_id": round_.id,
        "match_id": match.id,
        "player_ids": (p1.id, p2.id),
    }


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["bracket_templates"] == 125


# -----------------------------------------------------------------------------
# Brackets and seeding
# -----------------------------------------------------------------------------


class TestBracketRoutes:
    def test_structure(self, client):
        response = client.get("/api/brackets/7")
        assert response.status_code == 200
        assert response.json() == {
            "playerCount": 7,
            "structure": "1000",
            "preliminaryMatches": 3,
            "byes": 1,
            "bracketSize": 8,
        }

    @pytest.mark.parametrize("raw", ["3", "129", "abc", "7.5"])
    def test_invalid_player_count(self, client, raw):
        response = client.get(f"/api/brackets/{raw}")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PLAYER_COUNT"

    def test_seeding(self, client):
        response = client.get("/api/seeding/25")
        assert response.status_code == 200
        assert response.json()["seededPlayers"] == 8
        assert response.json()["range"] == {"min": 20, "max": 39}

    def test_seeding_invalid(self, client):
        response = client.get("/api/seeding/2")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PLAYER_COUNT"


# -----------------------------------------------------------------------------
# Rule layers
# -----------------------------------------------------------------------------


class TestRuleRoutes:
    def test_default_rules_roundtrip(self, client, seeded):
        tid = seeded["tournament_id"]
        assert client.get(f"/api/tournaments/{tid}/default-rules").json()["rules"] == DEFAULTS

        new_rules = {"formatType": "STANDARD_TIEBREAK", "winningTiebreaks": 2}
        response = client.put(f"/api/tournaments/{tid}/default-rules", json={"rules": new_rules})
        assert response.status_code == 200
        assert response.json()["rules"] == new_rules

    def test_invalid_default_rules(self, client, seeded):
        tid = seeded["tournament_id"]
        response = client.put(
            f"/api/tournaments/{tid}/default-rules",
            json={"rules": {"formatType": "SETS", "winningSets": 5}},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_missing_tournament(self, client, seeded):
        assert client.get("/api/tournaments/999/default-rules").status_code == 404

    def test_scope_overrides_and_complexity(self, client, seeded):
        tid = seeded["tournament_id"]
        assert client.get(f"/api/tournaments/{tid}/rule-complexity").json()["complexity"] == "DEFAULT"

        response = client.put(f"/api/brackets/{seeded['bracket_id']}/rule-overrides", json={"overrides": {"winningSets": 1}})
        assert response.status_code == 200
        assert response.json()["ruleOverrides"] == {"winningSets": 1}
        assert client.get(f"/api/tournaments/{tid}/rule-complexity").json()["complexity"] == "MODIFIED"

        client.put(f"/api/matches/{seeded['match_id']}/rule-overrides", json={"overrides": {"tiebreakTrigger": "5-5"}})
        assert client.get(f"/api/tournaments/{tid}/rule-complexity").json()["complexity"] == "SPECIFIC"

    def test_invalid_override_key(self, client, seeded):
        response = client.put(f"/api/rounds/{seeded['round_id']}/rule-overrides", json={"overrides": {"lets": "NONE"}})
        assert response.status_code == 422

    def test_missing_scope(self, client, seeded):
        response = client.put("/api/groups/999/rule-overrides", json={"overrides": {"winningSets": 1}})
        assert response.status_code == 404


# -----------------------------------------------------------------------------
# Match lifecycle
# -----------------------------------------------------------------------------


class TestMatchRoutes:
    def test_full_lifecycle(self, client, seeded):
        mid = seeded["match_id"]
        client.put(f"/api/brackets/{seeded['bracket_id']}/rule-overrides", json={"overrides": {"winningSets": 1}})

        live = client.get(f"/api/matches/{mid}/effective-rules").json()
        assert live["source"] == "CASCADED"
        assert live["rules"]["winningSets"] == 1
        assert [step["level"] for step in live["cascade"]] == ["tournament", "bracket"]

        assert client.post(f"/api/matches/{mid}/start").json()["status"] == "IN_PROGRESS"

        response = client.post(
            f"/api/matches/{mid}/complete",
            json={"score": {"sets": ["6-3", "6-4"]}, "winner_side": 2},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["match"]["status"] == "COMPLETED"
        assert body["match"]["completedWithRules"]["winningSets"] == 1
        assert body["rankedEntries"] == 2

        # later changes do not reach the completed match
        client.put(f"/api/brackets/{seeded['bracket_id']}/rule-overrides", json={"overrides": {"winningSets": 2}})
        frozen = client.get(f"/api/matches/{mid}/effective-rules").json()
        assert frozen["source"] == "SNAPSHOT"
        assert frozen["rules"]["winningSets"] == 1
        assert frozen["snapshotDate"] is not None
        assert "cascade" not in frozen

        rankings = client.get(f"/api/categories/{seeded['category_id']}/rankings").json()["rankings"]
        assert [(r["entityName"], r["rank"], r["points"]) for r in rankings] == [("Coco", 1, 100), ("Iga", 2, 0)]

    def test_complete_twice_conflicts(self, client, seeded):
        mid = seeded["match_id"]
        client.post(f"/api/matches/{mid}/start")
        assert client.post(f"/api/matches/{mid}/complete").status_code == 200

        response = client.post(f"/api/matches/{mid}/complete")
        assert response.status_code == 409
        assert response.json()["code"] == "MATCH_ALREADY_COMPLETED"

    def test_complete_scheduled_match(self, client, seeded):
        response = client.post(f"/api/matches/{seeded['match_id']}/complete")
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_TRANSITION"
        assert body["currentStatus"] == "SCHEDULED"
        assert body["requestedStatus"] == "COMPLETED"

    def test_override_after_completion(self, client, seeded):
        mid = seeded["match_id"]
        client.post(f"/api/matches/{mid}/start")
        client.post(f"/api/matches/{mid}/complete")
        response = client.put(f"/api/matches/{mid}/rule-overrides", json={"overrides": {"winningSets": 1}})
        assert response.status_code == 409
        assert response.json()["code"] == "RULE_CHANGE_ON_COMPLETED_MATCH"

    def test_missing_match(self, client, seeded):
        response = client.get("/api/matches/4242/effective-rules")
        assert response.status_code == 404
        assert response.json() == {"detail": "Match 4242 not found", "code": "MATCH_NOT_FOUND", "matchId": 4242}

    def test_negative_points_rejected(self, client, seeded):
        mid = seeded["match_id"]
        client.post(f"/api/matches/{mid}/start")
        response = client.post(f"/api/matches/{mid}/complete", json={"winner_side": 1, "points_awarded": -5})
        assert response.status_code == 422


# -----------------------------------------------------------------------------
# Rankings
# -----------------------------------------------------------------------------


def test_recalculate_rankings(client, seeded):
    response = client.post(f"/api/categories/{seeded['category_id']}/rankings/recalculate")
    assert response.status_code == 200
    assert response.json()["recalculated"] == 0
    assert client.get("/api/categories/999/rankings").status_code == 404


def test_tournament_result_route(client, seeded):
    tid = seeded["tournament_id"]
    client.put(f"/api/tournaments/{tid}/format", json={"format_type": "KNOCKOUT", "player_count": 8})
    response = client.put(f"/api/tournaments/{tid}/point-config", json={"config": {"calculationMethod": "PLACEMENT"}})
    assert response.status_code == 200
    assert response.json()["pointConfig"]["multiplicativeValue"] == 2

    iga, coco = seeded["player_ids"]
    response = client.post(f"/api/tournaments/{tid}/results", json={"entity_id": iga, "placement": 3})
    assert response.status_code == 200
    # (8 - 3 + 1) * 2
    assert response.json()["points"] == 12
    assert response.json()["rank"] == 1

    response = client.post(f"/api/tournaments/{tid}/results", json={"entity_id": coco, "placement": 9})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PLACEMENT"
    assert client.post("/api/tournaments/999/results", json={"entity_id": 1}).status_code == 404


# -----------------------------------------------------------------------------
# Format, rule-change impact and early tiebreak
# -----------------------------------------------------------------------------


class TestFormatRoutes:
    def test_format_locked_after_start(self, client, seeded):
        tid = seeded["tournament_id"]
        response = client.put(f"/api/tournaments/{tid}/format", json={"format_type": "GROUP", "player_count": 7})
        assert response.status_code == 200
        assert response.json() == {"tournamentId": tid, "formatType": "GROUP", "playerCount": 7}

        client.post(f"/api/matches/{seeded['match_id']}/start")
        response = client.put(f"/api/tournaments/{tid}/format", json={"format_type": "KNOCKOUT"})
        assert response.status_code == 409
        assert response.json()["code"] == "FORMAT_CHANGE_NOT_ALLOWED"
        assert response.json()["matchesCount"] == 1

    def test_unknown_format_and_bad_count(self, client, seeded):
        tid = seeded["tournament_id"]
        assert client.put(f"/api/tournaments/{tid}/format", json={"format_type": "LADDER"}).status_code == 422
        response = client.put(f"/api/tournaments/{tid}/format", json={"format_type": "GROUP", "player_count": 2})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PLAYER_COUNT"

    def test_rule_change_impact(self, client, seeded):
        tid = seeded["tournament_id"]
        report = client.get(f"/api/tournaments/{tid}/rule-change-impact", params={"change_type": "default-rules"}).json()
        assert report["allowed"] is True
        assert report["impact"]["affectedMatches"] == 1

        response = client.get(f"/api/tournaments/{tid}/rule-change-impact", params={"change_type": "colors"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_RULE_CHANGE_TYPE"

    def test_bracket_and_seeding_for_tournament(self, client, seeded):
        tid = seeded["tournament_id"]
        response = client.get(f"/api/tournaments/{tid}/bracket")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PLAYER_COUNT"

        client.put(f"/api/tournaments/{tid}/format", json={"format_type": "KNOCKOUT", "player_count": 7})
        assert client.get(f"/api/tournaments/{tid}/bracket").json()["structure"] == "1000"
        assert client.get(f"/api/tournaments/{tid}/seeding").json()["seededPlayers"] == 2

    def test_early_tiebreak(self, client, seeded, session):
        response = client.put(f"/api/rounds/{seeded['round_id']}/early-tiebreak", json={"enabled": True})
        assert response.status_code == 400
        assert response.json() == {
            "detail": "Early tiebreak only applicable to consolation or placement brackets",
            "code": "INVALID_BRACKET_TYPE_FOR_EARLY_TIEBREAK",
            "bracketType": "MAIN",
        }

        bracket = Bracket(tournament_id=seeded["tournament_id"], bracket_type="CONSOLATION")
        session.add(bracket)
        session.flush()
        round_ = Round(tournament_id=seeded["tournament_id"], bracket_id=bracket.id, round_number=1)
        session.add(round_)
        session.commit()

        response = client.put(f"/api/rounds/{round_.id}/early-tiebreak", json={"enabled": True})
        assert response.status_code == 200
        assert response.json()["ruleOverrides"] == {"earlyTiebreakEnabled": True}
        assert client.put("/api/rounds/999/early-tiebreak", json={"enabled": True}).status_code == 404
