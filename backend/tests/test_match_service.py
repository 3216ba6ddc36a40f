"""
Match lifecycle against the database: cascade from the ORM graph, atomic
completion with rule snapshot, and the immutability of completed matches.
"""

from datetime import date, datetime

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from app.errors import (
    AlreadyCompleted,
    InvalidBracketTypeForEarlyTiebreak,
    InvalidTransition,
    MatchNotFound,
    RuleChangeOnCompletedMatch,
)
from app.models import Bracket, Category, Group, Match, Player, RankingEntry, Round, Tournament
from app.services import match_service
from app.services.rule_cascade import COMPLEXITY_DEFAULT, COMPLEXITY_MODIFIED, COMPLEXITY_SPECIFIC, SOURCE_SNAPSHOT

DEFAULTS = {"formatType": "SETS", "winningSets": 2, "advantageRule": "ADVANTAGE", "tiebreakTrigger": "6-6"}


def seed_tournament(session: Session):
    """One tournament with a group match and a bracket/round match."""
    tournament = Tournament(name="Spring Open", start_date=date(2026, 5, 1), default_scoring_rules=dict(DEFAULTS))
    session.add(tournament)
    session.flush()

    group = Group(tournament_id=tournament.id, group_number=1)
    bracket = Bracket(tournament_id=tournament.id, bracket_type="MAIN")
    session.add(group)
    session.add(bracket)
    session.flush()

    round_ = Round(tournament_id=tournament.id, bracket_id=bracket.id, round_number=1)
    session.add(round_)
    session.flush()

    group_match = Match(tournament_id=tournament.id, group_id=group.id, match_number=1)
    bracket_match = Match(tournament_id=tournament.id, round_id=round_.id, match_number=2)
    session.add(group_match)
    session.add(bracket_match)
    session.commit()

    return {
        "tournament": tournament,
        "group": group,
        "bracket": bracket,
        "round": round_,
        "group_match": group_match,
        "bracket_match": bracket_match,
    }


@pytest.fixture
def data(session):
    return seed_tournament(session)


# -----------------------------------------------------------------------------
# Live cascade from the ORM graph
# -----------------------------------------------------------------------------


class TestEffectiveRules:
    def test_defaults(self, session, data):
        resolved = match_service.get_effective_rules_for_match(session, data["group_match"].id)
        assert resolved.rules == DEFAULTS
        assert len(resolved.cascade) == 1

    def test_round_match_inherits_its_bracket(self, session, data):
        match_service.set_scope_overrides(session, data["bracket"], {"winningSets": 1})
        match_service.set_scope_overrides(session, data["round"], {"tiebreakTrigger": "5-5"})
        match_service.set_match_overrides(session, data["bracket_match"].id, {"advantageRule": "NO_ADVANTAGE"})

        resolved = match_service.get_effective_rules_for_match(session, data["bracket_match"].id)
        assert resolved.rules == {
            "formatType": "SETS",
            "winningSets": 1,
            "advantageRule": "NO_ADVANTAGE",
            "tiebreakTrigger": "5-5",
        }
        assert [(s["level"], s.get("bracketType"), s.get("roundNumber")) for s in resolved.cascade] == [
            ("tournament", None, None),
            ("bracket", "MAIN", None),
            ("round", None, 1),
            ("match", None, None),
        ]
        assert resolved.cascade[-1]["matchNumber"] == 2

    def test_group_overrides(self, session, data):
        match_service.set_scope_overrides(session, data["group"], {"winningSets": 1})
        resolved = match_service.get_effective_rules_for_match(session, data["group_match"].id)
        assert resolved.rules["winningSets"] == 1
        assert resolved.cascade[1] == {"level": "group", "overridesApplied": {"winningSets": 1}, "groupNumber": 1}

    def test_clearing_override(self, session, data):
        match_service.set_scope_overrides(session, data["group"], {"winningSets": 1})
        match_service.set_scope_overrides(session, data["group"], None)
        resolved = match_service.get_effective_rules_for_match(session, data["group_match"].id)
        assert resolved.rules == DEFAULTS

    def test_missing_match(self, session, data):
        with pytest.raises(MatchNotFound):
            match_service.get_effective_rules_for_match(session, 9999)

    def test_rule_complexity(self, session, data):
        tid = data["tournament"].id
        assert match_service.get_rule_complexity(session, tid) == COMPLEXITY_DEFAULT
        match_service.set_scope_overrides(session, data["round"], {"tiebreakTrigger": "4-4"})
        assert match_service.get_rule_complexity(session, tid) == COMPLEXITY_MODIFIED
        match_service.set_match_overrides(session, data["group_match"].id, {"winningSets": 1})
        assert match_service.get_rule_complexity(session, tid) == COMPLEXITY_SPECIFIC


# -----------------------------------------------------------------------------
# Completion and snapshot
# -----------------------------------------------------------------------------


class TestCompletion:
    def test_complete_writes_snapshot(self, session, data):
        mid = data["group_match"].id
        match_service.set_scope_overrides(session, data["group"], {"winningSets": 1})
        match_service.start_match(session, mid)

        finished_at = datetime(2026, 5, 1, 18, 0)
        match = match_service.complete_match(session, mid, result={"sets": ["6-4"]}, completed_at=finished_at)

        assert match.status == "COMPLETED"
        assert match.completed_with_rules == {**DEFAULTS, "winningSets": 1}
        assert match.completed_at == finished_at
        assert match.result_json == {"sets": ["6-4"]}
        assert match.started_at is not None

    def test_snapshot_survives_later_rule_changes(self, session, data):
        mid = data["bracket_match"].id
        match_service.start_match(session, mid)
        match_service.complete_match(session, mid)

        match_service.set_tournament_default_rules(
            session, data["tournament"], {"formatType": "BIG_TIEBREAK", "winningTiebreaks": 1}
        )
        match_service.set_scope_overrides(session, data["bracket"], {"winningSets": 1})
        match_service.set_scope_overrides(session, data["round"], {"tiebreakTrigger": "3-3"})

        resolved = match_service.get_effective_rules_for_match(session, mid)
        assert resolved.source == SOURCE_SNAPSHOT
        assert resolved.rules == DEFAULTS
        assert resolved.snapshot_date is not None

        # an open sibling picks up the new defaults
        live = match_service.get_effective_rules_for_match(session, data["group_match"].id)
        assert live.rules == {"formatType": "BIG_TIEBREAK", "winningTiebreaks": 1}

    def test_override_on_completed_match_rejected(self, session, data):
        mid = data["group_match"].id
        match_service.start_match(session, mid)
        match_service.complete_match(session, mid)
        with pytest.raises(RuleChangeOnCompletedMatch):
            match_service.set_match_overrides(session, mid, {"winningSets": 1})

    def test_complete_twice(self, session, data):
        mid = data["group_match"].id
        match_service.start_match(session, mid)
        match_service.complete_match(session, mid)
        with pytest.raises(AlreadyCompleted):
            match_service.complete_match(session, mid)

    def test_scheduled_cannot_complete(self, session, data):
        mid = data["group_match"].id
        with pytest.raises(InvalidTransition):
            match_service.complete_match(session, mid)
        session.refresh(data["group_match"])
        assert data["group_match"].status == "SCHEDULED"
        assert data["group_match"].completed_with_rules is None

    def test_cancelled_cannot_start(self, session, data):
        mid = data["group_match"].id
        match_service.cancel_match(session, mid)
        with pytest.raises(InvalidTransition):
            match_service.start_match(session, mid)


# -----------------------------------------------------------------------------
# Atomicity
# -----------------------------------------------------------------------------


class TestAtomicCompletion:
    def test_snapshot_failure_leaves_match_in_progress(self, session, data, monkeypatch):
        mid = data["group_match"].id
        match_service.start_match(session, mid)

        def boom(*args, **kwargs):
            raise RuntimeError("snapshot failed")

        monkeypatch.setattr(match_service, "snapshot_on_completion", boom)
        with pytest.raises(RuntimeError):
            match_service.complete_match(session, mid)

        match = session.get(Match, mid)
        session.refresh(match)
        assert match.status == "IN_PROGRESS"
        assert match.completed_with_rules is None
        assert match.completed_at is None

    def test_commit_failure_rolls_back_everything(self, session, data, monkeypatch):
        mid = data["group_match"].id
        match_service.start_match(session, mid)

        def failing_commit():
            raise RuntimeError("disk full")

        monkeypatch.setattr(session, "commit", failing_commit)
        with pytest.raises(RuntimeError):
            match_service.complete_match(session, mid, result={"sets": ["6-0"]})
        monkeypatch.undo()

        match = session.get(Match, mid)
        session.refresh(match)
        assert match.status == "IN_PROGRESS"
        assert match.completed_with_rules is None
        assert match.result_json is None

    def test_concurrent_completion_has_one_winner(self, tmp_path):
        # File-backed DB so the two sessions hold independent connections
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
        SQLModel.metadata.create_all(engine)
        try:
            with Session(engine) as setup:
                seeded = seed_tournament(setup)
                mid = seeded["group_match"].id
                match_service.start_match(setup, mid)

            with Session(engine) as first, Session(engine) as second:
                # both sessions observe IN_PROGRESS before either writes
                assert first.get(Match, mid).status == "IN_PROGRESS"
                assert second.get(Match, mid).status == "IN_PROGRESS"

                winner = match_service.complete_match(first, mid, completed_at=datetime(2026, 5, 1, 12, 0))
                assert winner.status == "COMPLETED"

                with pytest.raises(AlreadyCompleted):
                    match_service.complete_match(second, mid, completed_at=datetime(2026, 5, 1, 12, 5))

            with Session(engine) as check:
                match = check.get(Match, mid)
                assert match.completed_at == datetime(2026, 5, 1, 12, 0)
                assert match.completed_with_rules == DEFAULTS
        finally:
            SQLModel.metadata.drop_all(engine)
            engine.dispose()


# -----------------------------------------------------------------------------
# Early tiebreak on rounds
# -----------------------------------------------------------------------------


def add_round(session, tournament, bracket_type=None):
    bracket_id = None
    if bracket_type is not None:
        bracket = Bracket(tournament_id=tournament.id, bracket_type=bracket_type)
        session.add(bracket)
        session.flush()
        bracket_id = bracket.id
    round_ = Round(tournament_id=tournament.id, bracket_id=bracket_id, round_number=2)
    session.add(round_)
    session.commit()
    return round_


class TestEarlyTiebreak:
    def test_main_bracket_round_rejected(self, session, data):
        with pytest.raises(InvalidBracketTypeForEarlyTiebreak) as exc:
            match_service.set_round_early_tiebreak(session, data["round"], True)
        assert exc.value.details() == {"bracketType": "MAIN"}
        session.refresh(data["round"])
        assert data["round"].rule_overrides is None

    @pytest.mark.parametrize("bracket_type", ["CONSOLATION", "PLACEMENT"])
    def test_merges_into_existing_overrides(self, session, data, bracket_type):
        round_ = add_round(session, data["tournament"], bracket_type)
        match_service.set_scope_overrides(session, round_, {"tiebreakTrigger": "4-4"})

        round_ = match_service.set_round_early_tiebreak(session, round_, True)
        assert round_.rule_overrides == {"tiebreakTrigger": "4-4", "earlyTiebreakEnabled": True}

        round_ = match_service.set_round_early_tiebreak(session, round_, False)
        assert round_.rule_overrides == {"tiebreakTrigger": "4-4", "earlyTiebreakEnabled": False}

    def test_round_without_bracket_allowed(self, session, data):
        round_ = add_round(session, data["tournament"])
        assert match_service.set_round_early_tiebreak(session, round_, True).rule_overrides == {
            "earlyTiebreakEnabled": True
        }

    def test_reaches_the_cascade(self, session, data):
        round_ = add_round(session, data["tournament"], "CONSOLATION")
        match = Match(tournament_id=data["tournament"].id, round_id=round_.id, match_number=3)
        session.add(match)
        session.commit()

        match_service.set_round_early_tiebreak(session, round_, True)
        resolved = match_service.get_effective_rules_for_match(session, match.id)
        assert resolved.rules == {**DEFAULTS, "earlyTiebreakEnabled": True}


# -----------------------------------------------------------------------------
# Ranking credit on completion
# -----------------------------------------------------------------------------


@pytest.fixture
def ranked_match(session, data):
    category = Category(name="Open Singles")
    session.add(category)
    session.flush()
    data["tournament"].category_id = category.id
    p1, p2 = Player(name="Rafa"), Player(name="Novak")
    session.add(p1)
    session.add(p2)
    session.flush()
    match = Match(tournament_id=data["tournament"].id, group_id=data["group"].id, player1_id=p1.id, player2_id=p2.id)
    session.add(match)
    session.add(data["tournament"])
    session.commit()
    match_service.start_match(session, match.id)
    return match.id, category.id


class TestCreditOnCompletion:
    def test_winner_credited_with_completion(self, session, ranked_match):
        mid, category_id = ranked_match
        match = match_service.complete_match(session, mid, winner_side=2, points_awarded=50)
        assert match.status == "COMPLETED"

        entries = session.exec(select(RankingEntry).where(RankingEntry.category_id == category_id)).all()
        by_name = {e.entity_name: e for e in entries}
        assert (by_name["Novak"].total_points, by_name["Novak"].wins, by_name["Novak"].rank) == (50, 1, 1)
        assert (by_name["Rafa"].losses, by_name["Rafa"].rank) == (1, 2)

    def test_credit_failure_leaves_match_in_progress(self, session, ranked_match, monkeypatch):
        mid, category_id = ranked_match

        def boom(*args, **kwargs):
            raise RuntimeError("ranking write failed")

        monkeypatch.setattr(match_service, "apply_match_result", boom)
        with pytest.raises(RuntimeError):
            match_service.complete_match(session, mid, winner_side=1)
        monkeypatch.undo()

        match = session.get(Match, mid)
        session.refresh(match)
        assert match.status == "IN_PROGRESS"
        assert match.completed_with_rules is None
        assert session.exec(select(RankingEntry).where(RankingEntry.category_id == category_id)).all() == []

        # the retry completes and credits exactly once
        match_service.complete_match(session, mid, winner_side=1)
        entries = session.exec(select(RankingEntry).where(RankingEntry.category_id == category_id)).all()
        assert sorted((e.entity_name, e.wins, e.losses) for e in entries) == [("Novak", 0, 1), ("Rafa", 1, 0)]

    def test_no_category_completes_without_credit(self, session, data):
        mid = data["group_match"].id
        match_service.start_match(session, mid)
        match = match_service.complete_match(session, mid, winner_side=1)
        assert match.status == "COMPLETED"
        assert session.exec(select(RankingEntry)).all() == []

    def test_bad_winner_side_rolls_back(self, session, ranked_match):
        mid, _ = ranked_match
        with pytest.raises(ValueError):
            match_service.complete_match(session, mid, winner_side=3)
        match = session.get(Match, mid)
        session.refresh(match)
        assert match.status == "IN_PROGRESS"
