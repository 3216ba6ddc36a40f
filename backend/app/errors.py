"""
Tournament core failures.

Every failure the bracket / seeding / ranking / rule-cascade core can raise is
one of the classes below. Each carries a stable ``code`` and a fixed payload
(``details()``) so the HTTP layer maps kinds to status codes without looking
at messages.
"""

from typing import Any, Dict, Optional


class TournamentCoreError(Exception):
    code: str = "TOURNAMENT_CORE_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        return {}

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details()}


# ----------------------------------------------------------------------------
# Input validation (user error)
# ----------------------------------------------------------------------------


class InvalidPlayerCount(TournamentCoreError):
    code = "INVALID_PLAYER_COUNT"
    status_code = 400

    def __init__(self, value: Any, reason: str):
        super().__init__(f"Invalid player count {value!r}: {reason}")
        self.value = value
        self.reason = reason

    def details(self) -> Dict[str, Any]:
        value = self.value if isinstance(self.value, (int, float, str)) else repr(self.value)
        return {"value": value, "reason": self.reason}


# ----------------------------------------------------------------------------
# Data-integrity faults (static tables should always resolve)
# ----------------------------------------------------------------------------


class TemplateNotFound(TournamentCoreError):
    code = "TEMPLATE_NOT_FOUND"
    status_code = 500

    def __init__(self, player_count: int):
        super().__init__(f"No bracket template found for {player_count} players")
        self.player_count = player_count

    def details(self) -> Dict[str, Any]:
        return {"playerCount": self.player_count}


class SeedingConfigNotFound(TournamentCoreError):
    code = "SEEDING_CONFIG_NOT_FOUND"
    status_code = 500

    def __init__(self, player_count: int):
        super().__init__(f"No seeding configuration found for {player_count} players")
        self.player_count = player_count

    def details(self) -> Dict[str, Any]:
        return {"playerCount": self.player_count}


class TemplateLoadFailure(TournamentCoreError):
    code = "TEMPLATE_LOAD_FAILURE"
    status_code = 500

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to load bracket templates from {source}: {reason}")
        self.source = source
        self.reason = reason

    def details(self) -> Dict[str, Any]:
        return {"source": self.source, "reason": self.reason}


# ----------------------------------------------------------------------------
# Match state machine
# ----------------------------------------------------------------------------


class MatchNotFound(TournamentCoreError):
    code = "MATCH_NOT_FOUND"
    status_code = 404

    def __init__(self, match_id: int):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id

    def details(self) -> Dict[str, Any]:
        return {"matchId": self.match_id}


class InvalidTransition(TournamentCoreError):
    code = "INVALID_TRANSITION"
    status_code = 400

    def __init__(self, current_status: str, requested_status: str, match_id: Optional[int] = None):
        super().__init__(f"Cannot transition match from {current_status} to {requested_status}")
        self.current_status = current_status
        self.requested_status = requested_status
        self.match_id = match_id

    def details(self) -> Dict[str, Any]:
        return {
            "matchId": self.match_id,
            "currentStatus": self.current_status,
            "requestedStatus": self.requested_status,
        }


class AlreadyCompleted(TournamentCoreError):
    code = "MATCH_ALREADY_COMPLETED"
    status_code = 409

    def __init__(self, match_id: Optional[int] = None):
        super().__init__("Match is already completed")
        self.match_id = match_id

    def details(self) -> Dict[str, Any]:
        return {"matchId": self.match_id}


class RuleChangeOnCompletedMatch(TournamentCoreError):
    code = "RULE_CHANGE_ON_COMPLETED_MATCH"
    status_code = 409

    def __init__(self, match_id: int):
        super().__init__("Rules cannot be changed for completed matches")
        self.match_id = match_id

    def details(self) -> Dict[str, Any]:
        return {"matchId": self.match_id}


class RuleSnapshotMissing(TournamentCoreError):
    code = "RULE_SNAPSHOT_MISSING"
    status_code = 500

    def __init__(self, match_id: Optional[int]):
        super().__init__(f"Match {match_id} is COMPLETED but has no rule snapshot")
        self.match_id = match_id

    def details(self) -> Dict[str, Any]:
        return {"matchId": self.match_id}


# ----------------------------------------------------------------------------
# Rule and format changes
# ----------------------------------------------------------------------------


class InvalidBracketTypeForEarlyTiebreak(TournamentCoreError):
    code = "INVALID_BRACKET_TYPE_FOR_EARLY_TIEBREAK"
    status_code = 400

    def __init__(self, bracket_type: str):
        super().__init__("Early tiebreak only applicable to consolation or placement brackets")
        self.bracket_type = bracket_type

    def details(self) -> Dict[str, Any]:
        return {"bracketType": self.bracket_type}


class FormatChangeNotAllowed(TournamentCoreError):
    code = "FORMAT_CHANGE_NOT_ALLOWED"
    status_code = 409

    def __init__(self, tournament_id: int, matches_count: int):
        super().__init__("Cannot change format type after matches have started or completed")
        self.tournament_id = tournament_id
        self.matches_count = matches_count

    def details(self) -> Dict[str, Any]:
        return {"tournamentId": self.tournament_id, "matchesCount": self.matches_count}


class InvalidRuleChangeType(TournamentCoreError):
    code = "INVALID_RULE_CHANGE_TYPE"
    status_code = 400

    def __init__(self, change_type: str):
        super().__init__(f"Invalid rule change type: {change_type}")
        self.change_type = change_type

    def details(self) -> Dict[str, Any]:
        return {"changeType": self.change_type}


# ----------------------------------------------------------------------------
# Point calculation
# ----------------------------------------------------------------------------


class InvalidPlacement(TournamentCoreError):
    code = "INVALID_PLACEMENT"
    status_code = 400

    def __init__(self, placement: Any, participant_count: Any):
        super().__init__(f"Invalid placement: {placement} for {participant_count} participants")
        self.placement = placement
        self.participant_count = participant_count

    def details(self) -> Dict[str, Any]:
        return {"placement": self.placement, "participantCount": self.participant_count}


class InvalidParticipantCount(TournamentCoreError):
    code = "INVALID_PARTICIPANT_COUNT"
    status_code = 400

    def __init__(self, participant_count: Any):
        super().__init__("Tournament must have at least 2 participants")
        self.participant_count = participant_count

    def details(self) -> Dict[str, Any]:
        return {"participantCount": self.participant_count}
