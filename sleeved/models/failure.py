"""
Failure classification for the round engine.

Every rejected operation is classified so callers know whether to retry:

- Refusal: the input was invalid (unknown card, duplicate commit).
  Nothing was mutated; the caller must retry with corrected input.
- KnownFailure: a precondition does not hold (game not active, no snapshot).
  Surfaced to the caller, never retried automatically.
- Fatal: CatalogIntegrityError. A referenced card is missing from the
  frozen catalog snapshot. This aborts the operation and is never
  converted into a user-facing envelope.

Best-effort failures (snapshot rating, bot bookkeeping) never reach this
module: they are logged and swallowed where they happen.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Validation (refusals)
    INVALID_SELECTION = "invalid_selection"
    DUPLICATE_COMMIT = "duplicate_commit"
    INVALID_INPUT = "invalid_input"

    # Preconditions
    NOT_FOUND = "not_found"
    NOT_A_PLAYER = "not_a_player"
    GAME_NOT_ACTIVE = "game_not_active"
    NO_SNAPSHOT_AVAILABLE = "no_snapshot_available"
    INSUFFICIENT_CARDS = "insufficient_cards"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    REFUSAL = "refusal"
    KNOWN_FAILURE = "known_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(..., description="Classification of the failure")
    message: str = Field(..., description="Explanation of what went wrong")
    detail: str | None = Field(default=None, description="Additional technical detail")
    suggestion: str | None = Field(default=None, description="Suggested action for the caller")


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope used for every rejected request."""

    outcome: OutcomeType
    data: T | None = None
    failure: FailureDetail | None = None

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def from_error(cls, error: "KnownError") -> "ApiResponse[Any]":
        return cls(
            outcome=error.outcome,
            failure=FailureDetail(
                kind=error.kind,
                message=error.message,
                detail=error.detail,
                suggestion=error.suggestion,
            ),
        )


class KnownError(Exception):
    """
    Base class for explainable, non-fatal failures.

    Raising one guarantees that no game state was changed.
    """

    outcome = OutcomeType.KNOWN_FAILURE

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.from_error(self)


class RefusalError(KnownError):
    """Rejected input. The caller must correct it before retrying."""

    outcome = OutcomeType.REFUSAL


# --- Validation ---


class InvalidSelectionError(RefusalError):
    """A commit referenced a card the player does not currently hold."""

    def __init__(self, card_id: str, reason: str):
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.INVALID_SELECTION,
            message=reason,
            detail=f"card_id={card_id}",
            suggestion="Choose a sleeve, animal, and equipment from your current hand.",
            status_code=400,
        )


class DuplicateCommitError(RefusalError):
    """The player already committed for the current round."""

    def __init__(self, player_id: str, round_number: int):
        self.player_id = player_id
        self.round_number = round_number
        super().__init__(
            kind=FailureKind.DUPLICATE_COMMIT,
            message=f"Player {player_id} has already committed for round {round_number}",
            suggestion="Wait for the round to resolve.",
            status_code=409,
        )


class InvalidInputError(RefusalError):
    """Malformed request data (e.g. snapshot commits of the wrong length)."""

    def __init__(self, message: str):
        super().__init__(kind=FailureKind.INVALID_INPUT, message=message, status_code=400)


# --- Preconditions ---


class GameNotFoundError(KnownError):
    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Game '{game_id}' not found",
            status_code=404,
        )


class SnapshotNotFoundError(KnownError):
    def __init__(self, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Snapshot '{snapshot_id}' not found",
            status_code=404,
        )


class NotAPlayerError(KnownError):
    def __init__(self, player_id: str, game_id: str):
        super().__init__(
            kind=FailureKind.NOT_A_PLAYER,
            message=f"Player '{player_id}' is not a player in game '{game_id}'",
            status_code=403,
        )


class GameNotActiveError(KnownError):
    def __init__(self, game_id: str):
        super().__init__(
            kind=FailureKind.GAME_NOT_ACTIVE,
            message=f"Game '{game_id}' is not active",
            status_code=409,
        )


class NoSnapshotAvailableError(KnownError):
    def __init__(self, player_id: str):
        super().__init__(
            kind=FailureKind.NO_SNAPSHOT_AVAILABLE,
            message=f"No recorded opponent is available for player '{player_id}'",
            suggestion="Try again later or wait for a live opponent.",
            status_code=404,
        )


class InsufficientCardsError(KnownError):
    """The catalog does not hold enough active cards to deal opening hands."""

    def __init__(self, card_type: str, required: int, available: int):
        self.card_type = card_type
        self.required = required
        self.available = available
        super().__init__(
            kind=FailureKind.INSUFFICIENT_CARDS,
            message=(
                f"Not enough active {card_type} cards to start a game: "
                f"need {required}, have {available}"
            ),
            status_code=400,
        )


# --- Fatal ---


class CatalogIntegrityError(Exception):
    """
    A referenced card is missing from a game's frozen catalog snapshot.

    Not a KnownError: this is a data-integrity violation, so it aborts the
    operation and the surrounding transaction rolls back.
    """

    def __init__(self, message: str, card_id: str | None = None):
        self.card_id = card_id
        super().__init__(message)
