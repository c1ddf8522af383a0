from sleeved.models.attribution import LayerType, StatAttribution, StatLayerInfo
from sleeved.models.card import CardDefinition, CardSnapshot, CardStats, CardType
from sleeved.models.effects import (
    EffectAction,
    EffectActionType,
    EffectTiming,
    EffectTrigger,
    Modifier,
    PersistentModifier,
    SpecialEffect,
    StatName,
    TriggeredEffect,
)
from sleeved.models.failure import (
    ApiResponse,
    CatalogIntegrityError,
    DuplicateCommitError,
    FailureDetail,
    FailureKind,
    GameNotActiveError,
    GameNotFoundError,
    InsufficientCardsError,
    InvalidInputError,
    InvalidSelectionError,
    KnownError,
    NoSnapshotAvailableError,
    NotAPlayerError,
    OutcomeType,
    RefusalError,
    SnapshotNotFoundError,
)
from sleeved.models.game import (
    CommittedCard,
    EloChange,
    Game,
    GameEndReason,
    GameStatus,
    PlayerGameState,
    ResolvedStats,
    RoundOutcome,
    RoundResult,
    SnapshotOpponentState,
)
from sleeved.models.rules import DEFAULT_GAME_RULES, GameRules, ScoringMode
from sleeved.models.snapshot import GameSnapshot, SnapshotCommit

__all__ = [
    "DEFAULT_GAME_RULES",
    "ApiResponse",
    "CardDefinition",
    "CardSnapshot",
    "CardStats",
    "CardType",
    "CatalogIntegrityError",
    "CommittedCard",
    "DuplicateCommitError",
    "EffectAction",
    "EffectActionType",
    "EffectTiming",
    "EffectTrigger",
    "EloChange",
    "FailureDetail",
    "FailureKind",
    "Game",
    "GameEndReason",
    "GameNotActiveError",
    "GameNotFoundError",
    "GameRules",
    "GameSnapshot",
    "GameStatus",
    "InsufficientCardsError",
    "InvalidInputError",
    "InvalidSelectionError",
    "KnownError",
    "LayerType",
    "Modifier",
    "NoSnapshotAvailableError",
    "NotAPlayerError",
    "OutcomeType",
    "PersistentModifier",
    "PlayerGameState",
    "RefusalError",
    "ResolvedStats",
    "RoundOutcome",
    "RoundResult",
    "ScoringMode",
    "SnapshotCommit",
    "SnapshotNotFoundError",
    "SnapshotOpponentState",
    "SpecialEffect",
    "StatAttribution",
    "StatLayerInfo",
    "StatName",
    "TriggeredEffect",
]
