"""Value objects package."""
from .matching import (
    Decision,
    FinalDecision,
    FrameRecord,
    MatchResult,
    MatchThresholds,
    SessionEndReason,
    SessionState,
    VotingRule,
)

__all__ = [
    "Decision",
    "FinalDecision",
    "FrameRecord",
    "MatchResult",
    "MatchThresholds",
    "SessionEndReason",
    "SessionState",
    "VotingRule",
]
