"""Bounded, cancellable verification sessions with multi-frame voting."""
import time
from collections import Counter
from typing import Callable, List, Optional

from faceauth.core.config import settings
from faceauth.core.exceptions import (
    SessionBudgetExhaustedError,
    SessionClosedError,
    SessionError,
    SessionNotStartedError,
)
from faceauth.core.logging import get_logger
from faceauth.domain.entities.face import Sample
from faceauth.domain.entities.template import Template
from faceauth.domain.value_objects.matching import (
    Decision,
    FinalDecision,
    FrameRecord,
    MatchResult,
    SessionEndReason,
    SessionState,
    VotingRule,
)
from faceauth.services.match_engine import MatchEngine

logger = get_logger(__name__)

Clock = Callable[[], float]


class VerificationSession:
    """One claimant's attempt to verify against one enrolled identity.

    Lifecycle: IDLE -> ACTIVE -> COMPLETED | CANCELLED. An active session
    accepts up to ``max_frames`` frames or ``timeout_seconds`` of wall clock,
    whichever comes first, and aggregates per-frame decisions instead of
    trusting a single noisy frame:

    - ``majority``: the class holding a strict majority of face frames wins,
      otherwise the outcome is Uncertain.
    - ``consecutive``: Verified once ``consecutive_required`` Verified frames
      arrive back to back; otherwise Not Verified if those frames are the
      strict majority, else Uncertain.

    Sessions are single-threaded; run one per caller.

    Example:
        ```python
        session = VerificationSession(template, MatchEngine())
        session.start()
        for sample in samples:
            session.submit(sample)
            if session.decided or session.exhausted:
                break
        outcome = session.finish()
        ```
    """

    def __init__(
        self,
        template: Template,
        engine: MatchEngine,
        voting_rule: Optional[VotingRule] = None,
        max_frames: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        consecutive_required: Optional[int] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.template = template
        self.engine = engine
        self.voting_rule = VotingRule(voting_rule or settings.VOTING_RULE)
        self.max_frames = settings.SESSION_MAX_FRAMES if max_frames is None else max_frames
        self.timeout_seconds = settings.SESSION_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self.consecutive_required = (
            settings.CONSECUTIVE_REQUIRED if consecutive_required is None else consecutive_required
        )
        if self.max_frames < 1:
            raise ValueError("max_frames must be at least 1")
        if self.consecutive_required < 1:
            raise ValueError("consecutive_required must be at least 1")

        self._clock = clock
        self._state = SessionState.IDLE
        self._started_at: Optional[float] = None
        self._frames: List[FrameRecord] = []
        self._votes: Counter = Counter()
        self._streak = 0
        self._streak_reached = False

    @property
    def identity(self) -> str:
        return self.template.identity

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def frames(self) -> List[FrameRecord]:
        return list(self._frames)

    @property
    def faces_detected(self) -> int:
        return sum(self._votes.values())

    @property
    def timed_out(self) -> bool:
        if self._started_at is None:
            return False
        return self._clock() - self._started_at >= self.timeout_seconds

    @property
    def exhausted(self) -> bool:
        """True once the frame or time budget is used up."""
        return len(self._frames) >= self.max_frames or self.timed_out

    @property
    def decided(self) -> bool:
        """True once no further frame can change the outcome."""
        if self.voting_rule == VotingRule.CONSECUTIVE:
            return self._streak_reached
        # A strict majority of the whole budget cannot be overturned
        return any(count * 2 > self.max_frames for count in self._votes.values())

    @property
    def current_decision(self) -> Decision:
        """Rolling aggregate of the frames submitted so far."""
        return self._aggregate()

    def _ensure_active(self) -> None:
        if self._state == SessionState.IDLE:
            raise SessionNotStartedError("Session has not been started", details={"identity": self.identity})
        if self._state in (SessionState.COMPLETED, SessionState.CANCELLED):
            raise SessionClosedError(
                f"Session is {self._state.value}",
                details={"identity": self.identity, "state": self._state.value},
            )

    def start(self) -> "VerificationSession":
        if self._state != SessionState.IDLE:
            if self._state == SessionState.ACTIVE:
                raise SessionError("Session already started", details={"identity": self.identity})
            self._ensure_active()
        self._state = SessionState.ACTIVE
        self._started_at = self._clock()
        logger.info(
            "Verification session started",
            identity=self.identity,
            voting_rule=self.voting_rule.value,
            max_frames=self.max_frames,
            timeout_seconds=self.timeout_seconds,
        )
        return self

    def submit(self, sample: Optional[Sample]) -> Optional[MatchResult]:
        """
        Score one frame and add it to the vote.

        Args:
            sample: Live sample, or None if the frame contained no face

        Returns:
            The frame's MatchResult, or None for a frame without a face

        Raises:
            SessionNotStartedError: If start() was not called
            SessionClosedError: If the session is completed or cancelled
            SessionBudgetExhaustedError: If the frame or time budget is used up
            ModelVersionMismatchError: If the sample comes from another model
        """
        self._ensure_active()
        if self.exhausted:
            raise SessionBudgetExhaustedError(
                "Session sample budget exhausted",
                details={
                    "identity": self.identity,
                    "frames": len(self._frames),
                    "timed_out": self.timed_out,
                },
            )

        index = len(self._frames)
        if sample is None:
            self._streak = 0
            self._frames.append(FrameRecord(index=index, face_detected=False))
            logger.debug("No face in frame", identity=self.identity, frame=index)
            return None

        result = self.engine.score(sample, self.template)
        self._votes[result.decision] += 1
        if result.decision == Decision.VERIFIED:
            self._streak += 1
            if self._streak >= self.consecutive_required:
                self._streak_reached = True
        else:
            self._streak = 0

        self._frames.append(
            FrameRecord(
                index=index,
                face_detected=True,
                distance=result.distance,
                decision=result.decision,
                descriptor_index=result.descriptor_index,
            )
        )
        return result

    def _aggregate(self) -> Decision:
        face_frames = sum(self._votes.values())
        if face_frames == 0:
            return Decision.NO_FACE_DETECTED

        if self.voting_rule == VotingRule.CONSECUTIVE:
            if self._streak_reached:
                return Decision.VERIFIED
            if self._votes[Decision.NOT_VERIFIED] * 2 > face_frames:
                return Decision.NOT_VERIFIED
            return Decision.UNCERTAIN

        decision, count = self._votes.most_common(1)[0]
        if count * 2 > face_frames:
            return decision
        return Decision.UNCERTAIN

    def _end_reason(self) -> SessionEndReason:
        if self.decided:
            return SessionEndReason.DECIDED
        if len(self._frames) >= self.max_frames:
            return SessionEndReason.FRAME_BUDGET
        if self.timed_out:
            return SessionEndReason.TIMEOUT
        return SessionEndReason.FINISHED

    def finish(self) -> FinalDecision:
        """
        Close the session and return the aggregated decision with its audit trail.

        Raises:
            SessionNotStartedError: If start() was not called
            SessionClosedError: If the session is already completed or cancelled
        """
        self._ensure_active()
        distances = [f.distance for f in self._frames if f.distance is not None]
        outcome = FinalDecision(
            identity=self.identity,
            decision=self._aggregate(),
            voting_rule=self.voting_rule,
            frames_submitted=len(self._frames),
            faces_detected=self.faces_detected,
            end_reason=self._end_reason(),
            best_distance=min(distances) if distances else None,
            frames=list(self._frames),
        )
        self._state = SessionState.COMPLETED

        logger.info(
            "Verification session finished",
            identity=self.identity,
            decision=outcome.decision.value,
            frames=outcome.frames_submitted,
            faces=outcome.faces_detected,
            end_reason=outcome.end_reason.value,
            best_distance=outcome.best_distance,
        )
        return outcome

    def cancel(self) -> None:
        """Cancel the session, discarding accumulated votes. No-op once closed."""
        if self._state in (SessionState.COMPLETED, SessionState.CANCELLED):
            return
        self._state = SessionState.CANCELLED
        self._frames.clear()
        self._votes.clear()
        self._streak = 0
        self._streak_reached = False
        logger.info("Verification session cancelled", identity=self.identity)
