"""Caller-facing enrollment and verification service."""
from typing import Any, List, Optional, Set

from faceauth.core.config import settings
from faceauth.core.logging import get_logger
from faceauth.domain.entities.face import Sample
from faceauth.domain.entities.template import Template
from faceauth.domain.interfaces.recognition.descriptor_source import DescriptorSource
from faceauth.domain.interfaces.storage.template_store import TemplateStore
from faceauth.domain.value_objects.matching import (
    FinalDecision,
    MatchResult,
    SessionState,
    VotingRule,
)
from faceauth.services.match_engine import MatchEngine
from faceauth.services.recognition.sampling import Stream, aiterate, capture_samples
from faceauth.services.template_builder import TemplateBuilder
from faceauth.services.verification_session import VerificationSession

logger = get_logger(__name__)


class FaceAuthService:
    """Enrollment and 1:1 verification against a template store.

    This service:
    1. Builds templates from enrollment sample streams and stores them
    2. Drives bounded verification sessions over live sample streams
    3. Exposes listing, deletion and clearing of enrolled identities

    Sample streams may be sync or async iterables of ``Sample | None``
    (None for a frame without a face). Transports (HTTP, UI, CLI) wrap this
    service; it has no I/O of its own beyond the template store.

    Example:
        ```python
        service = FaceAuthService(JsonFileTemplateStore())
        await service.enroll("alice", enrollment_samples)
        outcome = await service.verify("alice", live_samples)
        if outcome.verified:
            ...
        ```
    """

    def __init__(
        self,
        store: TemplateStore,
        builder: Optional[TemplateBuilder] = None,
        engine: Optional[MatchEngine] = None,
        voting_rule: Optional[VotingRule] = None,
        max_frames: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        consecutive_required: Optional[int] = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Template store holding enrolled identities
            builder: Template builder, defaults to one configured from settings
            engine: Match engine, defaults to one with the configured thresholds
            voting_rule: Session voting rule override
            max_frames: Session frame budget override
            timeout_seconds: Session time budget override
            consecutive_required: Consecutive Verified frames required override
        """
        self.store = store
        self.builder = builder or TemplateBuilder()
        self.engine = engine or MatchEngine()
        self.voting_rule = voting_rule
        self.max_frames = max_frames
        self.timeout_seconds = timeout_seconds
        self.consecutive_required = consecutive_required

    async def enroll(self, identity: str, samples: Stream[Optional[Sample]]) -> Template:
        """
        Enroll an identity from a stream of captured samples.

        Re-enrolling an existing identity replaces its template atomically.

        Raises:
            EmptyIdentityError: If the identity key is blank
            InsufficientSamplesError: If too few usable samples were captured
            EnrollmentUnstableError: If too many samples are outliers
        """
        captured: List[Optional[Sample]] = [s async for s in aiterate(samples)]
        template = self.builder.build(identity, captured)
        self.store.put(identity, template)
        logger.info(
            "Enrolled identity",
            identity=identity,
            captured=len(captured),
            sample_count=template.sample_count,
        )
        return template

    async def enroll_from_source(
        self,
        identity: str,
        source: DescriptorSource,
        frames: Stream[Any],
    ) -> Template:
        """Capture the configured number of enrollment frames and enroll them."""
        samples = capture_samples(
            source,
            frames,
            limit=settings.ENROLLMENT_CAPTURE_COUNT,
            interval=settings.ENROLLMENT_CAPTURE_INTERVAL,
        )
        return await self.enroll(identity, samples)

    def start_session(self, identity: str) -> VerificationSession:
        """
        Create and start a verification session for an enrolled identity.

        Raises:
            TemplateNotFoundError: If the identity is not enrolled
            ModelVersionMismatchError: If the stored template was built with another model
        """
        template = self.store.get(identity)
        session = VerificationSession(
            template,
            self.engine,
            voting_rule=self.voting_rule,
            max_frames=self.max_frames,
            timeout_seconds=self.timeout_seconds,
            consecutive_required=self.consecutive_required,
        )
        return session.start()

    async def verify(self, identity: str, samples: Stream[Optional[Sample]]) -> FinalDecision:
        """
        Verify a claimed identity against a stream of live samples.

        The stream is consumed until it ends, the session budget runs out or
        the voting rule reaches a decision that further frames cannot change.

        Raises:
            TemplateNotFoundError: If the identity is not enrolled
            ModelVersionMismatchError: If live samples come from another model
        """
        session = self.start_session(identity)
        try:
            async for sample in aiterate(samples):
                # Late results after cancellation are dropped
                if session.state != SessionState.ACTIVE or session.exhausted:
                    break
                session.submit(sample)
                if session.decided:
                    break
        except BaseException:
            session.cancel()
            raise
        return session.finish()

    async def verify_from_source(
        self,
        identity: str,
        source: DescriptorSource,
        frames: Stream[Any],
    ) -> FinalDecision:
        """Poll frames through a descriptor source and verify them."""
        samples = capture_samples(source, frames, interval=settings.SESSION_FRAME_INTERVAL)
        return await self.verify(identity, samples)

    def identify(self, sample: Sample) -> List[MatchResult]:
        """
        Rank every enrolled identity against a live sample (1:N).

        Returns:
            Match results sorted by ascending distance
        """
        templates = [self.store.get(identity) for identity in sorted(self.store.list())]
        return self.engine.rank(sample, templates)

    def list_identities(self) -> Set[str]:
        return self.store.list()

    def delete_identity(self, identity: str) -> None:
        self.store.delete(identity)

    def clear_all(self) -> None:
        self.store.clear()
