"""Match engine for scoring live descriptors against enrolled templates."""
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from faceauth.core.config import settings
from faceauth.core.exceptions import InvalidDescriptorError, ModelVersionMismatchError
from faceauth.core.logging import get_logger
from faceauth.domain.entities.face import DescriptorLike, Sample, as_descriptor
from faceauth.domain.entities.template import Template
from faceauth.domain.value_objects.matching import Decision, MatchResult, MatchThresholds

logger = get_logger(__name__)


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    """L2 norm of the element-wise difference."""
    return float(np.linalg.norm(a - b))


class MatchEngine:
    """Stateless comparison of live descriptors against templates.

    The engine compares by Euclidean distance (lower is more similar). For
    multi-template identities the best (minimum) distance over the stored
    descriptors wins: averaging across poses would bias towards rejection.

    Example:
        ```python
        engine = MatchEngine(MatchThresholds(low=0.50, high=0.58))
        result = engine.score(sample, store.get("alice"))
        if result.decision == Decision.VERIFIED:
            ...
        ```
    """

    def __init__(self, thresholds: Optional[MatchThresholds] = None) -> None:
        """Initialize the engine.

        Args:
            thresholds: Distance thresholds; defaults to the configured pair
        """
        self.thresholds = thresholds or MatchThresholds(
            low=settings.VERIFIED_THRESHOLD,
            high=settings.UNCERTAIN_THRESHOLD,
        )

    def classify(self, distance: float) -> Decision:
        """Map a distance onto a decision class (both bounds inclusive)."""
        if distance <= self.thresholds.low:
            return Decision.VERIFIED
        if distance <= self.thresholds.high:
            return Decision.UNCERTAIN
        return Decision.NOT_VERIFIED

    def margin(self, distance: float) -> float:
        """Distance from the nearest threshold that bounds the decision."""
        low, high = self.thresholds.low, self.thresholds.high
        if distance <= low:
            return low - distance
        if distance <= high:
            return min(distance - low, high - distance)
        return distance - high

    def _best_match(self, live: np.ndarray, template: Template) -> Tuple[float, int]:
        stacked = np.vstack(template.descriptors)
        distances = np.linalg.norm(stacked - live, axis=1)
        best = int(np.argmin(distances))
        return float(distances[best]), best

    def score(
        self,
        live: Union[Sample, DescriptorLike],
        template: Template,
        model_version: Optional[str] = None,
    ) -> MatchResult:
        """
        Score a live descriptor against a template.

        Args:
            live: Live sample, or a bare descriptor together with ``model_version``
            template: Enrolled template
            model_version: Model version of a bare descriptor (required for bare descriptors)

        Returns:
            MatchResult with the minimum distance and its classification

        Raises:
            ModelVersionMismatchError: If the live descriptor comes from another model
            InvalidDescriptorError: If the descriptor lengths differ
        """
        if isinstance(live, Sample):
            vector = live.descriptor
            live_version = live.model_version
        else:
            vector = as_descriptor(live)
            live_version = model_version

        # An untagged descriptor is treated as incompatible
        if live_version != template.model_version:
            raise ModelVersionMismatchError(
                "Live descriptor and template were produced by different models",
                details={
                    "identity": template.identity,
                    "live_model_version": live_version,
                    "template_model_version": template.model_version,
                },
            )
        if vector.shape[0] != template.dimension:
            raise InvalidDescriptorError(
                "Live descriptor length does not match template",
                details={
                    "identity": template.identity,
                    "live_dimension": int(vector.shape[0]),
                    "template_dimension": template.dimension,
                },
            )

        distance, index = self._best_match(vector, template)
        decision = self.classify(distance)

        logger.debug(
            "Scored live descriptor",
            identity=template.identity,
            distance=round(distance, 4),
            decision=decision.value,
            descriptor_index=index,
        )

        return MatchResult(
            identity=template.identity,
            distance=distance,
            decision=decision,
            descriptor_index=index,
            margin=self.margin(distance),
            model_version=template.model_version,
        )

    def rank(self, live: Sample, templates: Iterable[Template]) -> List[MatchResult]:
        """
        Score a live sample against many templates (1:N identification).

        Results are sorted by ascending distance, ties broken by identity key.
        No acceptance policy is applied beyond each result's own decision.

        Raises:
            ModelVersionMismatchError: If any template was built with another model
        """
        results = [self.score(live, template) for template in templates]
        results.sort(key=lambda r: (r.distance, r.identity))
        return results
