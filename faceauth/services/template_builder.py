"""Template builder for turning enrollment samples into reference templates."""
from typing import List, Optional, Sequence

import numpy as np

from faceauth.core.config import settings
from faceauth.core.exceptions import (
    EmptyIdentityError,
    EnrollmentUnstableError,
    InsufficientSamplesError,
    InvalidDescriptorError,
    ModelVersionMismatchError,
    NoFaceDetectedError,
)
from faceauth.core.logging import get_logger
from faceauth.domain.entities.face import Sample
from faceauth.domain.entities.template import Template

logger = get_logger(__name__)


class TemplateBuilder:
    """Aggregates noisy enrollment samples into a stable template.

    This builder:
    1. Drops frames without a face and samples below the detector score floor
    2. Computes a first-pass centroid (element-wise mean) of the usable samples
    3. Rejects samples further than ``max_outlier_distance`` from that centroid
    4. Keeps either the recomputed centroid (single-template mode) or the
       top-K most mutually consistent survivors (multi-template mode)

    The builder is a pure function of its inputs; storing the result is the
    caller's job.
    """

    def __init__(
        self,
        min_samples: Optional[int] = None,
        max_outlier_distance: Optional[float] = None,
        multi_template: Optional[bool] = None,
        top_k: Optional[int] = None,
        min_detection_score: Optional[float] = None,
    ) -> None:
        """Initialize the builder; unset arguments fall back to settings."""
        self.min_samples = settings.MIN_ENROLLMENT_SAMPLES if min_samples is None else min_samples
        self.max_outlier_distance = (
            settings.MAX_OUTLIER_DISTANCE if max_outlier_distance is None else max_outlier_distance
        )
        self.multi_template = settings.MULTI_TEMPLATE if multi_template is None else multi_template
        self.top_k = settings.MULTI_TEMPLATE_TOP_K if top_k is None else top_k
        self.min_detection_score = (
            settings.MIN_DETECTION_SCORE if min_detection_score is None else min_detection_score
        )

        if self.min_samples < 1:
            raise ValueError("min_samples must be at least 1")
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")

    def _usable(self, samples: Sequence[Optional[Sample]]) -> List[Sample]:
        return [
            s for s in samples
            if s is not None and s.quality.detection_score >= self.min_detection_score
        ]

    @staticmethod
    def _check_compatible(samples: List[Sample]) -> None:
        versions = {s.model_version for s in samples}
        if len(versions) > 1:
            raise ModelVersionMismatchError(
                "Enrollment samples come from different descriptor models",
                details={"model_versions": sorted(versions)},
            )
        dims = {s.dimension for s in samples}
        if len(dims) > 1:
            raise InvalidDescriptorError(
                "Enrollment samples have different descriptor lengths",
                details={"dimensions": sorted(dims)},
            )

    @staticmethod
    def _most_consistent(matrix: np.ndarray, k: int) -> np.ndarray:
        """Return the k rows with the lowest mean distance to the other rows."""
        n = matrix.shape[0]
        if n == 1:
            return matrix
        pairwise = np.linalg.norm(matrix[:, None, :] - matrix[None, :, :], axis=2)
        mean_dist = pairwise.sum(axis=1) / (n - 1)
        # Stable sort keeps capture order among equally consistent samples
        order = np.argsort(mean_dist, kind="stable")[:k]
        return matrix[order]

    def build(self, identity: str, samples: Sequence[Optional[Sample]]) -> Template:
        """
        Build a template from enrollment samples.

        Args:
            identity: Identity key to enroll
            samples: Captured samples; ``None`` marks a frame with no face

        Returns:
            Template built from the surviving samples

        Raises:
            EmptyIdentityError: If the identity key is blank
            NoFaceDetectedError: If no captured frame contained a face
            InsufficientSamplesError: If fewer than ``min_samples`` usable samples were captured
            EnrollmentUnstableError: If fewer than ``min_samples`` survive outlier rejection
            ModelVersionMismatchError: If samples come from different models
        """
        if not identity or not identity.strip():
            raise EmptyIdentityError("Identity key must not be blank")

        if samples and all(s is None for s in samples):
            logger.warning("Enrollment rejected: no face in any frame", identity=identity, captured=len(samples))
            raise NoFaceDetectedError(
                f"No face detected in any of {len(samples)} enrollment frames",
                details={"identity": identity, "captured": len(samples), "required": self.min_samples},
            )

        usable = self._usable(samples)
        if len(usable) < self.min_samples:
            logger.warning(
                "Enrollment rejected: not enough usable samples",
                identity=identity,
                captured=len(samples),
                usable=len(usable),
                required=self.min_samples,
            )
            raise InsufficientSamplesError(
                f"Face not detected reliably: {len(usable)} usable samples, {self.min_samples} required",
                details={"identity": identity, "usable": len(usable), "required": self.min_samples},
            )

        self._check_compatible(usable)

        matrix = np.vstack([s.descriptor for s in usable])
        centroid = matrix.mean(axis=0)
        distances = np.linalg.norm(matrix - centroid, axis=1)
        keep = distances <= self.max_outlier_distance
        survivors = matrix[keep]

        if survivors.shape[0] < self.min_samples:
            logger.warning(
                "Enrollment rejected: samples too inconsistent",
                identity=identity,
                usable=len(usable),
                survivors=int(survivors.shape[0]),
                max_outlier_distance=self.max_outlier_distance,
            )
            raise EnrollmentUnstableError(
                "Too many enrollment samples rejected as outliers",
                details={
                    "identity": identity,
                    "usable": len(usable),
                    "survivors": int(survivors.shape[0]),
                    "required": self.min_samples,
                },
            )

        if self.multi_template:
            descriptors = list(self._most_consistent(survivors, self.top_k))
        else:
            descriptors = [survivors.mean(axis=0)]

        template = Template(
            identity=identity,
            descriptors=descriptors,
            model_version=usable[0].model_version,
            sample_count=int(survivors.shape[0]),
        )

        logger.info(
            "Built enrollment template",
            identity=identity,
            usable=len(usable),
            outliers=int((~keep).sum()),
            descriptors=len(template.descriptors),
            multi_template=self.multi_template,
        )
        return template
