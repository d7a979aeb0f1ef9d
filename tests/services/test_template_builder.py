"""Tests for the enrollment template builder."""
import numpy as np
import pytest

from faceauth.core.exceptions import (
    EmptyIdentityError,
    EnrollmentUnstableError,
    InsufficientSamplesError,
    InvalidDescriptorError,
    ModelVersionMismatchError,
    NoFaceDetectedError,
)
from faceauth.domain.value_objects.matching import Decision
from faceauth.services.template_builder import TemplateBuilder

CONSISTENT = [
    [0.01, 0.00, 0.00, 0.00],
    [0.00, 0.01, 0.00, 0.00],
    [0.00, 0.00, 0.01, 0.00],
]
OUTLIERS = [
    [2.0, 0.0, 0.0, 0.0],
    [0.0, 2.0, 0.0, 0.0],
]


@pytest.fixture
def builder() -> TemplateBuilder:
    return TemplateBuilder(min_samples=3, max_outlier_distance=1.0, min_detection_score=0.5)


class TestUsableSamples:

    def test_insufficient_samples(self, builder, make_sample):
        samples = [make_sample(CONSISTENT[0]), None, make_sample(CONSISTENT[1]), None, None]
        with pytest.raises(InsufficientSamplesError) as exc_info:
            builder.build("alice", samples)
        assert exc_info.value.details["usable"] == 2

    def test_no_samples(self, builder):
        with pytest.raises(InsufficientSamplesError) as exc_info:
            builder.build("alice", [])
        assert not isinstance(exc_info.value, NoFaceDetectedError)

    def test_no_face_in_any_frame(self, builder):
        with pytest.raises(NoFaceDetectedError) as exc_info:
            builder.build("alice", [None] * 5)
        assert exc_info.value.code == "no_face_detected"
        assert exc_info.value.details["captured"] == 5
        # Callers handling the broader failure still catch it
        assert isinstance(exc_info.value, InsufficientSamplesError)

    def test_low_detection_score_is_unusable(self, builder, make_sample):
        samples = [make_sample(v) for v in CONSISTENT[:2]] + [make_sample(CONSISTENT[2], score=0.2)]
        with pytest.raises(InsufficientSamplesError):
            builder.build("alice", samples)

    def test_missing_frames_are_skipped(self, builder, make_sample):
        samples = [None] + [make_sample(v) for v in CONSISTENT] + [None]
        template = builder.build("alice", samples)
        assert template.sample_count == 3

    @pytest.mark.parametrize("identity", ["", "   ", "\t"])
    def test_blank_identity(self, builder, make_sample, identity):
        with pytest.raises(EmptyIdentityError):
            builder.build(identity, [make_sample(v) for v in CONSISTENT])

    def test_mixed_model_versions(self, builder, make_sample):
        samples = [make_sample(v) for v in CONSISTENT[:2]]
        samples.append(make_sample(CONSISTENT[2], model_version="other-model/v2"))
        with pytest.raises(ModelVersionMismatchError):
            builder.build("alice", samples)

    def test_mixed_dimensions(self, builder, make_sample):
        samples = [make_sample(v) for v in CONSISTENT[:2]] + [make_sample([0.0, 0.0])]
        with pytest.raises(InvalidDescriptorError):
            builder.build("alice", samples)


class TestOutlierRejection:

    def test_outliers_are_dropped(self, builder, make_sample):
        samples = [make_sample(v) for v in CONSISTENT + OUTLIERS]

        template = builder.build("alice", samples)

        assert template.sample_count == 3
        assert len(template.descriptors) == 1
        np.testing.assert_allclose(template.descriptors[0], np.mean(CONSISTENT, axis=0))

    def test_unstable_enrollment(self, make_sample):
        builder = TemplateBuilder(min_samples=3, max_outlier_distance=0.1)
        spread = [[1.0, 0.0], [-1.0, 0.0], [0.0, 1.0], [0.0, -1.0]]
        with pytest.raises(EnrollmentUnstableError) as exc_info:
            builder.build("alice", [make_sample(v) for v in spread])
        assert exc_info.value.details["survivors"] == 0

    def test_enroll_then_verify_centroid(self, builder, engine, make_sample):
        """Outliers are excluded and the consistent centroid verifies."""
        template = builder.build("alice", [make_sample(v) for v in OUTLIERS[:1] + CONSISTENT + OUTLIERS[1:]])

        centroid = np.mean(CONSISTENT, axis=0)
        result = engine.score(make_sample(centroid.tolist()), template)

        assert result.distance == pytest.approx(0.0, abs=1e-12)
        assert result.decision == Decision.VERIFIED


class TestMultiTemplate:

    def test_keeps_top_k_most_consistent(self, make_sample):
        builder = TemplateBuilder(min_samples=3, max_outlier_distance=1.0, multi_template=True, top_k=2)
        values = [
            [0.00, 0.00],
            [0.05, 0.00],
            [0.00, 0.05],
            [0.40, 0.40],
        ]

        template = builder.build("alice", [make_sample(v) for v in values])

        assert template.sample_count == 4
        assert len(template.descriptors) == 2
        kept = {tuple(d.tolist()) for d in template.descriptors}
        assert kept == {(0.05, 0.0), (0.0, 0.05)}

    def test_top_k_larger_than_survivors(self, make_sample):
        builder = TemplateBuilder(min_samples=3, max_outlier_distance=1.0, multi_template=True, top_k=10)
        template = builder.build("alice", [make_sample(v) for v in CONSISTENT])
        assert len(template.descriptors) == 3
        assert template.is_multi_template


def test_builder_records_model_version(builder, make_sample):
    template = builder.build("alice", [make_sample(v) for v in CONSISTENT])
    assert template.model_version == "test-model/v1"
    assert template.identity == "alice"
