"""Tests for domain entities and value objects."""
import math

import numpy as np
import pytest

from faceauth.core.exceptions import EmptyIdentityError, FaceAuthError, InvalidDescriptorError
from faceauth.domain.entities.face import BoundingBox, Sample, as_descriptor
from faceauth.domain.entities.template import Template
from faceauth.domain.value_objects.matching import Decision, FinalDecision, SessionEndReason, VotingRule


class TestDescriptor:

    def test_descriptor_is_read_only(self):
        vec = as_descriptor([0.1, 0.2, 0.3])
        assert vec.dtype == np.float64
        with pytest.raises(ValueError):
            vec[0] = 1.0

    def test_source_array_is_copied(self):
        raw = np.array([0.1, 0.2], dtype=np.float32)
        vec = as_descriptor(raw)
        raw[0] = 9.0
        assert vec[0] == pytest.approx(0.1)

    @pytest.mark.parametrize("values", [[], [[0.1, 0.2]], [0.1, math.nan], [math.inf], ["a", "b"]])
    def test_invalid_descriptors(self, values):
        with pytest.raises(InvalidDescriptorError):
            as_descriptor(values)

    def test_sample_converts_lists(self):
        sample = Sample(descriptor=[1, 2, 3], model_version="m")
        assert isinstance(sample.descriptor, np.ndarray)
        assert sample.dimension == 3
        assert sample.quality.detection_score == 1.0


class TestTemplate:

    def test_blank_identity(self):
        with pytest.raises(EmptyIdentityError):
            Template(identity="", descriptors=[[0.1]], model_version="m", sample_count=1)

    def test_descriptor_lengths_must_agree(self):
        with pytest.raises(InvalidDescriptorError):
            Template(identity="alice", descriptors=[[0.1, 0.2], [0.1]], model_version="m", sample_count=2)

    def test_needs_a_descriptor(self):
        with pytest.raises(InvalidDescriptorError):
            Template(identity="alice", descriptors=[], model_version="m", sample_count=1)

    def test_single_vector_accepted(self):
        template = Template(identity="alice", descriptors=np.zeros(4), model_version="m", sample_count=3)
        assert template.dimension == 4
        assert not template.is_multi_template
        assert template.created_at.tzinfo is not None


def test_bounding_box_area():
    assert BoundingBox(left=0.1, top=0.1, width=0.5, height=0.4).area == pytest.approx(0.2)


def test_final_decision_verified_flag():
    outcome = FinalDecision(
        identity="alice",
        decision=Decision.NO_FACE_DETECTED,
        voting_rule=VotingRule.MAJORITY,
        frames_submitted=3,
        faces_detected=0,
        end_reason=SessionEndReason.FRAME_BUDGET,
    )
    assert not outcome.verified
    assert outcome.frames == []


def test_errors_are_structured():
    error = InvalidDescriptorError("bad", details={"shape": [2, 2]})
    assert isinstance(error, FaceAuthError)
    assert error.to_dict() == {"code": "invalid_descriptor", "message": "bad", "details": {"shape": [2, 2]}}
