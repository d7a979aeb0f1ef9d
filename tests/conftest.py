"""Shared fixtures for engine tests."""
from typing import Any, Dict, Optional, Sequence

import pytest

from faceauth.domain.entities.face import QualityMetadata, Sample
from faceauth.domain.interfaces.recognition.descriptor_source import DescriptorSource
from faceauth.domain.value_objects.matching import MatchThresholds
from faceauth.infrastructure.storage.memory import InMemoryTemplateStore
from faceauth.services.match_engine import MatchEngine

TEST_MODEL = "test-model/v1"


class FakeDescriptorSource(DescriptorSource):
    """Descriptor source that looks frames up in a dict of prepared samples."""

    def __init__(self, samples_by_frame: Dict[Any, Optional[Sample]], version: str = TEST_MODEL):
        self.samples_by_frame = samples_by_frame
        self.version = version
        self.seen = []

    @property
    def model_version(self) -> str:
        return self.version

    async def detect(self, frame: Any) -> Optional[Sample]:
        self.seen.append(frame)
        return self.samples_by_frame.get(frame)


@pytest.fixture
def make_sample():
    """Factory for samples tagged with the test model version."""
    def _make(values: Sequence[float], model_version: str = TEST_MODEL, score: float = 0.99) -> Sample:
        return Sample(
            descriptor=list(values),
            model_version=model_version,
            quality=QualityMetadata(detection_score=score),
        )
    return _make


@pytest.fixture
def thresholds() -> MatchThresholds:
    return MatchThresholds(low=0.5, high=0.58)


@pytest.fixture
def engine(thresholds) -> MatchEngine:
    return MatchEngine(thresholds)


@pytest.fixture
def memory_store() -> InMemoryTemplateStore:
    return InMemoryTemplateStore(model_version=TEST_MODEL)


@pytest.fixture
def fake_source_factory():
    return FakeDescriptorSource
