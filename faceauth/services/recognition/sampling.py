"""Helpers for turning frame streams into sample streams."""
import asyncio
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Optional, TypeVar, Union

from faceauth.core.logging import get_logger
from faceauth.domain.entities.face import Sample
from faceauth.domain.interfaces.recognition.descriptor_source import DescriptorSource

logger = get_logger(__name__)

T = TypeVar("T")

Stream = Union[Iterable[T], AsyncIterable[T]]


async def aiterate(items: "Stream[T]") -> AsyncIterator[T]:
    """Iterate a sync or async iterable uniformly."""
    if hasattr(items, "__aiter__"):
        async for item in items:
            yield item
    else:
        for item in items:
            yield item


async def capture_samples(
    source: DescriptorSource,
    frames: "Stream[Any]",
    limit: Optional[int] = None,
    interval: float = 0.0,
) -> AsyncIterator[Optional[Sample]]:
    """
    Run the descriptor source over frames, yielding one entry per frame.

    Frames are processed strictly in order. A frame without a face yields
    None so that consumers can count it against their budget.

    Args:
        source: Descriptor source to run
        frames: Sync or async iterable of frames
        limit: Stop after this many frames
        interval: Seconds to wait between frames

    Yields:
        Sample for the detected face, or None
    """
    count = 0
    async for frame in aiterate(frames):
        if limit is not None and count >= limit:
            break
        if count and interval > 0:
            await asyncio.sleep(interval)
        sample = await source.detect(frame)
        count += 1
        logger.debug("Captured frame", frame=count, face_detected=sample is not None)
        yield sample
