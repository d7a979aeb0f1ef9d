"""
InsightFace-based descriptor source.

This module provides a concrete DescriptorSource backed by the InsightFace
library. It is installed with the optional ``recognition`` extra.

Key Features:
    - Accepts encoded image bytes or BGR numpy frames
    - Single-face semantics: the largest detected face is used
    - Normed embeddings, detector score and normalized (0-1) bounding box
    - Every sample tagged with the InsightFace model pack as its version

Example:
    ```python
    async with InsightFaceDescriptorSource() as source:
        sample = await source.detect(frame)
    ```

Note:
    This implementation uses CPU inference by default. For GPU support,
    pass providers=['CUDAExecutionProvider', 'CPUExecutionProvider'].
"""
import asyncio
from typing import Any, List, Optional, Sequence, TypeVar, Union

import cv2
import numpy as np
from insightface.app import FaceAnalysis

from faceauth.core.config import settings
from faceauth.core.exceptions import InvalidImageError
from faceauth.core.logging import get_logger
from faceauth.domain.entities.face import BoundingBox, QualityMetadata, Sample
from faceauth.domain.interfaces.recognition.descriptor_source import DescriptorSource

logger = get_logger(__name__)

# Type variable for context manager
T = TypeVar('T', bound='InsightFaceDescriptorSource')

Frame = Union[bytes, np.ndarray]


class InsightFaceDescriptorSource(DescriptorSource):
    """
    InsightFace implementation of the descriptor source.

    Attributes:
        model: InsightFace model instance for face analysis
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        providers: Optional[Sequence[str]] = None,
        model: Optional[Any] = None,
    ) -> None:
        """Initialize the InsightFace model.

        Args:
            model_name: InsightFace model pack, defaults to settings.INSIGHTFACE_MODEL
            providers: onnxruntime execution providers
            model: Pre-built analysis model exposing ``get(image)``
        """
        self.model_name = model_name or settings.INSIGHTFACE_MODEL
        if model is None:
            model = FaceAnalysis(
                name=self.model_name,
                root=settings.MODEL_CACHE_DIR,
                providers=list(providers or ['CPUExecutionProvider']),
            )
            # Detection size affects accuracy significantly
            model.prepare(ctx_id=0, det_size=(settings.INSIGHTFACE_DET_SIZE, settings.INSIGHTFACE_DET_SIZE))
        self.model = model

    @property
    def model_version(self) -> str:
        return f"insightface/{self.model_name}"

    async def __aenter__(self: T) -> T:
        logger.debug("Entering InsightFace descriptor source context")
        return self

    async def __aexit__(self, exc_type: Optional[type], exc_val: Optional[Exception],
                        exc_tb: Optional[Any]) -> None:
        logger.debug("Cleaning up InsightFace descriptor source")
        if exc_type:
            logger.error(
                "Error occurred during context exit",
                error=str(exc_val),
                exc_info=True
            )
        self.model = None

    def _load_frame(self, frame: Frame) -> np.ndarray:
        """Decode image bytes, or validate a BGR array."""
        if isinstance(frame, (bytes, bytearray)):
            nparr = np.frombuffer(frame, np.uint8)
            img = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
            if img is None:
                raise InvalidImageError("Failed to decode image")
            return img

        img = np.asarray(frame)
        if img.ndim != 3 or img.shape[2] != 3:
            raise InvalidImageError(
                "Frame must be an HxWx3 BGR image",
                details={"shape": list(img.shape)},
            )
        return img

    def _convert_to_sample(self, face_data: Any, image_shape: Sequence[int]) -> Sample:
        """
        Convert an InsightFace detection into a Sample.

        Args:
            face_data: Detection exposing ``bbox``, ``det_score`` and ``normed_embedding``
            image_shape: Shape of the analysed image (height, width, ...)

        Returns:
            Sample with normalized bounding box and detector score
        """
        height, width = image_shape[:2]
        bbox = np.asarray(face_data.bbox, dtype=float)
        bounding_box = BoundingBox(
            left=float(bbox[0] / width),
            top=float(bbox[1] / height),
            width=float((bbox[2] - bbox[0]) / width),
            height=float((bbox[3] - bbox[1]) / height),
        )
        return Sample(
            descriptor=face_data.normed_embedding,
            model_version=self.model_version,
            quality=QualityMetadata(
                detection_score=float(face_data.det_score),
                bounding_box=bounding_box,
            ),
        )

    def _detect_sync(self, frame: Frame) -> Optional[Sample]:
        img = self._load_frame(frame)
        faces: List[Any] = self.model.get(img) or []

        logger.debug("Face detection results", faces_found=len(faces), image_shape=img.shape)
        if not faces:
            return None

        def area(f: Any) -> float:
            x1, y1, x2, y2 = f.bbox[:4]
            return float((x2 - x1) * (y2 - y1))

        largest = max(faces, key=area)
        return self._convert_to_sample(largest, img.shape)

    async def detect(self, frame: Frame) -> Optional[Sample]:
        """Detect the most prominent face without blocking the event loop."""
        if self.model is None:
            raise RuntimeError("Descriptor source has been closed")
        return await asyncio.to_thread(self._detect_sync, frame)
