"""
Face Analysis Module

Boundary to the external detection/embedding model. Runs DeepFace on an
image and turns its output into Detection records: bounding box, detector
confidence, estimated age and gender, expression scores and the embedding.
Only the embedding is consumed by the registry; everything else is passed
through for display.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

GENDER_LABELS = {'man': 'male', 'woman': 'female'}


@dataclass
class FaceBox:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_region(cls, region: Optional[Dict[str, Any]]) -> 'FaceBox':
        """Build a box from a DeepFace region dict, clamping to non-negative ints."""
        region = region or {}
        return cls(
            x=max(0, int(round(region.get('x', 0) or 0))),
            y=max(0, int(round(region.get('y', 0) or 0))),
            width=max(0, int(round(region.get('w', 0) or 0))),
            height=max(0, int(round(region.get('h', 0) or 0))),
        )

    def iou(self, other: 'FaceBox') -> float:
        """Intersection over union with another box."""
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.x + self.width, other.x + other.width)
        y2 = min(self.y + self.height, other.y + other.height)
        intersection = max(0, x2 - x1) * max(0, y2 - y1)
        union = self.width * self.height + other.width * other.height - intersection
        return intersection / union if union > 0 else 0.0

    def to_dict(self) -> Dict[str, int]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


@dataclass
class Detection:
    """One face found by the detection model."""

    box: FaceBox
    score: Optional[float] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    expressions: Dict[str, float] = field(default_factory=dict)
    embedding: Optional[List[float]] = None

    @property
    def dominant_expression(self) -> Optional[str]:
        if not self.expressions:
            return None
        return max(self.expressions, key=self.expressions.get)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'box': self.box.to_dict(),
            'score': self.score,
            'age': self.age,
            'gender': self.gender,
            'expressions': dict(self.expressions),
            'has_embedding': self.embedding is not None,
        }


def normalize_gender(label: Optional[str]) -> Optional[str]:
    """Map DeepFace gender labels ("Man"/"Woman") onto male/female."""
    if not label or not isinstance(label, str):
        return None
    return GENDER_LABELS.get(label.lower(), label.lower())


def load_image(image_path: str) -> Optional[np.ndarray]:
    """
    Load an image from disk in BGR format.

    Returns:
        Image array or None if the file cannot be read
    """
    image = cv2.imread(image_path)
    if image is None:
        logger.error(f"Failed to load image: {image_path}")
    return image


def to_detections(representations: List[Dict[str, Any]],
                  analyses: Optional[List[Dict[str, Any]]] = None,
                  min_confidence: float = 0.0) -> List[Detection]:
    """
    Convert raw DeepFace results into Detection records.

    Args:
        representations: Output of DeepFace.represent
        analyses: Optional output of DeepFace.analyze; each entry is paired
                  with the representation whose box overlaps it most
        min_confidence: Detections below this confidence are dropped

    Returns:
        List of detections in model order
    """
    analyses = analyses or []
    analysis_boxes = [FaceBox.from_region(a.get('region')) for a in analyses]

    detections = []
    for rep in representations:
        score = rep.get('face_confidence')
        if isinstance(score, (int, float)) and score < min_confidence:
            logger.debug(f"Skipping face with confidence {score:.2f}")
            continue

        raw_embedding = rep.get('embedding')
        embedding = None
        if raw_embedding is not None:
            embedding = [float(v) for v in np.asarray(raw_embedding).flatten()]

        detection = Detection(
            box=FaceBox.from_region(rep.get('facial_area')),
            score=float(score) if isinstance(score, (int, float)) else None,
            embedding=embedding,
        )

        if analyses:
            overlaps = [detection.box.iou(box) for box in analysis_boxes]
            best = int(np.argmax(overlaps))
            if overlaps[best] > 0:
                _apply_analysis(detection, analyses[best])

        detections.append(detection)

    return detections


def _apply_analysis(detection: Detection, analysis: Dict[str, Any]):
    """Copy age, gender and expression scores from a DeepFace analysis."""
    age = analysis.get('age')
    if isinstance(age, (int, float)):
        detection.age = int(round(age))

    detection.gender = normalize_gender(analysis.get('dominant_gender'))

    # DeepFace reports emotions as percentages
    emotions = analysis.get('emotion') or {}
    detection.expressions = {
        label: float(value) / 100.0 for label, value in emotions.items()
    }


class FaceAnalyzer:
    """Detect faces and compute embeddings with DeepFace."""

    def __init__(self, config: Dict[str, Any], backend: Any = None):
        """
        Initialize face analyzer.

        Args:
            config: Configuration dictionary with face analysis settings
            backend: Object exposing DeepFace's ``represent``/``analyze``
                     (the deepface package is imported on first use when None)
        """
        self.config = config.get('face_analysis', {})
        self.model_name = self.config.get('model_name', 'Facenet')
        self.detector_backend = self.config.get('detector_backend', 'opencv')
        self.min_confidence = self.config.get('min_confidence', 0.5)
        self.analyze_attributes = self.config.get('analyze_attributes', True)
        self.align = self.config.get('align', True)

        self._backend = backend

        logger.info(
            f"Face analyzer initialized with model: {self.model_name}, "
            f"detector: {self.detector_backend}"
        )

    @property
    def backend(self):
        if self._backend is None:
            from deepface import DeepFace
            self._backend = DeepFace
        return self._backend

    def analyze(self, image: np.ndarray) -> List[Detection]:
        """
        Detect every face in an image.

        Args:
            image: Input image as numpy array (BGR format)

        Returns:
            List of detections; empty if none found or the model failed
        """
        if image is None or image.size == 0:
            return []

        try:
            representations = self.backend.represent(
                img_path=image,
                model_name=self.model_name,
                detector_backend=self.detector_backend,
                enforce_detection=False,
                align=self.align,
            )
        except Exception as e:
            logger.error(f"Face embedding failed: {e}")
            return []

        analyses = None
        if self.analyze_attributes:
            try:
                analyses = self.backend.analyze(
                    img_path=image,
                    actions=('age', 'gender', 'emotion'),
                    detector_backend=self.detector_backend,
                    enforce_detection=False,
                    silent=True,
                )
            except Exception as e:
                logger.warning(f"Face attribute analysis failed: {e}")

        # Older deepface releases return a bare dict for a single face
        if isinstance(representations, dict):
            representations = [representations]
        if isinstance(analyses, dict):
            analyses = [analyses]

        detections = to_detections(representations or [], analyses, self.min_confidence)
        logger.debug(f"Detected {len(detections)} faces")
        return detections

    def analyze_file(self, image_path: str) -> List[Detection]:
        """Load an image from disk and analyze it."""
        image = load_image(image_path)
        if image is None:
            return []
        return self.analyze(image)
