"""
Face Matching Module

Nearest-neighbour classification of a probe embedding against a snapshot of
known faces, using Euclidean distance and an inclusive distance threshold.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np

from .errors import DimensionMismatchError
from .registry import KnownFace

logger = logging.getLogger(__name__)

UNKNOWN = 'unknown'
DEFAULT_THRESHOLD = 0.45


@dataclass
class MatchResult:
    """Outcome of matching one probe embedding."""

    name: str
    distance: float
    dob: Optional[str] = None
    gender: Optional[str] = None
    face_id: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.face_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'distance': self.distance,
            'dob': self.dob,
            'gender': self.gender,
            'face_id': self.face_id,
        }


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Euclidean distance over the first min(len(a), len(b)) components.

    Args:
        a: First embedding
        b: Second embedding

    Returns:
        Distance as a Python float (0.0 when either vector is empty)
    """
    size = min(len(a), len(b))
    if size == 0:
        return 0.0
    diff = np.asarray(a[:size], dtype=np.float64) - np.asarray(b[:size], dtype=np.float64)
    return float(math.sqrt(float(np.dot(diff, diff))))


class FaceMatcher:
    """Linear-scan matcher; holds no registry state of its own."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD,
                 strict_dimensions: bool = False):
        """
        Initialize face matcher.

        Args:
            threshold: Maximum distance still accepted as the same person
            strict_dimensions: Raise DimensionMismatchError on embeddings of
                               different length instead of comparing the
                               common prefix
        """
        self.threshold = threshold
        self.strict_dimensions = strict_dimensions

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'FaceMatcher':
        recognition_config = config.get('recognition', {})
        return cls(
            threshold=recognition_config.get('match_threshold', DEFAULT_THRESHOLD),
            strict_dimensions=recognition_config.get('strict_dimensions', False),
        )

    def match(self, probe: Optional[Sequence[float]],
              known_faces: Sequence[KnownFace],
              threshold: Optional[float] = None) -> MatchResult:
        """
        Find the nearest known face to ``probe``.

        Ties keep the earliest entry. The nearest distance is reported even
        when the result is unknown.

        Args:
            probe: Probe embedding, or None
            known_faces: Registry snapshot to scan
            threshold: Overrides the matcher threshold for this call

        Returns:
            MatchResult for the nearest face, or the unknown sentinel
        """
        if threshold is None:
            threshold = self.threshold

        if probe is None or len(known_faces) == 0:
            return MatchResult(name=UNKNOWN, distance=math.inf)

        probe = [float(v) for v in probe]
        best: Optional[KnownFace] = None
        best_distance = math.inf

        for face in known_faces:
            if len(face.embedding) != len(probe):
                if self.strict_dimensions:
                    raise DimensionMismatchError(len(probe), len(face.embedding))
                logger.debug(
                    f"Comparing {len(probe)}-d probe with {len(face.embedding)}-d "
                    f"embedding of '{face.name}' on common prefix"
                )

            distance = euclidean_distance(probe, face.embedding)
            if distance < best_distance:
                best = face
                best_distance = distance

        if best is not None and best_distance <= threshold:
            return MatchResult(
                name=best.name,
                distance=best_distance,
                dob=best.dob,
                gender=best.gender,
                face_id=best.id,
            )

        return MatchResult(name=UNKNOWN, distance=best_distance)
