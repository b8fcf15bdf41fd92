"""
Face Recognition Module

Ties the face analyzer, the matcher and the registry together: recognise
faces in an image, enrol a person from an image, and list enrolled people
with their derived ages.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .age import calculate_age
from .face_analyzer import Detection, FaceAnalyzer
from .matcher import FaceMatcher, MatchResult
from .registry import FaceRegistry

logger = logging.getLogger(__name__)


class FaceRecognizer:
    """Main face recognition system combining all components."""

    def __init__(self, config: Dict[str, Any],
                 registry: Optional[FaceRegistry] = None,
                 matcher: Optional[FaceMatcher] = None,
                 analyzer: Optional[FaceAnalyzer] = None):
        """
        Initialize face recognizer.

        Args:
            config: Configuration dictionary
            registry: Registry to use (built from config when None)
            matcher: Matcher to use (built from config when None)
            analyzer: Face analyzer to use (built from config when None)
        """
        self.config = config
        self.registry = registry if registry is not None else FaceRegistry.from_config(config)
        self.matcher = matcher if matcher is not None else FaceMatcher.from_config(config)
        self.analyzer = analyzer if analyzer is not None else FaceAnalyzer(config)

        self.stats = self._new_stats()

        logger.info("Face recognizer initialized successfully")

    @staticmethod
    def _new_stats() -> Dict[str, Any]:
        return {
            'total_detections': 0,
            'successful_recognitions': 0,
            'unknown_faces': 0,
            'enrollments': 0,
            'session_start': datetime.now().isoformat(),
        }

    def match(self, probe: Optional[Sequence[float]],
              threshold: Optional[float] = None) -> MatchResult:
        """
        Match a probe embedding against the current registry contents.

        Args:
            probe: Probe embedding, or None
            threshold: Per-call threshold override

        Returns:
            MatchResult for the nearest known face or the unknown sentinel
        """
        return self.matcher.match(probe, self.registry.snapshot(), threshold)

    def recognize_image(self, image: np.ndarray) -> Dict[str, Any]:
        """
        Detect and identify every face in an image.

        Args:
            image: Input image (BGR)

        Returns:
            Recognition results with one entry per detected face
        """
        detections = self.analyzer.analyze(image)
        self.stats['total_detections'] += len(detections)

        results = {
            'timestamp': datetime.now().isoformat(),
            'faces': [],
            'total_faces': len(detections),
            'recognized_faces': 0,
        }

        for detection in detections:
            face_result = self._process_single_face(detection)
            results['faces'].append(face_result)

            if face_result['is_known']:
                results['recognized_faces'] += 1
                self.stats['successful_recognitions'] += 1
            else:
                self.stats['unknown_faces'] += 1

        return results

    def _process_single_face(self, detection: Detection) -> Dict[str, Any]:
        """
        Match a single detection.

        The displayed age comes from the stored date of birth when the face
        is known and has one, otherwise from the model's estimate.
        """
        result = detection.to_dict()
        result['dominant_expression'] = detection.dominant_expression

        match = self.match(detection.embedding)
        result.update({
            'name': match.name,
            'distance': match.distance,
            'face_id': match.face_id,
            'is_known': match.is_known,
            'dob': match.dob,
            'display_age': detection.age,
            'error': None,
        })

        if detection.embedding is None:
            result['error'] = 'No embedding for detected face'
        elif match.is_known:
            if match.dob:
                result['display_age'] = calculate_age(match.dob)
            if match.gender:
                result['gender'] = match.gender

        return result

    def enroll_detection(self, detection: Detection, name: str,
                         dob: Optional[str] = None,
                         gender: Optional[str] = None) -> Dict[str, Any]:
        """
        Enroll the person behind an existing detection.

        Args:
            detection: Detection carrying the embedding to store
            name: Person name (validated by the caller)
            dob: Optional date of birth (YYYY-MM-DD)
            gender: Optional gender

        Returns:
            Enrollment result
        """
        result = {
            'success': False,
            'face_id': None,
            'name': name,
            'error': None,
            'similar_match': None,
        }

        if detection.embedding is None:
            result['error'] = 'Detected face has no embedding'
            return result

        existing = self.match(detection.embedding)
        if existing.is_known:
            logger.warning(
                f"Similar face already enrolled as '{existing.name}' "
                f"(distance {existing.distance:.3f}), enrolling anyway"
            )
            result['similar_match'] = existing.to_dict()

        face = self.registry.add(name, detection.embedding, dob, gender)
        self.stats['enrollments'] += 1

        result.update({'success': True, 'face_id': face.id})
        return result

    def enroll_from_image(self, image: np.ndarray, name: str,
                          dob: Optional[str] = None,
                          gender: Optional[str] = None) -> Dict[str, Any]:
        """
        Enroll the most confidently detected face of an image.

        Returns:
            Enrollment result; ``error`` is set when no usable face was found
        """
        detections = [d for d in self.analyzer.analyze(image) if d.embedding is not None]
        if not detections:
            return {
                'success': False,
                'face_id': None,
                'name': name,
                'error': 'No faces detected in image',
                'similar_match': None,
            }

        best = max(detections, key=lambda d: d.score if d.score is not None else 0.0)
        if len(detections) > 1:
            logger.info(f"{len(detections)} faces detected, enrolling the most confident one")

        return self.enroll_detection(best, name, dob, gender or best.gender)

    def list_people(self) -> List[Dict[str, Any]]:
        """
        Get a list of all enrolled people in registry order.

        Returns:
            List of person information dictionaries
        """
        people = []
        for index, face in enumerate(self.registry.get_all()):
            people.append({
                'index': index,
                'id': face.id,
                'name': face.name,
                'dob': face.dob,
                'age': calculate_age(face.dob) if face.dob else None,
                'gender': face.gender,
                'embedding_size': len(face.embedding),
            })
        return people

    def get_recognition_statistics(self) -> Dict[str, Any]:
        """Get recognition system statistics."""
        registry_stats = self.registry.get_statistics()

        return {
            **self.stats,
            **registry_stats,
            'match_threshold': self.matcher.threshold,
            'recognition_rate': (
                self.stats['successful_recognitions'] /
                max(1, self.stats['total_detections'])
            ),
        }

    def reset_statistics(self):
        """Reset recognition statistics."""
        self.stats = self._new_stats()
