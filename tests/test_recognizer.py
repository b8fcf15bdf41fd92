"""
Unit tests for FaceRecognizer module.
"""

import math
import os
import shutil
import sys
import tempfile
import unittest

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from face_registry.age import calculate_age
from face_registry.face_analyzer import Detection, FaceBox
from face_registry.matcher import UNKNOWN
from face_registry.recognizer import FaceRecognizer


class FakeAnalyzer:
    """Returns preset detections for any image."""

    def __init__(self, detections=None):
        self.detections = detections or []

    def analyze(self, image):
        return list(self.detections)


def make_detection(embedding, score=0.99, age=30, gender='male'):
    return Detection(
        box=FaceBox(10, 10, 80, 80),
        score=score,
        age=age,
        gender=gender,
        expressions={'neutral': 0.7, 'happy': 0.3},
        embedding=embedding,
    )


class TestFaceRecognizer(unittest.TestCase):
    """Test cases for FaceRecognizer class."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()

        self.config = {
            'storage': {
                'backend': 'file',
                'data_dir': os.path.join(self.test_dir, 'data'),
            },
            'recognition': {
                'match_threshold': 0.45,
            },
        }
        self.analyzer = FakeAnalyzer()
        self.recognizer = FaceRecognizer(self.config, analyzer=self.analyzer)
        self.image = np.zeros((100, 100, 3), dtype=np.uint8)

    def tearDown(self):
        """Clean up test fixtures."""
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def test_recognizer_initialization(self):
        """Test that recognizer initializes without errors."""
        self.assertIsNotNone(self.recognizer.registry)
        self.assertEqual(self.recognizer.matcher.threshold, 0.45)
        self.assertEqual(len(self.recognizer.registry), 0)

    def test_end_to_end_scenario(self):
        """Enroll, match, delete and match again."""
        registry = self.recognizer.registry
        registry.add('Alice', [1, 2, 3, 4, 5])
        self.assertEqual(len(registry.get_all()), 1)

        result = self.recognizer.match([1.001, 2.001, 3.001, 4.001, 5.001], 0.1)
        self.assertEqual(result.name, 'Alice')

        registry.delete_at(0)
        self.assertEqual(len(registry.get_all()), 0)
        self.assertEqual(self.recognizer.match([1, 2, 3, 4, 5]).name, UNKNOWN)

    def test_match_sees_update_without_invalidation(self):
        registry = self.recognizer.registry
        registry.add('Old Name', [0.0, 0.0])
        registry.update_at(0, 'New Name')
        self.assertEqual(self.recognizer.match([0.0, 0.0]).name, 'New Name')

    def test_match_empty_registry(self):
        result = self.recognizer.match(None)
        self.assertEqual(result.name, UNKNOWN)
        self.assertEqual(result.distance, math.inf)

    def test_recognize_known_and_unknown(self):
        """Known faces get their stored details, unknown ones keep the estimate."""
        self.recognizer.registry.add('Alice', [0.0, 0.0], '1990-03-15', 'female')
        self.analyzer.detections = [
            make_detection([0.1, 0.0], age=45, gender='male'),
            make_detection([5.0, 5.0], age=22, gender='male'),
        ]

        results = self.recognizer.recognize_image(self.image)

        self.assertEqual(results['total_faces'], 2)
        self.assertEqual(results['recognized_faces'], 1)

        known, unknown = results['faces']
        self.assertEqual(known['name'], 'Alice')
        self.assertTrue(known['is_known'])
        self.assertEqual(known['display_age'], calculate_age('1990-03-15'))
        self.assertEqual(known['gender'], 'female')
        self.assertEqual(known['dominant_expression'], 'neutral')
        self.assertEqual(known['box'], {'x': 10, 'y': 10, 'width': 80, 'height': 80})

        self.assertEqual(unknown['name'], UNKNOWN)
        self.assertFalse(unknown['is_known'])
        self.assertEqual(unknown['display_age'], 22)
        self.assertAlmostEqual(unknown['distance'], math.sqrt(50))

    def test_recognize_detection_without_embedding(self):
        self.analyzer.detections = [make_detection(None)]
        face = self.recognizer.recognize_image(self.image)['faces'][0]
        self.assertEqual(face['name'], UNKNOWN)
        self.assertIsNotNone(face['error'])

    def test_enroll_from_image_uses_most_confident_face(self):
        self.analyzer.detections = [
            make_detection([1.0, 1.0], score=0.7),
            make_detection([2.0, 2.0], score=0.95, gender='female'),
        ]

        result = self.recognizer.enroll_from_image(self.image, 'Jane', '1992-02-02')

        self.assertTrue(result['success'])
        faces = self.recognizer.registry.get_all()
        self.assertEqual(len(faces), 1)
        self.assertEqual(faces[0].embedding, [2.0, 2.0])
        self.assertEqual(faces[0].dob, '1992-02-02')
        self.assertEqual(faces[0].gender, 'female')
        self.assertEqual(faces[0].id, result['face_id'])

    def test_enroll_from_image_without_faces(self):
        result = self.recognizer.enroll_from_image(self.image, 'Nobody')
        self.assertFalse(result['success'])
        self.assertEqual(result['error'], 'No faces detected in image')
        self.assertEqual(len(self.recognizer.registry), 0)

    def test_enroll_reports_similar_face(self):
        self.recognizer.registry.add('Original', [1.0, 1.0])
        result = self.recognizer.enroll_detection(make_detection([1.0, 1.1]), 'Twin')

        self.assertTrue(result['success'])
        self.assertEqual(result['similar_match']['name'], 'Original')
        self.assertEqual(len(self.recognizer.registry), 2)

    def test_enroll_detection_without_embedding(self):
        result = self.recognizer.enroll_detection(make_detection(None), 'Nobody')
        self.assertFalse(result['success'])

    def test_list_people(self):
        """Test listing all enrolled people."""
        self.assertEqual(self.recognizer.list_people(), [])

        self.recognizer.registry.add('TestPerson', [0.1] * 128, '2000-01-01', 'other')
        self.recognizer.registry.add('NoDob', [0.2] * 128)

        people = self.recognizer.list_people()
        self.assertEqual(len(people), 2)
        self.assertEqual(people[0]['index'], 0)
        self.assertEqual(people[0]['name'], 'TestPerson')
        self.assertEqual(people[0]['age'], calculate_age('2000-01-01'))
        self.assertEqual(people[0]['embedding_size'], 128)
        self.assertIsNone(people[1]['age'])

    def test_get_recognition_statistics(self):
        """Test getting recognition statistics."""
        stats = self.recognizer.get_recognition_statistics()
        self.assertEqual(stats['total_detections'], 0)
        self.assertEqual(stats['total_faces'], 0)
        self.assertEqual(stats['match_threshold'], 0.45)

        self.recognizer.registry.add('Alice', [0.0, 0.0])
        self.analyzer.detections = [make_detection([0.0, 0.0]), make_detection([9.0, 9.0])]
        self.recognizer.recognize_image(self.image)

        stats = self.recognizer.get_recognition_statistics()
        self.assertEqual(stats['total_detections'], 2)
        self.assertEqual(stats['successful_recognitions'], 1)
        self.assertEqual(stats['unknown_faces'], 1)
        self.assertEqual(stats['recognition_rate'], 0.5)

        self.recognizer.reset_statistics()
        self.assertEqual(self.recognizer.get_recognition_statistics()['total_detections'], 0)


if __name__ == '__main__':
    unittest.main()
