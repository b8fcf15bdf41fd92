"""
Face Registry

Known-face registry and nearest-neighbour matching: stores named face
embeddings, matches probe embeddings against them under a Euclidean
distance threshold, and recognises faces in images through DeepFace.
"""

__version__ = "1.0.0"

from .age import calculate_age
from .errors import DimensionMismatchError, FaceRegistryError, PersistenceError
from .face_analyzer import Detection, FaceAnalyzer
from .matcher import UNKNOWN, FaceMatcher, MatchResult, euclidean_distance
from .recognizer import FaceRecognizer
from .registry import STORAGE_KEY, FaceRegistry, KnownFace
from .storage import FileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "calculate_age",
    "DimensionMismatchError",
    "FaceRegistryError",
    "PersistenceError",
    "Detection",
    "FaceAnalyzer",
    "UNKNOWN",
    "FaceMatcher",
    "MatchResult",
    "euclidean_distance",
    "FaceRecognizer",
    "STORAGE_KEY",
    "FaceRegistry",
    "KnownFace",
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
]
