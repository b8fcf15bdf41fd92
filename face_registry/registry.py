"""
Face Registry Module

Ordered, persisted list of known faces (name + embedding + optional
metadata) behind a read-through cache. The whole list lives in a single
JSON slot of a key-value storage; every mutation rewrites that slot and
refreshes the cache in the same call.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import PersistenceError
from .storage import KeyValueStorage, MemoryStorage, create_storage

logger = logging.getLogger(__name__)

STORAGE_KEY = 'face_recognition_known_faces'


def new_face_id() -> str:
    """Generate a stable opaque identifier for a registry entry."""
    return uuid.uuid4().hex


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class KnownFace:
    """One enrolled person. The id is not part of equality."""

    name: str
    embedding: List[float]
    dob: Optional[str] = None
    gender: Optional[str] = None
    id: str = field(default_factory=new_face_id, compare=False)

    def copy(self) -> 'KnownFace':
        return replace(self, embedding=list(self.embedding))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted layout; absent metadata is omitted."""
        data: Dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'descriptor': list(self.embedding),
        }
        if self.dob is not None:
            data['dob'] = self.dob
        if self.gender is not None:
            data['gender'] = self.gender
        return data

    @classmethod
    def from_dict(cls, item: Any) -> Optional['KnownFace']:
        """
        Build a KnownFace from a persisted entry.

        Returns None for malformed entries: not an object, non-string name,
        or a descriptor that is not a list of numbers.
        """
        if not isinstance(item, dict):
            return None

        name = item.get('name')
        descriptor = item.get('descriptor')
        if not isinstance(name, str) or not isinstance(descriptor, list):
            return None
        if not all(_is_number(v) for v in descriptor):
            return None

        try:
            embedding = [float(v) for v in descriptor]
        except OverflowError:
            return None

        dob = item.get('dob')
        gender = item.get('gender')
        face = cls(
            name=name,
            embedding=embedding,
            dob=dob if isinstance(dob, str) else None,
            gender=gender if isinstance(gender, str) else None,
        )
        face_id = item.get('id')
        if isinstance(face_id, str) and face_id:
            face.id = face_id
        return face


class FaceRegistry:
    """Persistent registry of known faces with an encapsulated cache."""

    def __init__(self, storage: Optional[KeyValueStorage] = None,
                 storage_key: str = STORAGE_KEY,
                 raise_on_write_error: bool = False):
        """
        Initialize face registry.

        Args:
            storage: Key-value storage holding the registry slot
                     (in-memory storage when None)
            storage_key: Key of the registry slot
            raise_on_write_error: Raise PersistenceError when a write fails
                                  instead of logging and carrying on
        """
        self.storage = storage if storage is not None else MemoryStorage()
        self.storage_key = storage_key
        self.raise_on_write_error = raise_on_write_error

        # None means "not loaded": the next read hydrates from storage
        self._cache: Optional[List[KnownFace]] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'FaceRegistry':
        """Create a registry from the ``storage`` and ``registry`` config sections."""
        registry_config = config.get('registry', {})
        return cls(
            storage=create_storage(config),
            storage_key=registry_config.get('storage_key', STORAGE_KEY),
            raise_on_write_error=registry_config.get('raise_on_write_error', False),
        )

    # Reads

    def get_all(self) -> List[KnownFace]:
        """
        Get all known faces in insertion order.

        Returns:
            A new list of copied entries; mutating it never touches the registry
        """
        return [face.copy() for face in self._load()]

    def snapshot(self) -> Tuple[KnownFace, ...]:
        """
        Immutable view of the current entries for read-only consumers.

        Mutations never modify a loaded list in place, so a snapshot stays
        consistent while it is being scanned.
        """
        return tuple(self._load())

    def get_by_id(self, face_id: str) -> Optional[KnownFace]:
        """Get a copy of the entry with the given stable id, or None."""
        index = self.index_of(face_id)
        if index is None:
            return None
        return self._load()[index].copy()

    def index_of(self, face_id: str) -> Optional[int]:
        """Current position of the entry with the given stable id, or None."""
        for index, face in enumerate(self._load()):
            if face.id == face_id:
                return index
        return None

    def __len__(self) -> int:
        return len(self._load())

    # Mutations

    def add(self, name: str, embedding: Sequence[float],
            dob: Optional[str] = None, gender: Optional[str] = None) -> KnownFace:
        """
        Append a new face and persist the registry.

        Args:
            name: Person name (already trimmed and validated by the caller)
            embedding: Face embedding vector of any length
            dob: Optional date of birth in YYYY-MM-DD format
            gender: Optional gender

        Returns:
            A copy of the stored entry, including its new stable id
        """
        face = KnownFace(
            name=name,
            embedding=[float(v) for v in embedding],
            dob=dob,
            gender=gender,
        )
        self._persist(self._load() + [face])
        logger.info(f"Added known face '{name}' ({len(face.embedding)}-d embedding)")
        return face.copy()

    def update_at(self, index: int, name: str,
                  dob: Optional[str] = None, gender: Optional[str] = None) -> bool:
        """
        Replace the metadata of the entry at ``index``.

        The embedding and stable id are preserved. Out-of-range indices,
        negative ones included, are a no-op.

        Returns:
            True if an entry was updated
        """
        faces = list(self._load())
        if not 0 <= index < len(faces):
            logger.debug(f"Ignoring update at out-of-range index {index}")
            return False

        faces[index] = replace(
            faces[index],
            name=name,
            dob=dob,
            gender=gender,
            embedding=list(faces[index].embedding),
        )
        self._persist(faces)
        logger.info(f"Updated face at index {index}: '{name}'")
        return True

    def delete_at(self, index: int) -> bool:
        """
        Remove the entry at ``index``; later entries shift down by one.

        Returns:
            True if an entry was removed
        """
        faces = list(self._load())
        if not 0 <= index < len(faces):
            logger.debug(f"Ignoring delete at out-of-range index {index}")
            return False

        removed = faces.pop(index)
        self._persist(faces)
        logger.info(f"Deleted face at index {index}: '{removed.name}'")
        return True

    def update_by_id(self, face_id: str, name: str,
                     dob: Optional[str] = None, gender: Optional[str] = None) -> bool:
        """Same as update_at, addressing the entry by its stable id."""
        index = self.index_of(face_id)
        if index is None:
            logger.debug(f"No known face with id {face_id}")
            return False
        return self.update_at(index, name, dob, gender)

    def delete_by_id(self, face_id: str) -> bool:
        """Same as delete_at, addressing the entry by its stable id."""
        index = self.index_of(face_id)
        if index is None:
            logger.debug(f"No known face with id {face_id}")
            return False
        return self.delete_at(index)

    def clear(self):
        """Empty the registry and remove the persisted slot."""
        self._cache = []
        try:
            self.storage.remove(self.storage_key)
        except Exception as e:
            logger.error(f"Failed to remove registry slot: {e}")
            if self.raise_on_write_error:
                raise PersistenceError(f"Failed to clear registry: {e}") from e
            return
        logger.info("Registry cleared")

    def invalidate_cache(self):
        """Force the next read to re-hydrate from storage."""
        self._cache = None

    def get_statistics(self) -> Dict[str, Any]:
        """Get registry statistics."""
        faces = self._load()
        return {
            'total_faces': len(faces),
            'unique_names': len({face.name for face in faces}),
            'embedding_dimensions': sorted({len(face.embedding) for face in faces}),
            'with_dob': sum(1 for face in faces if face.dob),
            'storage_key': self.storage_key,
        }

    # Persistence

    def _load(self) -> List[KnownFace]:
        """Return the cached list, hydrating it from storage when absent."""
        if self._cache is not None:
            return self._cache

        faces, missing_ids = self._read_slot()
        self._cache = faces
        if missing_ids:
            # Entries written without ids keep the ones assigned now
            logger.info(f"Assigned ids to {missing_ids} legacy registry entries")
            self._write_slot(faces)
        return self._cache

    def _read_slot(self) -> Tuple[List[KnownFace], int]:
        """
        Read and parse the registry slot.

        Any read or parse failure yields an empty registry.

        Returns:
            Tuple of (valid entries, entries needing a new stored id)
        """
        try:
            raw = self.storage.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Failed to read registry slot, starting empty: {e}")
            return [], 0

        if not raw:
            return [], 0

        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.warning(f"Corrupt registry slot, starting empty: {e}")
            return [], 0

        if not isinstance(parsed, list):
            logger.warning("Registry slot is not a list, starting empty")
            return [], 0

        faces = []
        missing_ids = 0
        for item in parsed:
            face = KnownFace.from_dict(item)
            if face is None:
                continue
            if face.id != item.get('id'):
                missing_ids += 1
            faces.append(face)

        dropped = len(parsed) - len(faces)
        if dropped:
            logger.debug(f"Dropped {dropped} malformed registry entries")
        logger.debug(f"Loaded {len(faces)} known faces from storage")
        return faces, missing_ids

    def _persist(self, faces: List[KnownFace]):
        """Write the full list to storage; the cache always takes the new list."""
        self._cache = faces
        error = self._write_slot(faces)
        if error is not None and self.raise_on_write_error:
            raise PersistenceError(f"Failed to save known faces: {error}") from error

    def _write_slot(self, faces: List[KnownFace]) -> Optional[Exception]:
        """
        Serialize ``faces`` into the registry slot.

        Returns:
            The storage error if the write failed, else None
        """
        payload = json.dumps([face.to_dict() for face in faces])
        try:
            self.storage.set(self.storage_key, payload)
        except Exception as e:
            logger.error(f"Failed to save known faces: {e}")
            return e
        return None
