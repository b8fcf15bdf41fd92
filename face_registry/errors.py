"""
Exceptions raised by the face registry.

Expected conditions (empty registry, missing probe, out-of-range index,
corrupt storage) never raise; these cover the opt-in strict behaviours.
"""


class FaceRegistryError(Exception):
    """Base class for face registry errors."""


class PersistenceError(FaceRegistryError):
    """Writing the registry slot to storage failed."""


class DimensionMismatchError(FaceRegistryError):
    """Probe and stored embedding lengths differ in strict matching mode."""

    def __init__(self, probe_size: int, stored_size: int):
        self.probe_size = probe_size
        self.stored_size = stored_size
        super().__init__(
            f"Embedding dimension mismatch: probe has {probe_size}, "
            f"stored face has {stored_size}"
        )
