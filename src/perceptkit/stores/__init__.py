"""Content stores.

A store answers two questions for a :class:`~perceptkit.models.PerceptionState`:
which artifacts are relevant right now, and which images are worth watching
for.  Any number of stores can be registered with the dealer.
"""

from perceptkit.stores.base import ArtifactStore
from perceptkit.stores.local import LocalArtifactStore

__all__ = ["ArtifactStore", "LocalArtifactStore"]
