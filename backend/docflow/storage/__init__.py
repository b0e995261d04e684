"""
Artifact storage — immutable rendered documents keyed by content fingerprint.
"""

from docflow.storage.artifact_store import ArtifactRef, ArtifactStore, PutResult

__all__ = ["ArtifactRef", "ArtifactStore", "PutResult"]
