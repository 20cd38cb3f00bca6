"""Artifact resolver drivers."""

from chaindag.drivers.artifacts.local import LocalArtifactResolver

__all__ = ["LocalArtifactResolver"]
