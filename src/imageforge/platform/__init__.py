"""
ImageForge Platform - External commands, remote host access and artifact stores.
"""

from imageforge.platform.base import ArtifactStore, CommandResult, CommandRunner, RemoteHost
from imageforge.platform.file_ops import LocalArtifactStore
from imageforge.platform.remote import RemoteArtifactStore, SshRemoteHost

__all__ = [
    "ArtifactStore",
    "CommandResult",
    "CommandRunner",
    "LocalArtifactStore",
    "RemoteArtifactStore",
    "RemoteHost",
    "SshRemoteHost",
]
