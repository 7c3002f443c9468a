"""
ImageForge exception hierarchy.

Every fatal condition raises a subclass of ``ImageForgeError`` carrying a
machine-readable error code and a details dict for the log. None of them
are retried; they propagate to the CLI, which exits with status 1.

``OperatorAbortedError`` sits outside the hierarchy: declining a
confirmation is a clean exit, not a failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from imageforge.core.models import ConsistencyState, Location


class ImageForgeError(Exception):
    """Base exception for all ImageForge failures."""

    error_code = "IMAGEFORGE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class DependencyMissingError(ImageForgeError):
    """A required external tool is not installed."""

    error_code = "DEPENDENCY_MISSING"

    def __init__(self, tool: str, message: str | None = None) -> None:
        super().__init__(message or f"Required tool '{tool}' is not installed", {"tool": tool})
        self.tool = tool


class CorruptArtifactPairError(ImageForgeError):
    """Exactly one of image/metadata exists at a location."""

    error_code = "CORRUPT_ARTIFACT_PAIR"

    def __init__(self, location: Location, state: ConsistencyState) -> None:
        super().__init__(
            f"The {location.value} artifact pair is corrupt ({state.describe()}). "
            "Please resolve this manually before the transfer.",
            {"location": location.value, "state": state.name},
        )
        self.location = location
        self.state = state


class NoArtifactAtSourceError(ImageForgeError):
    """The requested transfer has nothing to copy."""

    error_code = "NO_ARTIFACT_AT_SOURCE"


class InternalRedirectLoopError(ImageForgeError):
    """A second direction flip was requested within one invocation."""

    error_code = "INTERNAL_REDIRECT_LOOP"


class TransferToolError(ImageForgeError):
    """The remote-copy tool exited with a non-zero status."""

    error_code = "TRANSFER_TOOL_FAILURE"


class BuildToolError(ImageForgeError):
    """The image build tool exited with a non-zero status."""

    error_code = "BUILD_TOOL_FAILURE"


class MetadataUnreadableError(ImageForgeError):
    """Metadata could not be read or parsed at a location."""

    error_code = "METADATA_UNREADABLE"


class RemoteCommandError(ImageForgeError):
    """A remote command failed for reasons other than its own answer."""

    error_code = "REMOTE_COMMAND_FAILURE"


class ContainerError(ImageForgeError):
    """The container could not be launched."""

    error_code = "CONTAINER_ERROR"


class ArtifactStoreError(ImageForgeError):
    """Local artifact files could not be moved, removed or re-permissioned."""

    error_code = "ARTIFACT_STORE_FAILURE"


class OperatorAbortedError(Exception):
    """The operator declined a confirmation."""

    def __init__(self, message: str = "Aborted by operator") -> None:
        super().__init__(message)
        self.message = message
