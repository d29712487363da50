"""Public package interface for RTP capture."""
from .config import (
    ArchiveOptions,
    CaptureGoal,
    CaptureMode,
    CaptureSettings,
    StreamEncodingOptions,
)
from .encoder import FFmpegCommandBuilder
from .exceptions import (
    AbnormalExitError,
    CaptureError,
    DescriptorWriteError,
    DuplicateSessionError,
    LaunchError,
    MediaRouterError,
    ProvisioningError,
    SessionNotFoundError,
)
from .inventory import RecordingFiles, check_recording_files
from .provisioner import Endpoint, EndpointProvisioner, TrackRequest, close_endpoints
from .router import Consumer, MediaRouter, RouterResolver, Transport
from .router_client import MediaServerClient
from .sdp import SessionDescription, TrackBinding, build_session_description, write_session_description
from .tracks import CodecParameters, MediaKind

__all__ = [
    "AbnormalExitError",
    "ArchiveOptions",
    "CaptureError",
    "CaptureGoal",
    "CaptureMode",
    "CaptureSettings",
    "CodecParameters",
    "Consumer",
    "DescriptorWriteError",
    "DuplicateSessionError",
    "Endpoint",
    "EndpointProvisioner",
    "FFmpegCommandBuilder",
    "LaunchError",
    "MediaKind",
    "MediaRouter",
    "MediaRouterError",
    "MediaServerClient",
    "ProvisioningError",
    "RecordingFiles",
    "RouterResolver",
    "SessionDescription",
    "SessionNotFoundError",
    "StreamEncodingOptions",
    "TrackBinding",
    "TrackRequest",
    "Transport",
    "build_session_description",
    "check_recording_files",
    "close_endpoints",
    "write_session_description",
]
