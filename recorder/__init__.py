from __future__ import annotations  # Recorder package exports

from .client import BackendClient
from .machine import (
    MAX_RECORDING_BYTES,
    MIN_VIABLE_BYTES,
    RecorderError,
    RecorderState,
    RecordingArtifact,
    SessionRecorder,
)
from .media import Encoder, MediaSource, MediaTrack, PermissionDenied
from .scheduler import ManualScheduler, Scheduler, ThreadScheduler

__all__ = [
    "BackendClient",
    "Encoder",
    "MAX_RECORDING_BYTES",
    "MIN_VIABLE_BYTES",
    "ManualScheduler",
    "MediaSource",
    "MediaTrack",
    "PermissionDenied",
    "RecorderError",
    "RecorderState",
    "RecordingArtifact",
    "Scheduler",
    "SessionRecorder",
    "ThreadScheduler",
]
