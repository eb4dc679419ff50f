from __future__ import annotations  # Capture-side interfaces consumed by the session recorder

from typing import Callable, List, Protocol, Sequence

ChunkHandler = Callable[[bytes], None]


class PermissionDenied(RuntimeError):  # Capture prompt refused or unavailable
    pass


class MediaTrack(Protocol):  # One live audio or video track
    kind: str

    def stop(self) -> None: ...

    def on_ended(self, callback: Callable[[], None]) -> None: ...


class Encoder(Protocol):  # Turns live tracks into encoded chunks
    mime_type: str

    def start(self, on_chunk: ChunkHandler) -> None: ...

    def stop(self) -> None:
        """Stop encoding; any buffered data is delivered through ``on_chunk`` before returning."""
        ...


class MediaSource(Protocol):  # Screen and microphone capture provider
    def capture_display(self) -> List[MediaTrack]:
        """Screen video plus screen audio; raises PermissionDenied when refused."""
        ...

    def capture_microphone(self) -> List[MediaTrack]: ...

    def encoder(self, tracks: Sequence[MediaTrack]) -> Encoder: ...


__all__ = ["ChunkHandler", "Encoder", "MediaSource", "MediaTrack", "PermissionDenied"]
