"""Playback state, play mode and transport snapshot models."""

from dataclasses import dataclass, field
from enum import Enum

from sonosctrl.models.track import Track


class PlaybackState(str, Enum):
    """Transport state as reported by CurrentTransportState."""

    PLAYING = "PLAYING"
    PAUSED = "PAUSED_PLAYBACK"
    STOPPED = "STOPPED"
    TRANSITIONING = "TRANSITIONING"

    @classmethod
    def from_wire(cls, value: str | None) -> "PlaybackState":
        """Map a wire string to a state; unknown strings map to STOPPED."""
        try:
            return cls(value or "")
        except ValueError:
            return cls.STOPPED

    @property
    def is_playing(self) -> bool:
        """Return True while playing."""
        return self is PlaybackState.PLAYING


class PlayMode(str, Enum):
    """Repeat/shuffle modes understood by SetPlayMode."""

    NORMAL = "NORMAL"
    REPEAT_ALL = "REPEAT_ALL"
    REPEAT_ONE = "REPEAT_ONE"
    SHUFFLE = "SHUFFLE"
    SHUFFLE_REPEAT = "SHUFFLE_REPEAT_ALL"
    SHUFFLE_NOREPEAT = "SHUFFLE_NOREPEAT"

    @classmethod
    def from_wire(cls, value: str | None) -> "PlayMode":
        """Map a wire string to a mode; unknown strings map to NORMAL."""
        try:
            return cls(value or "")
        except ValueError:
            return cls.NORMAL

    @property
    def is_shuffled(self) -> bool:
        """Return True for any shuffle variant."""
        return self in (PlayMode.SHUFFLE, PlayMode.SHUFFLE_REPEAT, PlayMode.SHUFFLE_NOREPEAT)

    @property
    def is_repeating(self) -> bool:
        """Return True if the queue or track repeats."""
        return self in (PlayMode.REPEAT_ALL, PlayMode.REPEAT_ONE, PlayMode.SHUFFLE_REPEAT)

    def toggled_shuffle(self) -> "PlayMode":
        """Return the mode after pressing shuffle."""
        return _SHUFFLE_TOGGLE[self]

    def toggled_repeat(self) -> "PlayMode":
        """Return the mode after pressing repeat (off -> all -> one -> off)."""
        return _REPEAT_TOGGLE[self]


_SHUFFLE_TOGGLE = {
    PlayMode.NORMAL: PlayMode.SHUFFLE,
    PlayMode.SHUFFLE: PlayMode.NORMAL,
    PlayMode.SHUFFLE_NOREPEAT: PlayMode.NORMAL,
    PlayMode.REPEAT_ALL: PlayMode.SHUFFLE_REPEAT,
    PlayMode.SHUFFLE_REPEAT: PlayMode.REPEAT_ALL,
    PlayMode.REPEAT_ONE: PlayMode.SHUFFLE,
}

_REPEAT_TOGGLE = {
    PlayMode.NORMAL: PlayMode.REPEAT_ALL,
    PlayMode.REPEAT_ALL: PlayMode.REPEAT_ONE,
    PlayMode.REPEAT_ONE: PlayMode.NORMAL,
    PlayMode.SHUFFLE: PlayMode.SHUFFLE_REPEAT,
    PlayMode.SHUFFLE_NOREPEAT: PlayMode.SHUFFLE_REPEAT,
    PlayMode.SHUFFLE_REPEAT: PlayMode.SHUFFLE,
}


class InputSource(str, Enum):
    """Where the group's audio currently comes from."""

    QUEUE = "queue"
    LINE_IN = "line_in"
    TV = "tv"
    STREAM = "stream"

    @classmethod
    def from_uri(cls, uri: str) -> "InputSource":
        """Classify a transport URI."""
        if uri.startswith("x-rincon-stream:"):
            return cls.LINE_IN
        if uri.startswith("x-sonos-htastream:"):
            return cls.TV
        if not uri or uri.startswith(("x-rincon-queue:", "x-sonos-http:", "x-file-cifs:")):
            return cls.QUEUE
        return cls.STREAM


@dataclass(frozen=True, slots=True)
class TransportInfo:
    """Snapshot of a group's transport.

    Attributes:
        state: Playback state.
        current_track: The current track (with duration).
        play_mode: Repeat/shuffle mode.
        position: Elapsed seconds in the current track.
        number_of_tracks: Total tracks in the queue.
        current_track_number: 1-based index of the current track.
    """

    state: PlaybackState = PlaybackState.STOPPED
    current_track: Track = field(default_factory=Track)
    play_mode: PlayMode = PlayMode.NORMAL
    position: float = 0.0
    number_of_tracks: int = 0
    current_track_number: int = 0

    @property
    def is_playing(self) -> bool:
        """Return True while playing."""
        return self.state.is_playing

    @property
    def remaining(self) -> float:
        """Return seconds left in the current track (0 when unknown)."""
        duration = self.current_track.duration
        return max(0.0, duration - self.position) if duration > 0 else 0.0

    @property
    def input_source(self) -> InputSource:
        """Return the input the current track URI points at."""
        return InputSource.from_uri(self.current_track.uri)


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Result of AddURIToQueue.

    Attributes:
        first_track_number: Queue position of the first enqueued track.
        new_queue_length: Queue length after the add.
        enqueued_as_next: True when the item was inserted to play next.
    """

    first_track_number: int = 0
    new_queue_length: int = 0
    enqueued_as_next: bool = False
