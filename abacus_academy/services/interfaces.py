"""Collaborator interfaces consumed by the drills and the abacus model.

Rendering, tone synthesis, speech playback and storage live outside this
package. Anything with these methods can be plugged in.
"""
from enum import Enum
from typing import Any, Dict, Optional, Protocol


class Sound(str, Enum):
    """Named feedback tones."""
    CORRECT = "correct"
    WRONG = "wrong"
    LEVEL_UP = "levelUp"
    FLASH = "flash"
    BEAD_CLICK = "beadClick"
    TICK = "tick"


class PresentationSink(Protocol):
    """Visual flash display."""

    def show_term(self, value: int) -> None: ...

    def hide_term(self) -> None: ...


class SpeechSink(Protocol):
    """Speech synthesis.

    ``speak`` resolves once playback has finished or failed.
    """

    available: bool

    async def speak(self, text: str, lang: str, rate: float) -> None: ...

    def stop_speaking(self) -> None: ...


class ToneSink(Protocol):
    """Fire-and-forget feedback sounds."""

    def play_sound(self, name: Sound) -> None: ...


class SnapshotRepository(Protocol):
    """Persistence boundary for the progress store.

    Any exception raised here is logged by the store and never reaches a
    drill; the in-memory state stays authoritative.
    """

    def save(self, data: Dict[str, Any]) -> None: ...

    def load(self) -> Optional[Dict[str, Any]]: ...

    def clear(self) -> None: ...
