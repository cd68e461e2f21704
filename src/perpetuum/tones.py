# ===== Tone Map =====
from typing import Iterable

from perpetuum.errors import UnknownNoteError

# Treble vocabulary. Bass plays the same table an octave down.
NOTES: dict[str, float] = {
    "c4": 261.6,
    "d4": 293.7,
    "e4": 329.6,
    "f4": 349.2,
    "g4": 392.0,
    "a4": 440.0,
    "b4": 493.9,
    "c5": 523.3,
}


def frequency(note: str) -> float:
    """
    Treble frequency in Hz for a note name from ``NOTES``.
    """
    try:
        return NOTES[note]
    except (KeyError, TypeError):
        raise UnknownNoteError(note) from None


def bass_frequency(note: str) -> float:
    """
    Same note, one octave down.
    """
    return frequency(note) / 2


def validate_notes(notes: Iterable[str], where: str = "sequence") -> None:
    for note in notes:
        if not isinstance(note, str) or note not in NOTES:
            raise UnknownNoteError(note, where)
