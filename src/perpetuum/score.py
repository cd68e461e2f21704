import math
from dataclasses import dataclass, field, fields
from numbers import Real
from typing import Any, Mapping

from perpetuum.errors import ScoreError
from perpetuum.melody import generate
from perpetuum.tones import validate_notes

# camelCase spellings accepted in configs.
_ALIASES = {"barsPerPart": "bars_per_part"}


@dataclass(frozen=True)
class Score:
    """
    Everything needed to schedule one piece.

    bars_per_part: bars in each of the three parts.
    tempo: beats per minute; one melody note lasts a quaver (60 / (tempo * 4) s).
    melody: main line, played by the treble throughout and by the bass in part 2.
    variation: bass line for the final part.
    instrument: wave table name for both voices.
    """

    bars_per_part: int = 4
    tempo: float = 90
    melody: tuple[str, ...] = field(default_factory=generate)
    variation: tuple[str, ...] = field(default_factory=generate)
    instrument: str = "piano"

    def __post_init__(self) -> None:
        if (
            isinstance(self.bars_per_part, bool)
            or not isinstance(self.bars_per_part, int)
            or self.bars_per_part <= 0
        ):
            raise ScoreError(f"bars_per_part must be a positive integer, got {self.bars_per_part!r}")
        if (
            isinstance(self.tempo, bool)
            or not isinstance(self.tempo, Real)
            or not math.isfinite(self.tempo)
            or self.tempo <= 0
        ):
            raise ScoreError(f"tempo must be a positive number, got {self.tempo!r}")
        if not isinstance(self.instrument, str) or not self.instrument:
            raise ScoreError(f"instrument must be a non-empty name, got {self.instrument!r}")

        for name in ("melody", "variation"):
            seq = getattr(self, name)
            if isinstance(seq, str):
                raise ScoreError(f"{name} must be a sequence of note names, not a string")
            seq = tuple(seq)
            if not seq:
                raise ScoreError(f"{name} needs at least one note")
            validate_notes(seq, name)
            object.__setattr__(self, name, seq)

        # Tiny tempos overflow the quaver; the piece must last a finite time.
        piece = 60 / (self.tempo * 4) * len(self.melody) * self.bars_per_part * 3
        if not math.isfinite(piece):
            raise ScoreError(f"tempo {self.tempo!r} is too slow to schedule")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Score":
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in config.items():
            if value is None:
                continue
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ScoreError(f"Unrecognised score option {key!r}")
            kwargs[name] = value
        return cls(**kwargs)
