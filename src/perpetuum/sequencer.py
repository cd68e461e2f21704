# ===== Audacity? Never met her =====
"""
Turn a score into a timeline.

The piece has three parts of ``bars_per_part`` bars, one bar being one full
pass over the melody at a quaver per note:

    part 1: treble alone
    part 2: bass doubles the melody an octave down
    part 3: bass plays the variation an octave down

Every note slot also shapes the shared gain with the same pluck envelope.
Nothing here touches audio; see ``perpetuum.player`` for that.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from perpetuum.envelope import PLUCK, Envelope
from perpetuum.score import Score
from perpetuum.tones import bass_frequency, frequency

_LOG = logging.getLogger("perpetuum.sequencer")

PARTS = 3


class Target(Enum):
    TREBLE = "treble"
    BASS = "bass"
    ENVELOPE = "envelope"


class EventKind(Enum):
    SET_FREQUENCY = "set-frequency"
    ENVELOPE_RESET = "envelope-reset"
    ENVELOPE_ATTACK = "envelope-attack"
    ENVELOPE_DECAY = "envelope-decay"
    ENVELOPE_CANCEL = "envelope-cancel"
    ENVELOPE_RELEASE = "envelope-release"


@dataclass(frozen=True)
class Event:
    time: float  # seconds from playback start
    kind: EventKind
    target: Target
    value: float = 0.0  # Hz or gain
    time_constant: Optional[float] = None  # decay/release only
    slot: int = 0


@dataclass(frozen=True)
class Timings:
    quaver_duration: float
    bar_duration: float
    part_duration: float
    total_bars: int
    last_part_bars: int
    slots: int

    @classmethod
    def for_score(cls, score: Score) -> "Timings":
        quaver = 60 / (score.tempo * 4)
        bar = quaver * len(score.melody)
        total_bars = score.bars_per_part * PARTS
        return cls(
            quaver_duration=quaver,
            bar_duration=bar,
            part_duration=bar * score.bars_per_part,
            total_bars=total_bars,
            last_part_bars=total_bars - score.bars_per_part,
            slots=total_bars * len(score.melody),
        )

    @property
    def total_duration(self) -> float:
        return self.part_duration * PARTS


@dataclass(frozen=True)
class Schedule:
    score: Score
    timings: Timings
    events: tuple[Event, ...]

    def events_for(self, target: Target) -> list[Event]:
        return [e for e in self.events if e.target is target]

    def frequencies(self, target: Target) -> dict[int, float]:
        """Slot index -> Hz for one voice. Silent slots are absent."""
        return {
            e.slot: e.value
            for e in self.events
            if e.target is target and e.kind is EventKind.SET_FREQUENCY
        }


def bass_note(score: Score, timings: Timings, slot: int) -> Optional[str]:
    """
    The note the bass plays in ``slot``, or None while it rests in part 1.

    The variation is indexed by the global slot counter, so it does not
    restart at each bar when its length differs from the melody's.
    """
    bar = slot // len(score.melody)
    if bar < score.bars_per_part:
        return None
    if bar < timings.last_part_bars:
        return score.melody[slot % len(score.melody)]
    return score.variation[slot % len(score.variation)]


def envelope_events(
    start: float, quaver: float, slot: int, envelope: Envelope = PLUCK
) -> list[Event]:
    attack_time = envelope.attack_time(start, quaver)
    release_time = envelope.release_time(start, quaver)
    env = Target.ENVELOPE
    return [
        Event(start, EventKind.ENVELOPE_RESET, env, 0.0, slot=slot),
        Event(attack_time, EventKind.ENVELOPE_ATTACK, env, 1.0, slot=slot),
        Event(
            attack_time,
            EventKind.ENVELOPE_DECAY,
            env,
            envelope.sustain,
            envelope.decay_constant(quaver),
            slot,
        ),
        Event(release_time, EventKind.ENVELOPE_CANCEL, env, slot=slot),
        Event(
            release_time,
            EventKind.ENVELOPE_RELEASE,
            env,
            0.0,
            envelope.release_constant(quaver),
            slot,
        ),
    ]


def schedule(score: Score, envelope: Envelope = PLUCK) -> Schedule:
    """
    Compute every frequency and envelope change of the piece.

    Pure: the same score always yields an equal schedule.
    """
    timings = Timings.for_score(score)
    quaver = timings.quaver_duration
    events: list[Event] = []

    for i in range(timings.slots):
        start = i * quaver
        note = score.melody[i % len(score.melody)]

        events.append(
            Event(start, EventKind.SET_FREQUENCY, Target.TREBLE, frequency(note), slot=i)
        )

        low = bass_note(score, timings, i)
        if low is not None:
            events.append(
                Event(start, EventKind.SET_FREQUENCY, Target.BASS, bass_frequency(low), slot=i)
            )

        events.extend(envelope_events(start, quaver, i, envelope))

    _LOG.debug(
        "Scheduled %d events over %d slots (%.2fs, quaver %.4fs)",
        len(events),
        timings.slots,
        timings.total_duration,
        quaver,
    )
    return Schedule(score=score, timings=timings, events=tuple(events))
