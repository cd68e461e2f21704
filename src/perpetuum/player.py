# ===== Ok let's make a music =====
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, Optional, Union

from perpetuum.instruments import InstrumentStore, WaveTable, get_instrument
from perpetuum.score import Score
from perpetuum.sequencer import PARTS, EventKind, Schedule, Target, schedule
from perpetuum.sink import AudioSink, GainControl, Voice

_LOG = logging.getLogger("perpetuum.player")


@dataclass
class Voices:
    treble: Voice
    bass: Voice
    gain: GainControl


def apply_schedule(score_schedule: Schedule, wave_table: WaveTable, sink: AudioSink) -> Voices:
    """
    Wire two voices through one shared envelope into ``sink`` and lay the
    schedule onto them.

    The bass transport only starts once part 1 is over; both voices stop at
    the end of part 3.
    """
    treble = sink.create_oscillator()
    bass = sink.create_oscillator()
    gain = sink.create_gain()
    voices = {Target.TREBLE: treble, Target.BASS: bass}

    for event in score_schedule.events:
        if event.kind is EventKind.SET_FREQUENCY:
            voices[event.target].frequency.set_value_at_time(event.value, event.time)
        elif event.kind is EventKind.ENVELOPE_RESET:
            gain.gain.set_value_at_time(event.value, event.time)
        elif event.kind is EventKind.ENVELOPE_ATTACK:
            gain.gain.linear_ramp_to_value_at_time(event.value, event.time)
        elif event.kind in (EventKind.ENVELOPE_DECAY, EventKind.ENVELOPE_RELEASE):
            gain.gain.set_target_at_time(event.value, event.time, event.time_constant)
        elif event.kind is EventKind.ENVELOPE_CANCEL:
            gain.gain.cancel_scheduled_values(event.time)

    part = score_schedule.timings.part_duration
    end = part * PARTS

    # Hook up an oscillator and start it playing
    def start(oscillator: Voice, when: float = 0.0) -> None:
        oscillator.set_periodic_wave(wave_table)
        oscillator.connect(gain)
        oscillator.start(when)
        oscillator.stop(end)

    gain.connect(sink.destination)
    start(treble)
    start(bass, part)
    _LOG.info(
        "Playing %d bars at %s bpm on %s (%.2fs)",
        score_schedule.timings.total_bars,
        score_schedule.score.tempo,
        wave_table.name or "unnamed instrument",
        end,
    )
    return Voices(treble=treble, bass=bass, gain=gain)


async def _perform(
    score_schedule: Schedule, sink: AudioSink, store: Optional[InstrumentStore]
) -> Schedule:
    wave_table = await get_instrument(score_schedule.score.instrument, store)
    apply_schedule(score_schedule, wave_table, sink)
    return score_schedule


def play(
    config: Union[Score, Mapping[str, Any], None] = None,
    *,
    sink: AudioSink,
    store: Optional[InstrumentStore] = None,
) -> Awaitable[Schedule]:
    """
    Play a score.

    The score is validated and scheduled right here, so a bad config raises
    before anything is awaited. The returned awaitable loads the instrument,
    applies the schedule to ``sink`` and yields the schedule; instrument
    failures surface when it is awaited.

        await play({"bars_per_part": 2, "tempo": 120}, sink=OfflineSink())
    """
    if isinstance(config, Score):
        score = config
    else:
        score = Score.from_config(config or {})
    score_schedule = schedule(score)
    return _perform(score_schedule, sink, store)
