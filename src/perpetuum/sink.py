"""
A small offline audio graph: oscillator voices into a gain node into a
destination, every parameter automatable on a timeline and the whole thing
rendered to a numpy buffer.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import numpy as np

from perpetuum import SAMPLE_RATE
from perpetuum.instruments import WaveTable
from perpetuum.oscilators import accumulate_phase, osc_sine, periodic_wave

_LOG = logging.getLogger("perpetuum.sink")


# ===== What the player needs from a sink =====
class Param(Protocol):
    def set_value_at_time(self, value: float, when: float) -> None: ...

    def linear_ramp_to_value_at_time(self, value: float, when: float) -> None: ...

    def set_target_at_time(self, target: float, when: float, time_constant: float) -> None: ...

    def cancel_scheduled_values(self, when: float) -> None: ...


class Node(Protocol):
    pass


class Voice(Protocol):
    frequency: Param

    def set_periodic_wave(self, table: WaveTable) -> None: ...

    def connect(self, node: Node) -> Node: ...

    def start(self, when: float = 0.0) -> None: ...

    def stop(self, when: float) -> None: ...


class GainControl(Protocol):
    gain: Param

    def connect(self, node: Node) -> Node: ...


class AudioSink(Protocol):
    destination: Node

    def create_oscillator(self) -> Voice: ...

    def create_gain(self) -> GainControl: ...


# ===== Automation =====
class Ramp(Enum):
    SET = "set"
    LINEAR = "linear"
    TARGET = "target"


@dataclass(frozen=True)
class Automation:
    kind: Ramp
    time: float
    value: float
    time_constant: float = 0.0


def _check_time(when: float) -> None:
    if not math.isfinite(when) or when < 0:
        raise ValueError(f"Automation time must be a finite, non-negative number, got {when!r}")


def _check_value(value: float) -> None:
    if not math.isfinite(value):
        raise ValueError(f"Automation value must be finite, got {value!r}")


class AudioParam:
    """
    A parameter whose value follows a timeline of automation events.

    Same rules as the Web Audio API: a linear ramp runs from the previous
    event to its own time, a target approach decays exponentially from
    whatever value the parameter holds when it starts, and cancelling drops
    every event at or after the given time.
    """

    def __init__(self, default_value: float) -> None:
        self.default_value = float(default_value)
        self._events: list[Automation] = []

    @property
    def events(self) -> list[Automation]:
        # Stable sort keeps insertion order for events sharing a time.
        return sorted(self._events, key=lambda e: e.time)

    def set_value_at_time(self, value: float, when: float) -> None:
        _check_value(value)
        _check_time(when)
        self._events.append(Automation(Ramp.SET, when, float(value)))

    def linear_ramp_to_value_at_time(self, value: float, when: float) -> None:
        _check_value(value)
        _check_time(when)
        self._events.append(Automation(Ramp.LINEAR, when, float(value)))

    def set_target_at_time(self, target: float, when: float, time_constant: float) -> None:
        _check_value(target)
        _check_time(when)
        if not math.isfinite(time_constant) or time_constant < 0:
            raise ValueError(f"Time constant must be non-negative, got {time_constant!r}")
        self._events.append(Automation(Ramp.TARGET, when, float(target), float(time_constant)))

    def cancel_scheduled_values(self, when: float) -> None:
        _check_time(when)
        self._events = [e for e in self._events if e.time < when]

    def values(self, times: np.ndarray) -> np.ndarray:
        """
        Evaluate the automation curve at ``times`` (seconds, ascending).
        """
        times = np.asarray(times, dtype=np.float64)
        out = np.full(times.shape, self.default_value, dtype=np.float64)
        events = self.events
        if not events:
            return out

        first = events[0]
        if first.kind is Ramp.LINEAR and first.time > 0:
            # Ramp up from the default value starting at time zero.
            hi = np.searchsorted(times, first.time, side="left")
            t = times[:hi]
            out[:hi] = self.default_value + (first.value - self.default_value) * t / first.time

        value = self.default_value
        for idx, event in enumerate(events):
            nxt: Optional[Automation] = events[idx + 1] if idx + 1 < len(events) else None
            if event.kind is not Ramp.TARGET:
                value = event.value

            end = nxt.time if nxt is not None else math.inf
            lo = np.searchsorted(times, event.time, side="left")
            hi = np.searchsorted(times, end, side="left")
            t = times[lo:hi]

            if nxt is not None and nxt.kind is Ramp.LINEAR:
                span = nxt.time - event.time
                if span > 0:
                    out[lo:hi] = value + (nxt.value - value) * (t - event.time) / span
            elif event.kind is Ramp.TARGET:
                out[lo:hi] = self._approach(value, event, t)
                if nxt is not None:
                    value = float(self._approach(value, event, np.array([nxt.time]))[0])
            else:
                out[lo:hi] = value
        return out

    @staticmethod
    def _approach(start: float, event: Automation, t: np.ndarray) -> np.ndarray:
        if event.time_constant == 0:
            return np.full(t.shape, event.value)
        return event.value + (start - event.value) * np.exp(-(t - event.time) / event.time_constant)


# ===== Nodes =====
class _Renderable:
    def __init__(self) -> None:
        self._inputs: list["_Renderable"] = []

    def connect(self, node: "_Renderable") -> "_Renderable":
        node._inputs.append(self)
        return node

    def _mix_inputs(self, times: np.ndarray, sr: int) -> np.ndarray:
        out = np.zeros(times.shape, dtype=np.float64)
        for source in self._inputs:
            out += source.render(times, sr)
        return out

    def render(self, times: np.ndarray, sr: int) -> np.ndarray:
        return self._mix_inputs(times, sr)


class Oscillator(_Renderable):
    """One voice. Sounds between ``start`` and ``stop``, silent otherwise."""

    def __init__(self) -> None:
        super().__init__()
        self.frequency = AudioParam(440.0)
        self.wave: Optional[WaveTable] = None
        self.started_at: Optional[float] = None
        self.stopped_at: Optional[float] = None

    def set_periodic_wave(self, table: WaveTable) -> None:
        self.wave = table

    def start(self, when: float = 0.0) -> None:
        _check_time(when)
        if self.started_at is not None:
            raise RuntimeError("Oscillator can only be started once")
        self.started_at = when

    def stop(self, when: float) -> None:
        _check_time(when)
        if self.started_at is None:
            raise RuntimeError("Oscillator stopped before it was started")
        self.stopped_at = when

    def render(self, times: np.ndarray, sr: int) -> np.ndarray:
        out = np.zeros(times.shape, dtype=np.float64)
        if self.started_at is None:
            return out
        stop = self.stopped_at if self.stopped_at is not None else math.inf
        active = (times >= self.started_at) & (times < stop)
        if not np.any(active):
            return out
        freqs = self.frequency.values(times[active])
        phase = accumulate_phase(freqs, sr)
        if self.wave is None:
            out[active] = osc_sine(phase)
        else:
            out[active] = periodic_wave(phase, self.wave, freqs, sr)
        return out


class GainNode(_Renderable):
    def __init__(self) -> None:
        super().__init__()
        self.gain = AudioParam(1.0)

    def render(self, times: np.ndarray, sr: int) -> np.ndarray:
        return self._mix_inputs(times, sr) * self.gain.values(times)


class Destination(_Renderable):
    """Where everything ends up."""


class OfflineSink:
    """Renders the graph to a mono float64 buffer instead of a sound card."""

    def __init__(self, sample_rate: int = SAMPLE_RATE) -> None:
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate!r}")
        self.sample_rate = sample_rate
        self.destination = Destination()

    def create_oscillator(self) -> Oscillator:
        return Oscillator()

    def create_gain(self) -> GainNode:
        return GainNode()

    def render(self, duration: float) -> np.ndarray:
        n = int(math.ceil(duration * self.sample_rate))
        times = np.arange(max(0, n), dtype=np.float64) / self.sample_rate
        _LOG.debug("Rendering %.2fs (%d samples)", duration, times.shape[0])
        return self.destination.render(times, self.sample_rate)
