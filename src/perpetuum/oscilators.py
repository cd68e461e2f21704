# ===== Wibbly Wobbly Bois =====
import math
from typing import Optional

import numpy as np

from perpetuum.instruments import WaveTable

# Samples per cycle used to find a wave table's peak.
_PEAK_GRID = 2048


def accumulate_phase(freqs: np.ndarray, sr: int) -> np.ndarray:
    """
    Running phase in radians for a per-sample frequency curve, starting at 0.
    """
    if freqs.size == 0:
        return np.zeros(0, dtype=np.float64)
    steps = 2.0 * math.pi * freqs / sr
    phase = np.cumsum(steps)
    return phase - steps[0]


def _partials(table: WaveTable, max_partials: int) -> list[tuple[int, float, float]]:
    n = min(table.real.shape[0], max_partials + 1)
    # Index 0 is DC and never sounds.
    return [
        (k, float(table.real[k]), float(table.imag[k]))
        for k in range(1, n)
        if table.real[k] != 0.0 or table.imag[k] != 0.0
    ]


def wave_peak(table: WaveTable, max_partials: int = 64) -> float:
    """
    Peak of one cycle of the table's waveform.
    """
    phase = np.linspace(0.0, 2.0 * math.pi, _PEAK_GRID, endpoint=False)
    y = np.zeros_like(phase)
    for k, re, im in _partials(table, max_partials):
        y += re * np.cos(k * phase) + im * np.sin(k * phase)
    return float(np.max(np.abs(y)))


def periodic_wave(
    phase: np.ndarray,
    table: WaveTable,
    freqs: Optional[np.ndarray] = None,
    sr: Optional[int] = None,
    max_partials: int = 64,
) -> np.ndarray:
    """
    Additive synthesis from a wave table's Fourier coefficients.

    Output is normalised so one cycle peaks at 1. When ``freqs`` and ``sr``
    are given, partials above Nyquist are muted sample by sample.
    """
    y = np.zeros_like(phase, dtype=np.float64)
    nyquist = sr / 2.0 if sr else None
    for k, re, im in _partials(table, max_partials):
        partial = re * np.cos(k * phase) + im * np.sin(k * phase)
        if freqs is not None and nyquist is not None:
            partial = np.where(k * freqs < nyquist, partial, 0.0)
        y += partial
    peak = wave_peak(table, max_partials)
    return y / peak if peak > 0.0 else y


def osc_sine(phase: np.ndarray) -> np.ndarray:
    """
    Beep. What a voice sounds like before it gets a wave table.
    """
    return np.sin(phase)
