# ===== ADSR Envelope =====
from dataclasses import dataclass


@dataclass(frozen=True)
class Envelope:
    """
    Pluck-shaped ADSR, every stage expressed as a fraction of one quaver.

    Attack ramps linearly to full gain, decay then falls away towards
    ``sustain`` and release pulls the note to silence just before the next
    one starts. Same shape for every note, voice and instrument.
    """

    attack: float = 0.05
    decay: float = 0.8
    sustain: float = 0.0
    release: float = 0.05

    def attack_time(self, start: float, quaver: float) -> float:
        return start + quaver * self.attack

    def release_time(self, start: float, quaver: float) -> float:
        return start + quaver - quaver * self.release

    def decay_constant(self, quaver: float) -> float:
        return quaver * self.decay

    def release_constant(self, quaver: float) -> float:
        return quaver * self.release


PLUCK = Envelope()
