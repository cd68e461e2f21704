# ===== Beep boop boop =====
import random
from typing import Optional

from perpetuum.tones import NOTES


def generate(length: int = 15, rng: Optional[random.Random] = None) -> list[str]:
    """
    Sample ``length`` note names uniformly (with replacement) from ``NOTES``.

    Pass a seeded ``random.Random`` for a repeatable melody.
    """
    pick = (rng or random).choice
    keys = list(NOTES)
    return [pick(keys) for _ in range(max(0, length))]
