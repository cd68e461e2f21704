"""
perpetuum - generate and play a variation on a theme by Simon Jeffes
in his piece Perpetuum Mobile.

    score = {"bars_per_part": 2, "tempo": 120, "melody": generate(), "instrument": "piano"}
    sink = OfflineSink()
    asyncio.run(play(score, sink=sink))
    audio = sink.render(...)
"""

SAMPLE_RATE = 44100

from perpetuum.instruments import get_instrument  # noqa: E402
from perpetuum.melody import generate  # noqa: E402
from perpetuum.player import apply_schedule, play  # noqa: E402
from perpetuum.score import Score  # noqa: E402
from perpetuum.sequencer import schedule  # noqa: E402
from perpetuum.sink import OfflineSink  # noqa: E402
from perpetuum.tones import NOTES  # noqa: E402

__all__ = [
    "NOTES",
    "SAMPLE_RATE",
    "OfflineSink",
    "Score",
    "apply_schedule",
    "generate",
    "get_instrument",
    "play",
    "schedule",
]
