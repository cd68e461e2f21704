#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
perpetuum

Compose a fresh variation on Perpetuum Mobile and render it to a WAV file.

    python -m perpetuum --bars-per-part 2 --tempo 120 --out perpetuum.wav

Instruments are fetched from $PERPETUUM_INSTRUMENT_URL/instruments/<name>
unless --instrument-file points at a local JSON wave table.
"""
import argparse
import asyncio
import json
import logging
import random
import sys
from typing import Optional, Sequence

from perpetuum.config import Settings, load_settings
from perpetuum.errors import PerpetuumError
from perpetuum.instruments import (
    INSTRUMENT_CACHE,
    HttpTransport,
    InstrumentStore,
    WaveTable,
)
from perpetuum.io import normalize, save_wav
from perpetuum.melody import generate
from perpetuum.player import play
from perpetuum.score import Score
from perpetuum.sink import OfflineSink

OUT_PATH = "perpetuum.wav"

_LOG = logging.getLogger("perpetuum")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s:%(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perpetuum",
        description="Generate and render a variation on Perpetuum Mobile.",
    )
    parser.add_argument("--bars-per-part", type=int, default=4, help="bars in each of the three parts")
    parser.add_argument("--tempo", type=float, default=90, help="beats per minute")
    parser.add_argument("--melody", nargs="+", metavar="NOTE", help="main melody (default: random)")
    parser.add_argument("--variation", nargs="+", metavar="NOTE", help="final-part bass line (default: random)")
    parser.add_argument("--length", type=int, default=15, help="length of generated sequences")
    parser.add_argument("--instrument", default="piano", help="instrument name to fetch")
    parser.add_argument("--instrument-file", help="read the wave table from a local JSON file instead")
    parser.add_argument("--seed", type=int, help="seed for generated sequences")
    parser.add_argument("--out", default=OUT_PATH, help="output WAV path")
    return parser


def build_score(args: argparse.Namespace) -> Score:
    rng = random.Random(args.seed)
    return Score(
        bars_per_part=args.bars_per_part,
        tempo=args.tempo,
        melody=args.melody or generate(args.length, rng),
        variation=args.variation or generate(args.length, rng),
        instrument=args.instrument,
    )


def build_store(args: argparse.Namespace, settings: Settings) -> InstrumentStore:
    store = InstrumentStore(
        HttpTransport(settings.instrument_url, timeout=settings.http_timeout),
        INSTRUMENT_CACHE,
    )
    if args.instrument_file:
        try:
            with open(args.instrument_file, encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as exc:
            raise PerpetuumError(f"Could not read {args.instrument_file}: {exc}") from exc
        store.cache.put(args.instrument, WaveTable.from_json(doc, name=args.instrument))
    return store


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        score = build_score(args)
        _LOG.info("Melody: %s", " ".join(score.melody))
        _LOG.info("Variation: %s", " ".join(score.variation))

        sink = OfflineSink(settings.sample_rate)
        performance = play(score, sink=sink, store=build_store(args, settings))
        score_schedule = asyncio.run(performance)

        mix = normalize(sink.render(score_schedule.timings.total_duration))
        save_wav(args.out, mix, settings.sample_rate)
    except PerpetuumError as exc:
        print(f"perpetuum: {exc}", file=sys.stderr)
        return 1
    _LOG.info("Wrote %s", args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
