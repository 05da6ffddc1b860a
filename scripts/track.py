#!/usr/bin/env python3
"""Run a location tracker from the command line.

Collects fixes from an HTTP JSON endpoint, stores them (SQLite if a
database path is given), and prints each new sample as it arrives.
Stop with Ctrl+C.

Usage
-----
::

    export GEOTRACK_PROVIDER_URL="http://phone.local:8080/fix"
    python scripts/track.py --interval 60000 --db ~/.local/share/geotrack.db

    # Print stored history and exit
    python scripts/track.py --db ~/.local/share/geotrack.db --history

Options::

    --interval MS     Collection interval in milliseconds (default: env or 10000)
    --preset N        Use interval preset 0, 1 or 2 (10 s, 60 s, 5 min)
    --db PATH         SQLite database file (default: in-memory)
    --url URL         Fix provider URL (default: $GEOTRACK_PROVIDER_URL)
    --history         Print stored samples and exit
    --json            Print samples as JSON lines
    --verbose         DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pygeotrack import (  # noqa: E402
    INTERVAL_PRESETS_MS,
    LocationSample,
    LocationTracker,
    TrackerConfig,
    TrackerError,
    open_store,
)


def _format_sample(sample: LocationSample, *, as_json: bool) -> str:
    if as_json:
        return sample.model_dump_json()
    return (
        f"{sample.format_timestamp()}  "
        f"Lat: {sample.latitude:.6f}  Lng: {sample.longitude:.6f}  "
        f"±{sample.precision:.0f} m  (#{sample.id})"
    )


def _print_history(database: str | None, *, as_json: bool) -> int:
    if database is None:
        print("--history needs --db (an in-memory store is always empty)", file=sys.stderr)
        return 2
    try:
        store = open_store(database)
        try:
            samples = store.scan_all_ordered_by_time()
        finally:
            store.close()
    except TrackerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if not samples:
        print("No samples stored.")
        return 0
    for sample in samples:
        print(_format_sample(sample, as_json=as_json))
    return 0


async def _run(config: TrackerConfig, *, as_json: bool) -> None:
    async with LocationTracker(config) as tracker:
        state = await tracker.start()
        print(f"Tracking every {state.interval_ms} ms from {config.provider_url}", file=sys.stderr)
        seen = 0
        async with tracker.observe_samples() as feed:
            async for samples in feed:
                for sample in samples:
                    if sample.id > seen:
                        print(_format_sample(sample, as_json=as_json), flush=True)
                        seen = sample.id


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Collect and store location samples.")
    parser.add_argument("--interval", type=int, default=None, help="Interval in milliseconds")
    parser.add_argument(
        "--preset",
        type=int,
        choices=range(len(INTERVAL_PRESETS_MS)),
        default=None,
        help="Interval preset index (0=10 s, 1=60 s, 2=5 min)",
    )
    parser.add_argument("--db", default=None, help="SQLite database path")
    parser.add_argument("--url", default=None, help="Fix provider URL")
    parser.add_argument("--history", action="store_true", help="Print stored samples and exit")
    parser.add_argument("--json", action="store_true", help="Machine-readable output")
    parser.add_argument("--verbose", "-v", action="store_true", help="DEBUG logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.preset is not None:
        overrides["interval_ms"] = INTERVAL_PRESETS_MS[args.preset]
    if args.interval is not None:
        overrides["interval_ms"] = args.interval
    if args.db is not None:
        overrides["database_path"] = args.db
    if args.url is not None:
        overrides["provider_url"] = args.url

    try:
        config = TrackerConfig.from_env(**overrides)
    except TrackerError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    if args.history:
        return _print_history(config.database_path, as_json=args.json)

    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(_run(config, as_json=args.json))
    except TrackerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
