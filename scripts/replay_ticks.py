#!/usr/bin/env python3
"""Replay a recorded sequence of perception ticks through MeaningMaker.

Seeds the default store from local JSON-LD files, then feeds every tick of
a recording and prints the found / lost / new-target deltas.  Useful for
tuning the buffer window against real detector output.

Usage
-----
::

    python scripts/replay_ticks.py ticks.json --artifacts artifacts.jsonld

Recording format (JSON list, ``t`` in milliseconds)::

    [
        {"t": 0, "markers": [{"type": "qr_code", "value": "1234"}]},
        {"t": 250, "markers": [], "images": [{"id": "Lighthouse"}]},
        {"t": 500, "geo": {"latitude": 52.1, "longitude": 4.3}}
    ]

Options::

    --artifacts FILE     JSON-LD file to index before replaying (repeatable)
    --buffer-window MS   Override the buffer window (default: config/env)
    --origin ORIGIN      Origin allowed for side-loading URL markers
    --json               Output as machine-readable JSON
    -v, --verbose        Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from perceptkit import (  # noqa: E402
    MeaningMaker,
    PerceptionResult,
    PerceptionStateChangeRequest,
    PerceptkitConfig,
)


class _ReplayClock:
    """Clock driven by the recording's timestamps."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _describe(result: PerceptionResult) -> str:
    target = result.target.model_dump(by_alias=True) if result.target is not None else {}
    content = result.artifact.ar_content
    return f"{json.dumps(target, default=str)} -> {json.dumps(content, default=str)[:80]}"


async def replay(ticks: list[dict[str, Any]], *, mm: MeaningMaker, clock: _ReplayClock, json_mode: bool) -> None:
    records: list[dict[str, Any]] = []
    for index, tick in enumerate(ticks):
        clock.now = float(tick.get("t", index))
        request = PerceptionStateChangeRequest.model_validate({k: v for k, v in tick.items() if k != "t"})
        response = await mm.update_perception_state(request)

        record = {
            "t": clock.now,
            "new_targets": [target.model_dump() for target in response.new_targets],
            "found": [_describe(result) for result in response.found],
            "lost": [_describe(result) for result in response.lost],
            "detectable_images": [image.id for image in response.detectable_images],
        }
        records.append(record)
        if json_mode:
            continue
        if not (record["new_targets"] or record["found"] or record["lost"]):
            continue
        print(f"t={clock.now:>8.0f}ms")
        for target in record["new_targets"]:
            print(f"    new   {target}")
        for line in record["found"]:
            print(f"  + found {line}")
        for line in record["lost"]:
            print(f"  - lost  {line}")

    if json_mode:
        print(json.dumps(records, indent=2, default=str, ensure_ascii=False))


async def main() -> None:
    parser = argparse.ArgumentParser(description="Replay recorded perception ticks through MeaningMaker.")
    parser.add_argument("ticks", type=Path, help="JSON file with a list of ticks")
    parser.add_argument("--artifacts", type=Path, action="append", default=[], help="JSON-LD file to index")
    parser.add_argument("--buffer-window", type=float, default=None, help="Buffer window in ms")
    parser.add_argument("--origin", default=None, help="Origin allowed for side-loading URL markers")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.buffer_window is not None:
        overrides["buffer_window_ms"] = args.buffer_window
    if args.origin is not None:
        overrides["origin"] = args.origin
    config = PerceptkitConfig.from_env(**overrides)

    ticks = json.loads(args.ticks.read_text(encoding="utf-8"))
    if not isinstance(ticks, list):
        parser.error("recording must be a JSON list of ticks")

    clock = _ReplayClock()
    async with MeaningMaker(config, clock=clock) as mm:
        for path in args.artifacts:
            artifacts = mm.load_artifacts_from_json(json.loads(path.read_text(encoding="utf-8")))
            if not args.json:
                print(f"Indexed {len(artifacts)} artifact(s) from {path}")
        await replay(ticks, mm=mm, clock=clock, json_mode=args.json)


if __name__ == "__main__":
    asyncio.run(main())
