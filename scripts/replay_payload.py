#!/usr/bin/env python3
"""Replay captured inbound deliveries through the ingestion pipeline.

Reads one or more JSON files, each holding a delivery body as received from
the upstream push (``{"Events": [...]}`` or a bare list of events), applies
them in order to a fresh in-memory store and prints the resulting asset
summaries. Useful for checking how a new upstream schema revision is
normalized before it reaches production.

Example::

    python scripts/replay_payload.py captures/*.json --detail 300234010961140
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from satwatch import DeviceNotFoundError, SatwatchClient, SatwatchConfig  # noqa: E402


def _load(path: Path) -> Any:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("payloads", nargs="+", type=Path, help="JSON delivery files, applied in order")
    parser.add_argument("--detail", action="append", default=[], metavar="DEVICE_ID", help="print full detail")
    parser.add_argument("--retention", type=int, default=None, help="override per-asset log retention")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable DEBUG logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.retention is not None:
        overrides["retention"] = args.retention
    client = SatwatchClient(SatwatchConfig.from_env(**overrides))

    for path in args.payloads:
        try:
            payload = _load(path)
        except (OSError, json.JSONDecodeError) as exc:
            print(f"skip {path}: {exc}", file=sys.stderr)
            continue
        report = client.ingest(payload)
        print(f"{path}: accepted={report.accepted} failed={report.failed} devices={report.device_ids}")

    summaries = [summary.to_api() for summary in client.list_assets()]
    print(json.dumps(summaries, indent=2))

    exit_code = 0
    for device_id in args.detail:
        try:
            detail = client.get_asset_detail(device_id)
        except DeviceNotFoundError as exc:
            print(str(exc), file=sys.stderr)
            exit_code = 1
            continue
        print(json.dumps(detail.to_api(), indent=2))
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
