#!/usr/bin/env python3
"""Reconcile an authoritative identifier export with a visual checklist scrape.

Writes the canonical hierarchy document and the discrepancy report, then
prints a run summary.

Usage:
    python3 scripts/reconcile_checklists.py --ids data/identifiers.json --scrape data/scrape.json
    python3 scripts/reconcile_checklists.py --ids ids.json --scrape scrape.json \\
        --out-canonical out/canonical.json --out-report out/discrepancies.json \\
        --config reconcile_config.json --timestamp

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import orjson

from checklist_reconcile.config import DEFAULT_CONFIG, load_config
from checklist_reconcile.io_utils import load_json_object, save_json
from checklist_reconcile.reconcile import run_reconciliation

log = logging.getLogger("reconcile_checklists")


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile identifier exports with scraped checklist hierarchies.",
    )
    parser.add_argument("--ids", type=Path, required=True,
                        help="Authoritative identifier document (JSON)")
    parser.add_argument("--scrape", type=Path, default=None,
                        help="Visual-scrape document (JSON); omit to emit flat versions only")
    parser.add_argument("--out-canonical", type=Path, default=Path("canonical_checklists.json"),
                        help="Output path for the canonical hierarchy document")
    parser.add_argument("--out-report", type=Path, default=Path("discrepancy_report.json"),
                        help="Output path for the discrepancy report")
    parser.add_argument("--config", type=Path, default=None,
                        help="Optional reconciliation config (JSON)")
    parser.add_argument("--timestamp", action="store_true",
                        help="Stamp both outputs with generated_at (breaks byte-identical reruns)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        authoritative_doc = load_json_object(args.ids, what="Identifier")
        scrape_doc = load_json_object(args.scrape, what="Scrape") if args.scrape else None
        run = run_reconciliation(authoritative_doc, scrape_doc, config)
    except (OSError, ValueError) as exc:
        log.error("%s", exc)
        return 1

    if scrape_doc is None:
        log.warning("No scrape document given; every version is emitted flat")

    generated_at = datetime.now(UTC).isoformat() if args.timestamp else None
    try:
        save_json(run.canonical_document(generated_at=generated_at), args.out_canonical)
        save_json(run.discrepancy_document(generated_at=generated_at), args.out_report)
    except OSError as exc:
        log.error("Failed to write output: %s", exc)
        return 1
    log.info("Wrote %s and %s", args.out_canonical, args.out_report)

    summary = run.summary()
    summary["out_canonical"] = str(args.out_canonical)
    summary["out_report"] = str(args.out_report)
    dump_json(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
