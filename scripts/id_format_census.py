#!/usr/bin/env python3
"""Identifier format census over an authoritative identifier export.

Counts identifiers per grammar format across every checklist version and
lists examples, so unrecognized shapes (format "unknown") can be triaged
before a reconciliation run.

Usage:
    python3 scripts/id_format_census.py --ids data/identifiers.json
    python3 scripts/id_format_census.py --ids data/identifiers.json --examples 10

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import orjson

from checklist_reconcile.discrepancy import count_by_format, examples_by_format
from checklist_reconcile.id_grammar import IdFormat, parse_id
from checklist_reconcile.io_utils import load_json_object
from checklist_reconcile.reconcile_types import AuthoritativeVersion, authoritative_versions_from_doc

log = logging.getLogger("id_format_census")


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def census(versions: Iterable[AuthoritativeVersion], *, examples: int = 5) -> dict[str, Any]:
    """Format counts and examples over the distinct identifiers of each version."""
    identifiers: list[str] = []
    unknown_by_checklist: dict[str, int] = {}
    version_count = 0
    for version in versions:
        version_count += 1
        distinct = version.distinct_identifiers()
        identifiers.extend(distinct)
        unknown = sum(1 for i in distinct if parse_id(i).is_unknown)
        if unknown:
            key = f"{version.name} {version.version}"
            unknown_by_checklist[key] = unknown_by_checklist.get(key, 0) + unknown

    by_format = count_by_format(identifiers)
    return {
        "versions": version_count,
        "identifiers": len(identifiers),
        "unknown": by_format.get(str(IdFormat.UNKNOWN), 0),
        "by_format": by_format,
        "examples": examples_by_format(identifiers, limit=examples),
        "unknown_by_checklist": dict(sorted(unknown_by_checklist.items())),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Count authoritative identifiers per grammar format.",
    )
    parser.add_argument("--ids", type=Path, required=True,
                        help="Authoritative identifier document (JSON)")
    parser.add_argument("--examples", type=int, default=5,
                        help="Examples to list per format (default: 5)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)

    if args.examples < 0:
        parser.error("--examples must be >= 0")

    try:
        versions = authoritative_versions_from_doc(load_json_object(args.ids, what="Identifier"))
    except (OSError, ValueError) as exc:
        log.error("%s", exc)
        return 1

    result = census(versions, examples=args.examples)
    log.info("%d identifiers across %d versions, %d unknown",
             result["identifiers"], result["versions"], result["unknown"])
    dump_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
