"""Command line interface for the seating optimizer."""
from __future__ import annotations

import argparse
import csv
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .config import OptimizerConfig
from .csv_loader import load_all
from .log_config import setup_logging
from .optimizer import apply_updates, optimize
from .scoring import table_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Relationship aware seating optimizer")
    parser.add_argument("--guests", required=True, help="Path to guests.csv")
    parser.add_argument("--relationships", required=True, help="Path to relationships.csv")
    parser.add_argument("--tables", required=True, help="Path to tables.csv")
    parser.add_argument("--constraints", help="Optional path to constraints.csv")
    parser.add_argument("--beam-width", type=int, default=8,
                        help="Number of partial seatings kept while placing clusters.")
    parser.add_argument("--max-passes", type=int, default=12,
                        help="Upper bound on local improvement passes.")
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: guest,table,seat.")
    parser.add_argument("--out-report", type=Path,
                        help="Write per-table report CSV with scores and grades.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point used by ``seating-optimizer`` and ``python -m seating_optimizer.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        guests, tables, constraints = load_all(
            args.guests, args.relationships, args.tables, args.constraints
        )
    except (OSError, ValueError, KeyError) as exc:
        parser.error(str(exc))

    config = replace(OptimizerConfig(), beam_width=args.beam_width, max_passes=args.max_passes)
    result = optimize(guests, tables, constraints, config)
    seated = apply_updates(guests, result.updates)

    # Print simple assignments
    for guest in sorted(seated, key=lambda g: g.id):
        print(f"{guest.id},{guest.table_id or ''}")

    print(f"[SCORE] before={result.before_score:g} after={result.after_score:g} "
          f"moved={len(result.moved_guests)} newly_seated={result.newly_seated}")
    for v in result.violations:
        print(f"[VIOLATION] {v.priority} {v.kind}: {v.description}")

    if args.out_assignments:
        args.out_assignments.parent.mkdir(parents=True, exist_ok=True)
        with args.out_assignments.open("w", newline="") as f:
            w = csv.writer(f)
            w.writerow(["guest", "table", "seat"])
            for guest in sorted(seated, key=lambda g: g.id):
                seat = "" if guest.seat_index is None else guest.seat_index
                w.writerow([guest.id, guest.table_id or "", seat])

    graded = table_report(seated, tables, constraints, config=config)

    # Print a compact table summary
    for s in graded:
        print(f"[REPORT] {s['table']} grade={s['grade']} mean={s['mean_score']:.2f} "
              f"seated={len(s['members'])}/{s['capacity']} total={s['total_score']} "
              f"affinity={s['affinity_pairs']} repulsion={s['repulsion_pairs']} neutral={s['neutral_pairs']}")

    if args.out_report:
        args.out_report.parent.mkdir(parents=True, exist_ok=True)
        with args.out_report.open("w", newline="") as f:
            w = csv.DictWriter(f, fieldnames=[
                "table", "name", "grade", "seated", "capacity", "total_score", "mean_score",
                "affinity_pairs", "repulsion_pairs", "neutral_pairs", "members"
            ])
            w.writeheader()
            for s in graded:
                w.writerow({
                    "table": s["table"],
                    "name": s["name"],
                    "grade": s["grade"],
                    "seated": len(s["members"]),
                    "capacity": s["capacity"],
                    "total_score": s["total_score"],
                    "mean_score": f"{s['mean_score']:.4f}",
                    "affinity_pairs": s["affinity_pairs"],
                    "repulsion_pairs": s["repulsion_pairs"],
                    "neutral_pairs": s["neutral_pairs"],
                    "members": "|".join(s["members"]),
                })


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
