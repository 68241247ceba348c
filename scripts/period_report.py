#!/usr/bin/env python3
"""Print the grade, totals and top dimensions of a MAGIS period."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from loguru import logger

from config.version import __version__
from src.metrics import MetricFilter, MetricsEngine, MetricsResult, PeriodPreset, format_percentage
from src.storage import DatabaseManager, MagisStore
from src.utils.datetime_utils import format_display, parse_timestamp
from src.utils.logger import log_function_calls, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=[preset.value for preset in PeriodPreset],
        default=PeriodPreset.LAST_7_DAYS.value,
        help="Period to report on",
    )
    parser.add_argument("--start", help="Custom period start (ISO 8601)")
    parser.add_argument("--end", help="Custom period end (ISO 8601)")
    parser.add_argument("--database", type=Path, help="SQLite file to read instead of the configured one")
    parser.add_argument("--filter", type=Path, help="JSON file with a metric filter")
    parser.add_argument("--top", type=int, default=3, help="Rows shown per dimension")
    parser.add_argument("--json", action="store_true", help="Emit a JSON summary")
    return parser


@log_function_calls()
def summarize(result: MetricsResult, top: int = 3) -> Dict[str, Any]:
    """Plain dict with the figures shown by the report."""
    grade = result.period_grade
    totals = result.total_trajectories
    dimensions: Dict[str, List[Dict[str, Any]]] = {}
    for table in result.dimensions.values():
        rows = [row for row in table.sorted_rows() if row.total_score > 0][:top]
        if rows:
            dimensions[table.label] = [
                {
                    "label": row.label,
                    "score": round(row.total_score, 1),
                    "share": format_percentage(row.contribution_percent),
                }
                for row in rows
            ]
    return {
        "period": result.period.label,
        "start": format_display(result.period.start),
        "end": format_display(result.period.end),
        "grade": grade.grade,
        "passed": grade.passed,
        "explanation": grade.explanation,
        "previous_grade": result.previous_grade.grade,
        "mortal_total": round(totals.mortal_sins.total_score, 1),
        "venial_total": round(totals.venial_sins.total_score, 1),
        "buenas_obras_total": round(totals.buenas_obras.total_score, 1),
        "events": totals.mortal_sins.event_count + totals.venial_sins.event_count,
        "top_dimensions": dimensions,
    }


def render(summary: Dict[str, Any]) -> str:
    verdict = "APROBADO" if summary["passed"] else "NO APROBADO"
    lines = [
        "=" * 60,
        f"📅 {summary['period']}: {summary['start']} → {summary['end']}",
        f"🎓 Nota: {summary['grade']:.1f} ({verdict}), anterior {summary['previous_grade']:.1f}",
        f"   {summary['explanation']}",
        f"⛔ Mortales: {summary['mortal_total']:.1f} pts",
        f"• Veniales: {summary['venial_total']:.1f} pts",
        f"🌱 Buenas obras: {summary['buenas_obras_total']:.1f} pts",
        "-" * 60,
    ]
    for label, rows in summary["top_dimensions"].items():
        lines.append(f"{label}:")
        lines.extend(f"  • {row['label']}: {row['score']:.1f} ({row['share']})" for row in rows)
    lines.append("=" * 60)
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    db = None
    if args.database:
        db = DatabaseManager({"type": "sqlite", "path": str(args.database)})
    store = MagisStore(db)

    metric_filter = None
    if args.filter:
        try:
            metric_filter = MetricFilter.from_dict(
                json.loads(args.filter.read_text(encoding="utf-8"))
            )
        except (OSError, ValueError) as exc:
            logger.error(f"❌ Filtro inválido: {exc}")
            return 2

    engine = MetricsEngine(store)
    try:
        result = engine.calculate(
            args.preset,
            metric_filter,
            custom_start=parse_timestamp(args.start) if args.start else None,
            custom_end=parse_timestamp(args.end) if args.end else None,
        )
    except ValueError as exc:
        logger.error(f"❌ Periodo inválido: {exc}")
        return 2

    logger.info(f"📊 Informe MAGIS {__version__} generado para {result.period.label}")
    summary = summarize(result, args.top)
    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    else:
        print(render(summary))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
