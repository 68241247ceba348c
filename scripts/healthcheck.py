"""Operational healthcheck for the MAGIS collection store."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from src import get_database_manager, setup_logging
from src.storage.repositories import SessionRepository, UserStateRepository
from src.utils.logger import log_function_calls

DEFAULT_MAX_OPEN_HOURS = int(os.getenv("HEALTHCHECK_MAX_OPEN_HOURS", "24"))
DEFAULT_MAX_EXAM_GAP_DAYS = int(os.getenv("HEALTHCHECK_MAX_EXAM_GAP_DAYS", "7"))


@dataclass
class CheckResult:
    """Represents the outcome of a single health check."""

    name: str
    status: str
    details: Dict[str, Any]

    def prefix(self) -> str:
        if self.status == "ok":
            return "✅"
        if self.status == "warn":
            return "⚠️"
        return "❌"

    def summary(self) -> str:
        message = self.details.get("message")
        if message:
            return message

        if self.name == "database":
            return f"Database reachable via {self.details.get('engine', 'unknown')}"

        if self.name == "open_session":
            age = self.details.get("age_hours")
            if age is None:
                return "No exam in progress"
            return f"Exam open for {age:.1f} hours (threshold {self.details.get('threshold')})"

        if self.name == "latest_exam":
            latest = self.details.get("latest")
            gap = self.details.get("gap_days")
            return (
                f"Last exam at {latest}; gap={gap:.1f} days "
                f"(threshold {self.details.get('threshold')} days)"
            )

        return self.name.replace("_", " ").title()


@log_function_calls()
def perform_healthcheck(
    *,
    db_manager=None,
    now: Optional[datetime] = None,
    max_open_hours: Optional[int] = None,
    max_exam_gap_days: Optional[int] = None,
) -> Dict[str, Any]:
    """Run health validations for the store and the examination routine."""

    db_manager = db_manager or get_database_manager()
    max_open_hours = DEFAULT_MAX_OPEN_HOURS if max_open_hours is None else max_open_hours
    max_exam_gap_days = (
        DEFAULT_MAX_EXAM_GAP_DAYS if max_exam_gap_days is None else max_exam_gap_days
    )
    now = now or datetime.now(timezone.utc)

    checks: list[CheckResult] = []

    try:
        with db_manager.get_session() as session:
            session.execute(text("SELECT 1"))
        health = db_manager.get_health_status()
    except SQLAlchemyError as exc:
        checks.append(
            CheckResult(
                name="database",
                status="fail",
                details={"message": f"Database query failed: {exc}"},
            )
        )
        return {"healthy": False, "checks": checks}

    checks.append(
        CheckResult(
            name="database",
            status="ok",
            details={"engine": health["database_type"]},
        )
    )

    open_session = SessionRepository(db_manager).get_in_progress_session()
    open_details: Dict[str, Any] = {"threshold": max_open_hours, "age_hours": None}
    open_status = "ok"
    if open_session is not None:
        age_hours = (now - open_session.started_at).total_seconds() / 3600.0
        open_details["age_hours"] = age_hours
        if age_hours > max_open_hours:
            open_status = "warn"
    checks.append(CheckResult(name="open_session", status=open_status, details=open_details))

    state = UserStateRepository(db_manager).get_state()
    exam_details: Dict[str, Any] = {
        "latest": state.last_exam_at.isoformat() if state.last_exam_at else None,
        "threshold": max_exam_gap_days,
        "gap_days": None,
    }
    exam_status = "ok"
    if state.last_exam_at is None:
        exam_status = "warn"
        exam_details["message"] = "No completed exams recorded"
    else:
        gap_days = (now - state.last_exam_at).total_seconds() / 86400.0
        exam_details["gap_days"] = gap_days
        if gap_days > max_exam_gap_days:
            exam_status = "fail"
    checks.append(CheckResult(name="latest_exam", status=exam_status, details=exam_details))

    healthy = all(check.status != "fail" for check in checks)

    return {
        "healthy": healthy,
        "checks": checks,
        "summary": {
            "collections": health["collections"],
            "last_write": health["last_write"],
            "total_exams": state.total_exams,
            "latest_exam": exam_details["latest"],
        },
    }


def render_checks(checks: Iterable[CheckResult]) -> None:
    """Pretty-print the check results for CLI users."""

    for check in checks:
        print(f"{check.prefix()} {check.name}: {check.summary()}")


def run_cli(
    *,
    max_open_hours: Optional[int] = None,
    max_exam_gap_days: Optional[int] = None,
    db_manager=None,
) -> bool:
    """Execute the healthcheck and print results."""

    setup_logging()
    result = perform_healthcheck(
        db_manager=db_manager,
        max_open_hours=max_open_hours,
        max_exam_gap_days=max_exam_gap_days,
    )

    render_checks(result.get("checks", []))

    if summary := result.get("summary"):
        counts = ", ".join(f"{name}={count}" for name, count in summary["collections"].items())
        print(
            "---\nSummary: "
            f"total_exams={summary['total_exams']}, last_write={summary['last_write']}\n"
            f"Collections: {counts}"
        )

    return bool(result.get("healthy"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Healthcheck for MAGIS. Validates database connectivity, stale open "
            "exams and the time since the last completed exam."
        )
    )
    parser.add_argument(
        "--max-open-hours",
        type=int,
        default=None,
        help=(
            "Hours an exam may stay open before it is reported. "
            f"Defaults to {DEFAULT_MAX_OPEN_HOURS}."
        ),
    )
    parser.add_argument(
        "--max-exam-gap-days",
        type=int,
        default=None,
        help=(
            "Maximum allowed days since the last completed exam. "
            f"Defaults to {DEFAULT_MAX_EXAM_GAP_DAYS}."
        ),
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    success = run_cli(
        max_open_hours=args.max_open_hours,
        max_exam_gap_days=args.max_exam_gap_days,
    )
    sys.exit(0 if success else 1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
