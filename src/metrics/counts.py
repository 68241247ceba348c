"""Live item counters governed by reset cycles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Union

from config.settings import RESET_CONFIG
from src.contracts.catalog import BuenaObra, CustomResetRule, Sin
from src.contracts.enums import CustomResetUnit, ResetCycle
from src.contracts.events import ExamSession
from src.utils.datetime_utils import ensure_utc, local_date, utc_now

CatalogItem = Union[Sin, BuenaObra]


@dataclass
class ItemCount:
    count: int = 0
    last_event_at: Optional[datetime] = None


def _item_events(session: ExamSession, item: CatalogItem) -> Iterable[Any]:
    if isinstance(item, BuenaObra):
        return (e for e in session.buena_obra_events if e.buena_obra_id == item.id)
    return (e for e in session.events if e.sin_id == item.id)


def reset_window(
    cycle: ResetCycle,
    rule: Optional[CustomResetRule] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[timedelta]:
    """Fixed-length window for elapsed-time cycles; ``None`` for ``no`` and ``diario``."""
    cfg = config or RESET_CONFIG
    if cycle == ResetCycle.SEMANAL:
        return timedelta(days=cfg["weekly_days"])
    if cycle == ResetCycle.MENSUAL:
        return timedelta(days=cfg["monthly_days"])
    if cycle == ResetCycle.ANUAL:
        return timedelta(days=cfg["yearly_days"])
    if cycle == ResetCycle.PERSONALIZADO and rule is not None:
        unit_days = {
            CustomResetUnit.DAYS: 1,
            CustomResetUnit.WEEKS: 7,
            CustomResetUnit.MONTHS: cfg["custom_month_days"],
        }[rule.unit]
        return timedelta(days=rule.value * unit_days)
    return None


def should_reset(
    item: CatalogItem,
    last_event_at: Optional[datetime],
    now: Optional[datetime] = None,
    config: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Whether the item's reset cycle has elapsed since ``last_event_at``.

    The daily cycle compares calendar dates in the display timezone; the
    others require the elapsed time to exceed the cycle length.
    """
    if last_event_at is None or item.reset_cycle == ResetCycle.NO:
        return False
    cfg = config or RESET_CONFIG
    current = ensure_utc(now) if now else utc_now()
    last = ensure_utc(last_event_at)

    if item.reset_cycle == ResetCycle.DIARIO:
        tz = cfg.get("timezone", "UTC")
        return local_date(last, tz) != local_date(current, tz)

    window = reset_window(item.reset_cycle, item.custom_reset_rule, cfg)
    if window is None:
        return False
    return current - last > window


def persisted_count(
    item: CatalogItem,
    sessions: Iterable[ExamSession],
    now: Optional[datetime] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ItemCount:
    """Accumulated count over completed sessions, zeroed when the cycle elapsed."""
    total = 0
    last: Optional[datetime] = None
    for session in sessions:
        if not session.is_completed:
            continue
        for event in _item_events(session, item):
            total += event.count_increment
            stamp = ensure_utc(event.timestamp)
            if last is None or stamp > last:
                last = stamp

    if should_reset(item, last, now, config):
        return ItemCount()
    return ItemCount(total, last)


def live_count(
    item: CatalogItem,
    sessions: Iterable[ExamSession],
    current_session: Optional[ExamSession] = None,
    now: Optional[datetime] = None,
    config: Optional[Dict[str, Any]] = None,
) -> int:
    """Persisted count plus the events of the in-progress session."""
    base = persisted_count(item, sessions, now, config).count
    if current_session is None or current_session.is_completed:
        return base
    return base + sum(e.count_increment for e in _item_events(current_session, item))


__all__ = ["ItemCount", "live_count", "persisted_count", "reset_window", "should_reset"]
