"""Dispense domain — plans, ad-hoc commands, history and recurrence rules."""

from .command import AdHocCommand
from .history import DispenseOrigin, DispenseOutcome, HistoryRecord
from .items import DispenseItem
from .magazine import DEFAULT_MAGAZINES, Magazine
from .plan import DispensePlan, PlanKind, PlanStatus
from .recurrence import first_occurrence, next_occurrence, parse_time_of_day

__all__ = [
    "DEFAULT_MAGAZINES",
    "AdHocCommand",
    "DispenseItem",
    "DispenseOrigin",
    "DispenseOutcome",
    "DispensePlan",
    "HistoryRecord",
    "Magazine",
    "PlanKind",
    "PlanStatus",
    "first_occurrence",
    "next_occurrence",
    "parse_time_of_day",
]
