"""Installment schedule generation"""

from datetime import date
from decimal import Decimal
from typing import List

from pos_planner.domain.exceptions import InvalidPlanInputError
from pos_planner.domain.models import Frequency, InstallmentLine, RecurrenceRule
from pos_planner.domain.money import ZERO, floor_cents, to_cents
from pos_planner.utils.date_utils import add_days, add_months


def due_date_for(start_date: date, rule: RecurrenceRule, index: int) -> date:
    """Due date of the 0-indexed installment under a recurrence rule"""
    if rule.kind is Frequency.DAILY:
        return add_days(start_date, index)
    if rule.kind is Frequency.WEEKLY:
        return add_days(start_date, 7 * index)
    if rule.kind is Frequency.MONTHLY:
        return add_months(start_date, index)
    if rule.kind is Frequency.EVERY_N_DAYS:
        step = max(1, rule.interval_days or 1)
        return add_days(start_date, index * step)
    raise InvalidPlanInputError(f"Unsupported recurrence: {rule.kind}")


def generate_schedule(
    total: Decimal,
    start_date: date,
    rule: RecurrenceRule,
    count: int,
) -> List[InstallmentLine]:
    """
    Split a total into `count` installments due under `rule`.

    Requirements:
    - Every installment but the last gets round(total / count) to the cent
    - Last installment absorbs the rounding remainder, so the schedule
      always sums to round(total) exactly
    - count below 1 is treated as 1

    Example:
        100.00 / 3 monthly from 2024-01-31 →
        [33.33 @ 01-31, 33.33 @ 02-29, 33.34 @ 03-31]
    """
    total = to_cents(total)
    if total < ZERO:
        raise InvalidPlanInputError(f"Schedule total cannot be negative, got: {total}")

    count = max(1, int(count))

    share = to_cents(total / count)
    # Half-up shares on tiny totals can overshoot; last line must stay >= 0
    if share * (count - 1) > total:
        share = floor_cents(total / count)

    schedule = []
    for i in range(count - 1):
        schedule.append(InstallmentLine(due_date=due_date_for(start_date, rule, i), amount=share))

    last_amount = total - share * (count - 1)
    schedule.append(InstallmentLine(due_date=due_date_for(start_date, rule, count - 1), amount=last_amount))

    return schedule
