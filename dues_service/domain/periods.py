"""Due date and period calculations for recurring dues"""

import logging
from datetime import date, timedelta
from typing import Optional
from dateutil.relativedelta import relativedelta

from dues_service.domain.models import DuesPeriod, Frequency
from dues_service.utils.date_utils import roll_date

# Months covered by one period of each anchored frequency
PERIOD_MONTHS = {
    Frequency.monthly: 1,
    Frequency.quarterly: 3,
    Frequency.yearly: 12,
}

WEEK = timedelta(days=7)


def coerce_frequency(value) -> Frequency:
    """Unknown frequencies fall back to weekly"""
    try:
        return Frequency(value)
    except ValueError:
        logging.warning("Unknown dues frequency, treating as weekly", extra={"frequency": str(value)})
        return Frequency.weekly


def next_due_date(frequency, anchor_day: int, today: date) -> date:
    """
    Next occurrence of the recurrence anchor strictly after today.

    Requirements:
    - monthly: anchor day of this month, else of next month
    - quarterly: anchor day of this quarter's first month (Jan/Apr/Jul/Oct), else of the next quarter's
    - yearly: anchor day of January this year, else of next January
    - weekly: today + 7 days (not anchored to a weekday)

    Anchor days past the end of a month roll forward into the next month.

    Example:
        monthly, anchor 1, today 2024-03-15 -> 2024-04-01
        quarterly, anchor 5, today 2024-05-10 -> 2024-07-05
    """
    frequency = coerce_frequency(frequency)

    if frequency is Frequency.monthly:
        target = roll_date(today.year, today.month, anchor_day)
        if target <= today:
            target = roll_date(today.year, today.month + 1, anchor_day)
    elif frequency is Frequency.quarterly:
        quarter_start = (today.month - 1) // 3 * 3 + 1
        target = roll_date(today.year, quarter_start, anchor_day)
        if target <= today:
            target = roll_date(today.year, quarter_start + 3, anchor_day)
    elif frequency is Frequency.yearly:
        target = roll_date(today.year, 1, anchor_day)
        if target <= today:
            target = roll_date(today.year + 1, 1, anchor_day)
    else:
        target = today + WEEK

    return target


def period_range(frequency, due_date: date, anchor_day: Optional[int] = None) -> DuesPeriod:
    """
    Closed interval of days a due date covers, ending on the due date.

    Without an anchor the start is one period before the due date plus a day
    (month arithmetic clamps to month end). With the anchor the start is the
    day after the previous anchored due date, so consecutive periods tile
    even when the anchor overflows short months.
    """
    frequency = coerce_frequency(frequency)

    if frequency is Frequency.weekly:
        return DuesPeriod(start=due_date - WEEK + timedelta(days=1), end=due_date)

    months = PERIOD_MONTHS[frequency]
    if anchor_day is None:
        previous = due_date - relativedelta(months=months)
    else:
        # A rolled-over due date belongs to the slot of the month before
        slot_month = due_date.month if due_date.day == anchor_day else due_date.month - 1
        previous = roll_date(due_date.year, slot_month - months, anchor_day)

    return DuesPeriod(start=previous + timedelta(days=1), end=due_date)
