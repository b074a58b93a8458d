"""Date manipulation utilities"""

from datetime import date, timedelta
from dateutil.relativedelta import relativedelta


def roll_date(year: int, month: int, day: int) -> date:
    """
    Build a date letting month and day overflow into the following period.

    Month is 1-based and may fall outside 1..12; a day past the end of the
    month carries into the next one, so (2024, 2, 31) is 2024-03-02.
    """
    return date(year, 1, 1) + relativedelta(months=month - 1) + timedelta(days=day - 1)
