"""Calendar-month monitoring periods."""
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo


class PeriodClock:
    """Resolves the current calendar-month period in one fixed time zone.

    Naive datetimes are read as wall-clock time in the clock's zone, aware
    ones are converted into it. Every period boundary handed out is aware.
    """

    def __init__(self, tz: Union[str, tzinfo, None] = "UTC"):
        if tz is None:
            tz = "UTC"
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, moment: datetime) -> datetime:
        """Express a datetime in the clock's zone."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)

    def current_period_start(self, now: Optional[datetime] = None) -> datetime:
        now = self.localize(now or self.now())
        return datetime(now.year, now.month, 1, tzinfo=self.tz)

    def next_period_start(self, now: Optional[datetime] = None) -> datetime:
        start = self.current_period_start(now)
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1)
        return start.replace(month=start.month + 1)

    def time_until_next_period(self, now: Optional[datetime] = None) -> timedelta:
        now = self.localize(now or self.now())
        # Subtract in UTC so DST transitions inside the month are counted
        return self.next_period_start(now).astimezone(ZoneInfo("UTC")) - now.astimezone(ZoneInfo("UTC"))

    def day_of_period(self, now: Optional[datetime] = None) -> int:
        return self.localize(now or self.now()).day

    def contains(self, moment: datetime, now: Optional[datetime] = None) -> bool:
        """True if moment falls in the period containing now."""
        moment = self.localize(moment)
        return self.current_period_start(now) <= moment < self.next_period_start(now)
