"""
Day arithmetic and the streak analyzer.

A note's day index is the number of whole days between the Unix epoch and
its calendar day. Comparing day indexes tells whether two notes were written
on adjacent days without parsing dates or caring about time zones.
"""
import datetime
import logging
import time
from typing import Iterable, List, NamedTuple, Optional

logger = logging.getLogger("food_journal.streak")

EPOCH = datetime.date(1970, 1, 1)
SECONDS_PER_DAY = 86400


# PUBLIC_INTERFACE
def day_index(day: datetime.date) -> int:
    """Days since 1970-01-01, i.e. floor(midnight UTC as unix seconds / 86400)."""
    if isinstance(day, datetime.datetime):
        day = day.date()
    return (day - EPOCH).days


# PUBLIC_INTERFACE
def today_index(now: Optional[float] = None) -> int:
    """Day index of the current moment (now defaults to time.time())."""
    if now is None:
        now = time.time()
    return int(now // SECONDS_PER_DAY)


# PUBLIC_INTERFACE
def utc_today() -> datetime.date:
    """Today's calendar day on the same clock the analyzer uses."""
    return datetime.datetime.now(datetime.timezone.utc).date()


# PUBLIC_INTERFACE
class StreakView(NamedTuple):
    """Unbroken run of calendar days with a note, most recent first."""
    gaps: List[str]
    has_gap: bool

    @property
    def length(self) -> int:
        return len(self.gaps)


# PUBLIC_INTERFACE
def analyze_streak(notes: Iterable, now: Optional[float] = None) -> StreakView:
    """
    Walk notes (each exposing day_index and calendar_day, ordered by
    day_index descending) and collect the distinct days of the current run.

    The baseline starts at today, so a note from yesterday (or today) keeps
    the run alive and today's missing note is not a gap yet. Processing stops
    at the first note more than one day older than the previous counted day.
    """
    cursor = today_index(now)
    gaps: List[str] = []
    counted = set()

    for note in notes:
        if note.calendar_day in counted:
            continue
        if note.day_index < cursor - 1:
            logger.debug("Gap detected after %d day(s): %s", len(gaps), gaps)
            return StreakView(gaps, True)
        gaps.append(note.calendar_day)
        counted.add(note.calendar_day)
        cursor = note.day_index

    return StreakView(gaps, False)
