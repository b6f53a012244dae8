from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from dateutil.relativedelta import relativedelta

from models import Recurrence, Weekday

# Воскресенье = 0 ... Суббота = 6, независимо от локали
WEEKDAY_INDEX = {
    Weekday.SUNDAY: 0,
    Weekday.MONDAY: 1,
    Weekday.TUESDAY: 2,
    Weekday.WEDNESDAY: 3,
    Weekday.THURSDAY: 4,
    Weekday.FRIDAY: 5,
    Weekday.SATURDAY: 6,
}


def weekday_index(tag) -> Optional[int]:
    try:
        return WEEKDAY_INDEX[Weekday(tag)]
    except ValueError:
        return None


def day_index(moment: datetime) -> int:
    # datetime.weekday(): понедельник = 0
    return (moment.weekday() + 1) % 7


def weekday_tag(moment: datetime) -> Weekday:
    return next(tag for tag, idx in WEEKDAY_INDEX.items() if idx == day_index(moment))


def add_interval(base: datetime, recurrence, index: int) -> datetime:
    recurrence = Recurrence(recurrence)
    if recurrence == Recurrence.WEEKLY:
        return base + timedelta(weeks=index)
    if recurrence == Recurrence.BIWEEKLY:
        return base + timedelta(weeks=2 * index)
    if recurrence == Recurrence.MONTHLY:
        # 31 января + 1 месяц = 29 февраля / 28 февраля
        return base + relativedelta(months=index)
    return base


def _with_base_time(moment: datetime, base: datetime) -> datetime:
    return moment.replace(hour=base.hour, minute=base.minute, second=0, microsecond=0)


def generate_recurrence_dates(base_date: datetime, recurrence, weekdays: Iterable,
                              occurrence_count: int) -> List[datetime]:
    """Даты дочерних записей серии.

    Слот базового дня недели в первом периоде - это сама основная запись,
    поэтому он не генерируется. Ежемесячная серия повторяет то же число
    месяца, по одной дате на месяц; выбранные дни недели влияют только
    на первый период.
    """
    if not recurrence or Recurrence(recurrence) == Recurrence.NONE:
        return []
    recurrence = Recurrence(recurrence)
    targets = list(dict.fromkeys(
        idx for idx in (weekday_index(tag) for tag in weekdays or []) if idx is not None
    ))
    if occurrence_count is None or occurrence_count <= 1 or not targets:
        return []

    base_day = day_index(base_date)
    dates = []

    # Период 0: остальные выбранные дни той же недели
    for target in targets:
        if target == base_day:
            continue
        candidate = base_date + timedelta(days=(target - base_day + 7) % 7)
        if recurrence == Recurrence.MONTHLY and candidate.month != base_date.month:
            continue
        dates.append(_with_base_time(candidate, base_date))

    # Периоды 1..N-1
    for i in range(1, occurrence_count):
        shifted = add_interval(base_date, recurrence, i)
        # Ежемесячно: одна дата на месяц (то же число), а не по дате на каждый день недели
        if recurrence == Recurrence.MONTHLY:
            dates.append(_with_base_time(shifted, base_date))
            continue
        for target in targets:
            candidate = shifted + timedelta(days=(target - base_day + 7) % 7)
            dates.append(_with_base_time(candidate, base_date))

    return dates
