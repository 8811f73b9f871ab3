"""New Zealand public holiday tables and the read-only calendar built from them"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Mapping

from tenancy_engine.config import settings
from tenancy_engine.domain.exceptions import HolidayDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearHolidays:
    national: frozenset[date]
    regional: Mapping[str, date]  # normalised region key -> anniversary day


# Mondayised dates as gazetted. Regional entries are provincial anniversary days.
BUILTIN_HOLIDAYS: Dict[int, Dict[str, object]] = {
    2025: {
        "national": [
            "2025-01-01",  # New Year's Day
            "2025-01-02",  # Day after New Year's
            "2025-02-06",  # Waitangi Day
            "2025-04-18",  # Good Friday
            "2025-04-21",  # Easter Monday
            "2025-04-25",  # ANZAC Day
            "2025-06-02",  # King's Birthday
            "2025-06-20",  # Matariki
            "2025-10-27",  # Labour Day
            "2025-12-25",  # Christmas Day
            "2025-12-26",  # Boxing Day
        ],
        "regional": {
            "Wellington": "2025-01-20",
            "Auckland": "2025-01-27",
            "Nelson": "2025-02-03",
            "Taranaki": "2025-03-10",
            "Otago": "2025-03-24",
            "Southland": "2025-04-22",
            "Hawke's Bay": "2025-10-24",
            "Canterbury": "2025-11-14",
        },
    },
    2026: {
        "national": [
            "2026-01-01",
            "2026-01-02",
            "2026-02-06",
            "2026-04-03",
            "2026-04-06",
            "2026-04-27",  # ANZAC Day observed
            "2026-06-01",
            "2026-07-10",
            "2026-10-26",
            "2026-12-25",
            "2026-12-28",  # Boxing Day observed
        ],
        "regional": {
            "Wellington": "2026-01-19",
            "Auckland": "2026-01-26",
            "Nelson": "2026-02-02",
            "Taranaki": "2026-03-09",
            "Otago": "2026-03-23",
            "Southland": "2026-04-07",
            "Hawke's Bay": "2026-10-23",
            "Canterbury": "2026-11-13",
        },
    },
    2027: {
        "national": [
            "2027-01-01",
            "2027-01-04",
            "2027-02-08",
            "2027-03-26",
            "2027-03-29",
            "2027-04-26",
            "2027-06-07",
            "2027-06-25",
            "2027-10-25",
            "2027-12-27",
            "2027-12-28",
        ],
        "regional": {
            "Wellington": "2027-01-25",
            "Auckland": "2027-02-01",
            "Nelson": "2027-02-01",
            "Taranaki": "2027-03-08",
            "Otago": "2027-03-22",
            "Southland": "2027-03-30",
            "Hawke's Bay": "2027-10-22",
            "Canterbury": "2027-11-12",
        },
    },
    2028: {
        "national": [
            "2028-01-03",
            "2028-01-04",
            "2028-02-07",
            "2028-04-14",
            "2028-04-17",
            "2028-04-25",
            "2028-06-05",
            "2028-07-14",
            "2028-10-23",
            "2028-12-25",
            "2028-12-26",
        ],
        "regional": {
            "Wellington": "2028-01-24",
            "Auckland": "2028-01-31",
            "Nelson": "2028-01-31",
            "Taranaki": "2028-03-13",
            "Otago": "2028-03-20",
            "Southland": "2028-04-18",
            "Hawke's Bay": "2028-10-20",
            "Canterbury": "2028-11-17",
        },
    },
}


def normalize_region(region: str | None) -> str | None:
    """'Hawke's Bay', 'hawkes bay' and 'HAWKES-BAY' all map to 'hawkesbay'"""
    if not region:
        return None
    return re.sub(r"[^a-z]", "", region.lower()) or None


def parse_holiday_table(raw: Mapping) -> Dict[int, YearHolidays]:
    """Validate a {year: {"national": [...], "regional": {...}}} table"""
    table: Dict[int, YearHolidays] = {}
    try:
        for year, entry in raw.items():
            national = frozenset(date.fromisoformat(d) for d in entry.get("national", []))
            regional = {
                normalize_region(name): date.fromisoformat(d)
                for name, d in entry.get("regional", {}).items()
            }
            table[int(year)] = YearHolidays(national=national, regional=regional)
    except (AttributeError, TypeError, ValueError) as e:
        raise HolidayDataError(f"Invalid holiday table: {e}") from e
    return table


class HolidayCalendar:
    """
    Read-only set of non-working dates keyed by region.

    Built once at process start. Unknown regions fall back to national
    holidays only; years missing from the table have no holidays beyond
    weekends and the summer blackout.
    """

    def __init__(self, table: Mapping[int, YearHolidays], summer_blackout: bool = True):
        self._table = dict(table)
        self.summer_blackout = summer_blackout

    def has_year(self, year: int) -> bool:
        return year in self._table

    def missing_years(self, start: date, end: date) -> List[int]:
        return [y for y in range(start.year, end.year + 1) if not self.has_year(y)]

    def is_holiday(self, day: date, region: str | None = None) -> bool:
        holidays = self._table.get(day.year)
        if holidays is None:
            return False
        if day in holidays.national:
            return True
        key = normalize_region(region)
        return key is not None and holidays.regional.get(key) == day

    def is_blackout(self, day: date) -> bool:
        """25 December to 15 January inclusive"""
        if not self.summer_blackout:
            return False
        return (day.month == 12 and day.day >= 25) or (day.month == 1 and day.day <= 15)


def load_holiday_table(path: str | None = None) -> Dict[int, YearHolidays]:
    """Built-in table, replaced year-by-year by entries from an optional JSON file"""
    table = parse_holiday_table(BUILTIN_HOLIDAYS)
    if path:
        try:
            raw = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise HolidayDataError(f"Cannot read holiday table {path}: {e}") from e
        table.update(parse_holiday_table(raw))
        logger.info("Loaded holiday table override", extra={"path": path, "years": sorted(raw)})
    return table


@lru_cache(maxsize=1)
def get_default_calendar() -> HolidayCalendar:
    """Process-wide calendar from settings"""
    return HolidayCalendar(
        load_holiday_table(settings.holiday_table_path),
        summer_blackout=settings.summer_blackout_enabled,
    )
