"""Program catalogue filtering used by the program selection screen"""

from datetime import date
from typing import Iterable, List, Optional

from registration_flow.domain.models import Program


def is_registration_open(program: Program, today: date) -> bool:
    """Active and inside its registration window (open bounds are unbounded)"""
    if not program.is_active:
        return False
    if program.registration_open_date and today < program.registration_open_date:
        return False
    if program.registration_close_date and today > program.registration_close_date:
        return False
    return True


def available_programs(programs: Iterable[Program], today: Optional[date] = None) -> List[Program]:
    today = today or date.today()
    return [p for p in programs if is_registration_open(p, today)]


def filter_programs(
    programs: Iterable[Program],
    search: str = "",
    season: Optional[str] = None,
) -> List[Program]:
    """Case-insensitive search over name and description, optionally narrowed to a season"""
    needle = search.strip().lower()
    result = []
    for program in programs:
        if needle and needle not in program.name.lower() and needle not in (program.description or "").lower():
            continue
        if season and program.season != season:
            continue
        result.append(program)
    return result


def seasons(programs: Iterable[Program]) -> List[str]:
    """Distinct seasons in first-seen order"""
    seen: List[str] = []
    for program in programs:
        if program.season and program.season not in seen:
            seen.append(program.season)
    return seen
