import re
from typing import Optional

from app.schedule.models import SESSION_GROUP, Department, Promo

# <year>-<DEPARTMENT>-<token>, token being "S<n>" (session group),
# "<i>" (half-class) or "<i><j>" (subdivision of half-class i).
_PROMO_NAME_RE = re.compile(r"^([1-4])-([A-Z]+)-(S[1-4]|[1-4]{1,2})$")

_MIN_YEAR = 1
_MAX_YEAR = 4


class PromoNameError(ValueError):
    def __init__(self, label: str):
        super().__init__(f"Invalid group name: {label!r} (expected e.g. 3-INFO-21)")
        self.label = label


def _match(label) -> Optional[re.Match]:
    if not isinstance(label, str):
        return None
    return _PROMO_NAME_RE.match(label.strip())


def subgroup_token(label: str) -> Optional[str]:
    """Returns the raw subgroup token ("S2", "2", "21") of a well-formed label."""
    match = _match(label)
    if match is None:
        return None
    return match.group(3)


def parse_promo_name(label: str) -> Optional[Promo]:
    """
    Parses a group label such as "3-INFO-21", "2-GEII-S1" or "1-RT-1".

    Session-group labels ("S<n>") map to group 0; the session number itself is
    not kept. Returns None for anything malformed, never raises.
    """
    match = _match(label)
    if match is None:
        return None

    year_raw, department_raw, token = match.groups()
    year = int(year_raw)
    if not _MIN_YEAR <= year <= _MAX_YEAR:
        return None

    try:
        department = Department(department_raw)
    except ValueError:
        return None

    if token.startswith("S"):
        group = SESSION_GROUP
    else:
        group = int(token)

    return Promo(year=year, department=department, group=group)


def require_promo(label: str) -> Promo:
    promo = parse_promo_name(label)
    if promo is None:
        raise PromoNameError(label)
    return promo
