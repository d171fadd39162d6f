import dataclasses
import logging
from typing import Dict, List

from app.schedule.models import Event, Promo
from app.schedule.names import parse_promo_name, subgroup_token

logger = logging.getLogger(__name__)

HALF_CLASSES = (1, 2, 3, 4)
SUBDIVISIONS = (1, 2)

DayIndex = Dict[Promo, List[Event]]


def _insert(index: DayIndex, promo: Promo, event: Event) -> None:
    bucket = index.setdefault(promo, [])
    bucket.append(dataclasses.replace(event))
    # list.sort is stable: equal starts keep feed order.
    bucket.sort(key=lambda e: e.start)


def _with_group(promo: Promo, group: int) -> Promo:
    return dataclasses.replace(promo, group=group)


def _half_class_targets(promo: Promo, half: int) -> list[Promo]:
    targets = [_with_group(promo, half * 10 + sub) for sub in SUBDIVISIONS]
    targets.append(_with_group(promo, half))
    return targets


def resolve_targets(label: str) -> list[Promo]:
    """
    Lists every promo an event labelled `label` must be filed under.

    The decision reads the raw subgroup token, not Promo.group:
    - "S<n>": every subdivision and half-class of the year/department,
      then the session group itself (13 promos);
    - "<i><j>": that subdivision only;
    - "<i>": both subdivisions of half-class i, then the half-class.
    Returns an empty list for a malformed label.
    """
    promo = parse_promo_name(label)
    token = subgroup_token(label)
    if promo is None or token is None:
        return []

    if token.startswith("S"):
        targets: list[Promo] = []
        for half in HALF_CLASSES:
            targets.extend(_half_class_targets(promo, half))
        targets.append(promo)
        return targets

    if len(token) == 2:
        return [promo]

    return _half_class_targets(promo, promo.group)


def expand_event(event: Event, label: str, index: DayIndex) -> tuple[Promo, ...]:
    targets = resolve_targets(label)
    if not targets:
        logger.warning(
            "Dropping event %r (%s): unparseable group label %r",
            event.summary,
            event.start.isoformat(),
            label,
        )
        return ()

    for promo in targets:
        _insert(index, promo, event)
    return tuple(targets)
