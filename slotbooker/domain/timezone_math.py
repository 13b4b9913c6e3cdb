"""
Conversion between local wall-clock times and absolute instants.

Offsets are resolved for the specific date being converted, so the same local
time maps to different UTC instants on either side of a DST transition.

Local times that are ambiguous (repeated hour when clocks go back) or skipped
(missing hour when clocks go forward) resolve to the earlier of the two
candidate instants.
"""

from datetime import datetime
from functools import lru_cache
from typing import Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidZoneError


@lru_cache(maxsize=None)
def get_zone(zone_name: str):
    """
    Look up an IANA time zone.

    Raises:
        InvalidZoneError: If the zone name is not recognised
    """
    if not zone_name:
        raise InvalidZoneError(zone_name)

    try:
        return pendulum.timezone(zone_name)
    except (ValueError, KeyError) as exc:
        raise InvalidZoneError(zone_name) from exc


def validate_zone(zone_name: str) -> str:
    """Return the zone name unchanged if it is valid."""
    get_zone(zone_name)
    return zone_name


def to_instant(local: datetime, zone_name: str) -> DateTime:
    """
    Convert a naive local wall-clock time in ``zone_name`` to a UTC instant.

    Args:
        local: Wall-clock time; any tzinfo it carries is ignored
        zone_name: IANA time zone identifier

    Returns:
        The matching instant, expressed in UTC
    """
    zone = get_zone(zone_name)

    candidates = [
        pendulum.datetime(
            local.year,
            local.month,
            local.day,
            local.hour,
            local.minute,
            local.second,
            local.microsecond,
            tz=zone,
            fold=fold,
        ).in_timezone("UTC")
        for fold in (0, 1)
    ]

    return min(candidates)


def to_wall_clock(instant: datetime, zone_name: str) -> DateTime:
    """Convert an aware instant to the naive wall-clock time seen in ``zone_name``."""
    zone = get_zone(zone_name)
    return pendulum.instance(instant).in_timezone(zone).naive()


def local_weekday(local: datetime) -> int:
    """Weekday index with 0=Sunday and 6=Saturday."""
    return local.isoweekday() % 7


def local_day_bounds(instant: datetime, zone_name: str) -> Tuple[DateTime, DateTime]:
    """Instants bounding the local calendar day in ``zone_name`` that contains ``instant``."""
    local_midnight = to_wall_clock(instant, zone_name).start_of("day")
    return (
        to_instant(local_midnight, zone_name),
        to_instant(local_midnight.add(days=1), zone_name),
    )
