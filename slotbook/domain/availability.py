"""
Resolve the effective open windows of a service on one calendar day.

Exactly one tier decides a day's hours, checked in priority order:

1. Blackout dates close every service.
2. An administrator override for the service's weekday either closes the
   day or replaces all default windows with its single window.
3. Otherwise the service's default windows for the weekday apply.

Tiers are never merged.
"""

import logging
from typing import AbstractSet, List, Mapping, Tuple

from pendulum import DateTime

from .calendar_utils import date_key, weekday
from .models import Override, Service, Window

logger = logging.getLogger(__name__)

OverrideMap = Mapping[Tuple[str, int], Override]


def effective_windows(
    day: DateTime,
    service: Service,
    overrides: OverrideMap,
    blackouts: AbstractSet[str]
) -> List[Window]:
    """
    Return the windows during which ``service`` is open on ``day``.

    Args:
        day: Calendar day to resolve
        service: Service definition with default weekly windows
        overrides: Admin overrides keyed by (service id, weekday)
        blackouts: Date keys (YYYY-MM-DD) closed for every service

    Returns:
        List of Window objects, empty when the day is closed
    """
    key = date_key(day)
    if key in blackouts:
        logger.debug("%s is a blackout date", key)
        return []

    day_of_week = weekday(day)
    override = overrides.get((service.id, day_of_week))
    if override is not None:
        if override.is_closed:
            logger.debug("Service %s closed by override on weekday %d", service.id, day_of_week)
            return []
        return [override.window]

    return list(service.windows_for_weekday(day_of_week))
