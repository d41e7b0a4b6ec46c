from __future__ import annotations

import logging
from typing import Iterable, Protocol

from classpoints.models.badge import ACHIEVEMENT, BEHAVIOR_COUNT, POINTS_THRESHOLD
from classpoints.services.points import PointTotals

log = logging.getLogger(__name__)


class BadgeRule(Protocol):
    id: int
    requirement_type: str
    requirement_value: int


class EarnedBadge(Protocol):
    badge_id: int


def is_eligible(totals: PointTotals, badge: BadgeRule) -> bool:
    if badge.requirement_type == POINTS_THRESHOLD:
        return totals.total >= badge.requirement_value
    if badge.requirement_type == BEHAVIOR_COUNT:
        return totals.good_count >= badge.requirement_value
    if badge.requirement_type != ACHIEVEMENT:
        log.warning("Badge %s has unknown requirement type %r", badge.id, badge.requirement_type)
    # achievement badges are only ever awarded by hand
    return False


def evaluate(
    totals: PointTotals,
    badge_catalog: Iterable[BadgeRule],
    already_earned: Iterable[EarnedBadge | int],
) -> list[int]:
    """Return ids of badges the student now qualifies for but does not hold, in catalog order."""
    held = {getattr(e, "badge_id", e) for e in already_earned}
    return [b.id for b in badge_catalog if b.id not in held and is_eligible(totals, b)]
