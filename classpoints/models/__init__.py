# Re-export models so external code can keep using: from classpoints.models import User, Badge, ...
from .user import User, Classroom, Enrollment
from .behaviour import BehaviourCategory, BehaviourEvent, POSITIVE, NEGATIVE
from .badge import Badge, StudentBadge, POINTS_THRESHOLD, BEHAVIOR_COUNT, ACHIEVEMENT, REQUIREMENT_TYPES
from .reward import Reward, StudentReward
from .point_snapshot import PointSnapshot
from .notification import Notification

__all__ = [
    # people & classes
    "User", "Classroom", "Enrollment",
    # behaviour log
    "BehaviourCategory", "BehaviourEvent", "POSITIVE", "NEGATIVE",
    # badges/rewards
    "Badge", "StudentBadge", "Reward", "StudentReward",
    "POINTS_THRESHOLD", "BEHAVIOR_COUNT", "ACHIEVEMENT", "REQUIREMENT_TYPES",
    # derived
    "PointSnapshot", "Notification",
]
