from .behaviour import BehaviourCreate, BehaviourOut, BehaviourPage, CategoryCreate, CategoryOut, DailyCountOut
from .badge import AwardCreate, AwardOut, BadgeCreate, BadgeOut, EligibleBadgesOut, StudentBadgeOut
from .reward import RedeemRequest, RedemptionOut, RewardCreate, RewardOut, StudentRewardOut
from .student import (
    BalanceOut,
    LeaderboardEntryOut,
    LoggedBehaviourOut,
    MilestonesOut,
    StatsOut,
    StreakOut,
    TotalsOut,
)
from .notification import MarkedRead, NotificationOut

__all__ = [
    # behaviour log
    "BehaviourCreate", "BehaviourOut", "BehaviourPage", "CategoryCreate", "CategoryOut", "DailyCountOut",
    # badges/rewards
    "AwardCreate", "AwardOut", "BadgeCreate", "BadgeOut", "EligibleBadgesOut", "StudentBadgeOut",
    "RedeemRequest", "RedemptionOut", "RewardCreate", "RewardOut", "StudentRewardOut",
    # derived views
    "BalanceOut", "LeaderboardEntryOut", "LoggedBehaviourOut", "MilestonesOut", "StatsOut", "StreakOut",
    "TotalsOut",
    # notifications
    "MarkedRead", "NotificationOut",
]
