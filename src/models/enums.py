from enum import Enum


class CanonicalRole(str, Enum):
    TANK = "TANK"
    HEALER = "HEALER"
    MELEE_DPS = "MELEE_DPS"
    RANGED_DPS = "RANGED_DPS"


class DpsBadge(str, Enum):
    """Display bucket for the number of open DPS slots."""

    FULL = "FULL"
    ONE = "1"
    ONE_TO_TWO = "1-2"
    THREE_PLUS = "3+"


class DestinationKey(str, Enum):
    DASHBOARD = "dashboard"
    RECRUITMENT = "recruitment"


class RefreshTrigger(str, Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"
    STARTUP = "startup"
