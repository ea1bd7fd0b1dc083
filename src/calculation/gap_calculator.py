from src.models.enums import DpsBadge
from src.models.summary import CanonicalCounts, GapReport


def need(have: int, target: int) -> int:
    """Open slots for a role; zero once the target is met or exceeded."""
    return max(0, target - have)


def dps_target(roster_size: int, tank_target: int, healer_target: int) -> int:
    return max(0, roster_size - tank_target - healer_target)


def dps_badge(dps_need: int) -> DpsBadge:
    if dps_need <= 0:
        return DpsBadge.FULL
    if dps_need == 1:
        return DpsBadge.ONE
    if dps_need == 2:
        return DpsBadge.ONE_TO_TWO
    return DpsBadge.THREE_PLUS


def calculate_gaps(
    counts: CanonicalCounts, roster_size: int, tank_target: int, healer_target: int
) -> GapReport:
    """Compares a team's counts against its target composition.

    Melee and ranged share a single DPS target, so both badges come from the
    combined DPS need.
    """
    target = dps_target(roster_size, tank_target, healer_target)
    dps_need = need(counts.dps, target)
    badge = dps_badge(dps_need)
    return GapReport(
        tank_target=tank_target,
        healer_target=healer_target,
        dps_target=target,
        dps_have=counts.dps,
        tank_need=need(counts.tanks, tank_target),
        healer_need=need(counts.healers, healer_target),
        dps_need=dps_need,
        melee_dps_badge=badge,
        ranged_dps_badge=badge,
    )
