from datetime import datetime, timezone
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from src.calculation.gap_calculator import calculate_gaps
from src.models.enums import DestinationKey, DpsBadge
from src.models.summary import GapReport, OutputArtifact, TeamSummary

# Discord rejects message content longer than this
DISCORD_MESSAGE_LIMIT = 2000

DASHBOARD_TITLE = "UNITY RAID OVERSIGHT"
RECRUITMENT_TITLE = "UNITY RAID RECRUITMENT"
NO_EVENTS_LINE = "No Raid-Helper events found in the signup channels."
NO_RECRUITMENT_LINE = "No raids are recruiting right now. Check back soon!"

FULL_MARKER = "FULL"
NO_CAP_MARKER = "No cap"


def format_week_of(now: datetime) -> str:
    """e.g. 'Oct 18, 2026'."""
    return f"{now:%b} {now.day}, {now.year}"


def format_event_time(start_time: int, tz: ZoneInfo) -> str:
    """e.g. 'Tue 8:00 PM'."""
    when = datetime.fromtimestamp(start_time, tz)
    hour = when.hour % 12 or 12
    return f"{when:%a} {hour}:{when:%M} {when:%p}"


def need_line(label: str, have: int, target: int) -> str:
    missing = max(0, target - have)
    if missing == 0:
        return f"{label}: {FULL_MARKER} ({have}/{target})"
    return f"{label}: NEED {missing} ({have}/{target})"


def need_display(missing: int) -> str:
    return FULL_MARKER if missing <= 0 else str(missing)


def badge_display(badge: DpsBadge) -> str:
    if badge is DpsBadge.FULL:
        return FULL_MARKER
    if badge is DpsBadge.THREE_PLUS:
        return NO_CAP_MARKER
    return badge.value


def _truncate(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


class OutputRenderer:
    """Renders team summaries into the dashboard and recruitment posts."""

    def __init__(
        self,
        tank_target: int = 2,
        healer_target: int = 4,
        display_timezone: str = "UTC",
    ):
        self.tank_target = tank_target
        self.healer_target = healer_target
        self.tz = ZoneInfo(display_timezone)

    def _gaps(self, summary: TeamSummary) -> GapReport:
        return calculate_gaps(
            summary.counts, summary.team.roster_size, self.tank_target, self.healer_target
        )

    def _now(self, now: Optional[datetime]) -> datetime:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            # Naive values are UTC, never host-local
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)

    def render_dashboard(
        self, summaries: Sequence[TeamSummary], now: Optional[datetime] = None
    ) -> OutputArtifact:
        lines: List[str] = [
            f"{DASHBOARD_TITLE} - Week of {format_week_of(self._now(now))}",
            "",
        ]
        if not summaries:
            lines.append(NO_EVENTS_LINE)

        for summary in sorted(summaries, key=lambda s: s.event_start_time):
            counts = summary.counts
            gaps = self._gaps(summary)
            when = format_event_time(summary.event_start_time, self.tz)
            lines.append(f"{summary.team.display_name} ({when})")
            lines.append(need_line("Tank", counts.tanks, gaps.tank_target))
            lines.append(
                need_line("Heals", counts.healers, gaps.healer_target)
                + f"  [Melee {counts.melee_healers} | Ranged {counts.ranged_healers}]"
            )
            lines.append(
                need_line("DPS", gaps.dps_have, gaps.dps_target)
                + f"  [Melee {counts.melee_dps} | Ranged {counts.ranged_dps}]"
            )
            lines.append("")

        return OutputArtifact(
            destination=DestinationKey.DASHBOARD,
            text=_truncate("\n".join(lines).rstrip()),
        )

    def render_recruitment(
        self, summaries: Sequence[TeamSummary], now: Optional[datetime] = None
    ) -> OutputArtifact:
        lines: List[str] = [
            f"**{RECRUITMENT_TITLE} - Week of {format_week_of(self._now(now))}**",
            "",
        ]
        if not summaries:
            lines.append(NO_RECRUITMENT_LINE)

        for summary in sorted(summaries, key=lambda s: s.event_start_time):
            team = summary.team
            gaps = self._gaps(summary)
            when = format_event_time(summary.event_start_time, self.tz)
            lines.append(f"**{team.display_name}** | Next raid {when}")

            details = []
            if team.time_window:
                details.append(f"Raid times: {team.time_window}")
            if team.leader:
                details.append(f"Leader: {team.leader}")
            if details:
                lines.append(" | ".join(details))
            if team.notes:
                lines.append(f"_{team.notes}_")

            lines.append(
                f"Tank: {need_display(gaps.tank_need)} | "
                f"Healer: {need_display(gaps.healer_need)} | "
                f"Melee: {badge_display(gaps.melee_dps_badge)} | "
                f"Ranged: {badge_display(gaps.ranged_dps_badge)}"
            )
            lines.append("")

        return OutputArtifact(
            destination=DestinationKey.RECRUITMENT,
            text=_truncate("\n".join(lines).rstrip()),
        )

    def render_all(
        self, summaries: Sequence[TeamSummary], now: Optional[datetime] = None
    ) -> List[OutputArtifact]:
        now = now or datetime.now(timezone.utc)
        return [
            self.render_dashboard(summaries, now),
            self.render_recruitment(summaries, now),
        ]
