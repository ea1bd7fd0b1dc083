import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from src.calculation.gap_calculator import calculate_gaps
from src.classification.role_classifier import RoleClassifier
from src.config.settings import AppSettings
from src.errors import (
    EventFetchFailed,
    NoReferenceFound,
    RefreshInProgress,
    SourceUnavailable,
)
from src.models.enums import DestinationKey, RefreshTrigger
from src.models.summary import RefreshReport, SkippedTeam, TeamSummary
from src.models.team import Team
from src.publishing.publisher import Publisher, PublishGateway
from src.rendering.renderer import OutputRenderer
from src.resolvers.raid_helper import EventResolver
from src.scanning.link_scanner import HistoryReader, LinkScanner


class RefreshPipeline:
    """Runs scan -> resolve -> classify -> render -> publish for all teams."""

    def __init__(
        self,
        teams: Sequence[Team],
        scanner: LinkScanner,
        resolver: EventResolver,
        classifier: RoleClassifier,
        renderer: OutputRenderer,
        publisher: Optional[Publisher] = None,
        max_concurrent_teams: int = 2,
    ):
        self.teams = list(teams)
        self.scanner = scanner
        self.resolver = resolver
        self.classifier = classifier
        self.renderer = renderer
        self.publisher = publisher
        self._semaphore = asyncio.Semaphore(max_concurrent_teams)
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def summarize_team(self, team: Team) -> TeamSummary:
        event_id = await self.scanner.find_latest_event_id(team.signup_channel_id)
        if event_id is None:
            raise NoReferenceFound(team.key, self.scanner.window)

        event = await self.resolver.fetch_event_with_retry(event_id)
        counts = self.classifier.count(event.sign_ups)
        gaps = calculate_gaps(
            counts,
            team.roster_size,
            self.renderer.tank_target,
            self.renderer.healer_target,
        )
        logger.info(
            f"{team.display_name}: event {event_id} -> "
            f"T{counts.tanks} H{counts.healers} M{counts.melee_dps} R{counts.ranged_dps} "
            f"(need T{gaps.tank_need} H{gaps.healer_need} D{gaps.dps_need})"
        )
        return TeamSummary(
            team=team,
            event_id=event.event_id,
            event_start_time=event.start_time,
            counts=counts,
        )

    async def _guarded_summary(self, team: Team) -> Union[TeamSummary, SkippedTeam]:
        async with self._semaphore:
            try:
                return await self.summarize_team(team)
            except NoReferenceFound as e:
                logger.warning(str(e))
                return SkippedTeam(team_key=team.key, reason="no event link found")
            except EventFetchFailed as e:
                logger.error(f"{team.display_name}: {e}")
                return SkippedTeam(team_key=team.key, reason=f"event fetch failed ({e.status})")
            except SourceUnavailable as e:
                logger.error(f"{team.display_name}: signup channel unavailable: {e}")
                return SkippedTeam(team_key=team.key, reason="signup channel unavailable")
            except Exception as e:
                logger.exception(f"Unexpected error summarizing {team.display_name}: {e}")
                return SkippedTeam(team_key=team.key, reason=f"unexpected error: {type(e).__name__}")

    async def collect_summaries(self) -> Tuple[List[TeamSummary], List[SkippedTeam]]:
        outcomes = await asyncio.gather(*(self._guarded_summary(team) for team in self.teams))
        summaries = [o for o in outcomes if isinstance(o, TeamSummary)]
        skipped = [o for o in outcomes if isinstance(o, SkippedTeam)]
        # Resolution order is arbitrary; the event start time decides display order
        summaries.sort(key=lambda s: s.event_start_time)
        return summaries, skipped

    async def run(
        self,
        trigger: RefreshTrigger = RefreshTrigger.MANUAL,
        publish: bool = True,
        now: Optional[datetime] = None,
    ) -> RefreshReport:
        """Runs one full refresh. Raises RefreshInProgress if one is already active."""
        if self._lock.locked():
            raise RefreshInProgress("A refresh is already running")

        async with self._lock:
            report = RefreshReport(trigger=trigger, started_at=datetime.now(timezone.utc))
            logger.info(f"Starting {trigger.value} refresh for {len(self.teams)} team(s)")

            report.summaries, report.skipped_teams = await self.collect_summaries()
            report.artifacts = self.renderer.render_all(report.summaries, now)

            if publish and self.publisher is not None:
                report.publish_results, report.failed_destinations = (
                    await self.publisher.publish_all(report.artifacts)
                )
            elif publish:
                logger.warning("No publisher configured; rendered artifacts were not posted.")

            report.finished_at = datetime.now(timezone.utc)
            elapsed = (report.finished_at - report.started_at).total_seconds()
            logger.success(
                f"Refresh finished in {elapsed:.1f}s: {len(report.summaries)} team(s) summarized, "
                f"{len(report.skipped_teams)} skipped"
            )
            return report


def build_pipeline(
    settings: AppSettings,
    history: HistoryReader,
    publish_gateway: Optional[PublishGateway] = None,
    resolver: Optional[EventResolver] = None,
) -> RefreshPipeline:
    """Wires every component from one immutable settings object."""
    publisher = None
    if publish_gateway is not None:
        publisher = Publisher(
            publish_gateway,
            channels={
                DestinationKey.DASHBOARD: settings.dashboard_channel_id,
                DestinationKey.RECRUITMENT: settings.recruitment_channel_id,
            },
            message_ids={
                DestinationKey.DASHBOARD: settings.dashboard_message_id,
                DestinationKey.RECRUITMENT: settings.recruitment_message_id,
            },
        )
    return RefreshPipeline(
        teams=settings.teams,
        scanner=LinkScanner(
            history, window=settings.lookback_messages, pattern=settings.reference_pattern
        ),
        resolver=resolver
        or EventResolver(
            api_base=settings.raid_helper_api_base,
            timeout=settings.http_timeout_seconds,
            retry_attempts=settings.fetch_retry_attempts,
        ),
        classifier=RoleClassifier(
            melee_healer_specs=settings.melee_healer_specs,
            excluded_statuses=settings.excluded_statuses,
        ),
        renderer=OutputRenderer(
            tank_target=settings.target_tanks,
            healer_target=settings.target_healers,
            display_timezone=settings.display_timezone,
        ),
        publisher=publisher,
        max_concurrent_teams=settings.max_concurrent_teams,
    )
