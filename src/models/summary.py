from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import DestinationKey, DpsBadge, RefreshTrigger
from .team import Team


class CanonicalCounts(BaseModel):
    """Per-role signup counts after classification."""

    model_config = ConfigDict(frozen=True)

    tanks: int = Field(0, ge=0)
    healers: int = Field(0, ge=0)
    melee_dps: int = Field(0, ge=0)
    ranged_dps: int = Field(0, ge=0)
    melee_healers: int = Field(0, ge=0)
    ranged_healers: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _healer_split_matches_total(self) -> "CanonicalCounts":
        if self.melee_healers + self.ranged_healers != self.healers:
            raise ValueError(
                f"Healer split {self.melee_healers}+{self.ranged_healers} "
                f"does not add up to {self.healers}"
            )
        return self

    @property
    def dps(self) -> int:
        return self.melee_dps + self.ranged_dps


class TeamSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    team: Team
    event_id: str
    event_start_time: int  # epoch seconds
    counts: CanonicalCounts


class GapReport(BaseModel):
    """Open slots per role for one team. Needs are never negative."""

    model_config = ConfigDict(frozen=True)

    tank_target: int
    healer_target: int
    dps_target: int
    dps_have: int
    tank_need: int = Field(..., ge=0)
    healer_need: int = Field(..., ge=0)
    dps_need: int = Field(..., ge=0)
    melee_dps_badge: DpsBadge
    ranged_dps_badge: DpsBadge


class OutputArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    destination: DestinationKey
    text: str


class PublishResult(BaseModel):
    """Outcome of publishing one artifact.

    ``created`` is the signal operators watch for: the new ``message_id`` has
    to be copied into configuration so the next process reuses it.
    """

    model_config = ConfigDict(frozen=True)

    destination: DestinationKey
    channel_id: int
    message_id: int
    created: bool = False
    edited: bool = False


class SkippedTeam(BaseModel):
    model_config = ConfigDict(frozen=True)

    team_key: str
    reason: str


class RefreshReport(BaseModel):
    trigger: RefreshTrigger
    started_at: datetime
    finished_at: Optional[datetime] = None
    summaries: List[TeamSummary] = []
    skipped_teams: List[SkippedTeam] = []
    artifacts: List[OutputArtifact] = []
    publish_results: List[PublishResult] = []
    failed_destinations: List[DestinationKey] = []
