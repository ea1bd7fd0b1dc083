# src/models/team.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Team(BaseModel):
    """A raid team whose signup channel is scanned for Raid-Helper events."""

    model_config = ConfigDict(frozen=True)

    key: str
    display_name: str
    signup_channel_id: int
    roster_size: int = Field(20, ge=1, le=40)

    # Static recruitment card details
    time_window: Optional[str] = None  # e.g. "Tue/Thu 8-11 PM ET"
    leader: Optional[str] = None  # Discord handle or mention
    notes: Optional[str] = None
