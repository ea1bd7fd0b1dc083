from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawSignupEntry(BaseModel):
    """A single signup as produced by a Raid-Helper template.

    Every field is producer controlled: templates disagree on which field
    carries the role, so nothing here is trusted beyond being a string.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    role_name: Optional[str] = Field(None, alias="roleName")
    class_name: Optional[str] = Field(None, alias="className")
    status: Optional[str] = None
    spec_name: Optional[str] = Field(None, alias="specName")


class RaidEvent(BaseModel):
    """The subset of a Raid-Helper event payload the pipeline needs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    event_id: str = Field(..., alias="id")
    title: Optional[str] = None
    start_time: int = Field(..., alias="startTime")  # epoch seconds
    sign_ups: List[RawSignupEntry] = Field(default_factory=list, alias="signUps")

    @field_validator("event_id", mode="before")
    @classmethod
    def _id_as_string(cls, value):
        # Snowflake ids arrive as strings or numbers depending on the endpoint
        return str(value) if isinstance(value, int) else value

    @field_validator("sign_ups", mode="before")
    @classmethod
    def _signups_as_list(cls, value):
        return value if isinstance(value, list) else []
