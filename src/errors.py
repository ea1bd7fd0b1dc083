from typing import Optional


class OversightError(Exception):
    """Base class for errors raised by the refresh pipeline."""

    pass


class SourceUnavailable(OversightError):
    """A signup channel or output destination could not be resolved."""

    def __init__(self, channel_id: Optional[int], reason: str = ""):
        self.channel_id = channel_id
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Channel {channel_id} is unavailable{detail}")


class NoReferenceFound(OversightError):
    """The scan window was exhausted without finding an event link."""

    def __init__(self, team_key: str, scanned: int):
        self.team_key = team_key
        self.scanned = scanned
        super().__init__(
            f"No Raid-Helper event found for {team_key} in the last {scanned} messages"
        )


class EventFetchFailed(OversightError):
    """The Raid-Helper API returned an error or an unusable payload."""

    def __init__(self, status: Optional[int], body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Raid-Helper fetch failed: {status} {body[:200]}".rstrip())


class PublishTargetUnresolvable(OversightError):
    """A known output message could not be fetched (missing, foreign, or no id)."""

    pass


class RefreshInProgress(OversightError):
    """A refresh was requested while another one is still running."""

    pass
