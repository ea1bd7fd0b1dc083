# src/scanning/link_scanner.py

import math
import re
from typing import Any, Iterator, List, Optional, Pattern, Protocol, Sequence, Union

from loguru import logger

# Discord's history endpoint never returns more than this per request
MAX_PAGE_SIZE = 100

DEFAULT_REFERENCE_PATTERN = r"raid-helper\.dev/event/(\d+)"


class HistoryReader(Protocol):
    """Read access to a channel's message history."""

    async def fetch_page(
        self, channel_id: int, limit: int, before_id: Optional[int] = None
    ) -> Sequence[Any]:
        """Returns up to ``limit`` messages older than ``before_id``, newest first."""
        ...


def _candidate_texts(message: Any) -> Iterator[Optional[str]]:
    """Yields every place an event link may hide, in lookup priority order."""
    yield getattr(message, "content", None)

    for embed in getattr(message, "embeds", None) or []:
        yield getattr(embed, "url", None)
        yield getattr(embed, "title", None)
        yield getattr(embed, "description", None)
        for field in getattr(embed, "fields", None) or []:
            yield getattr(field, "name", None)
            yield getattr(field, "value", None)
        author = getattr(embed, "author", None)
        yield getattr(author, "url", None) if author is not None else None
        footer = getattr(embed, "footer", None)
        yield getattr(footer, "text", None) if footer is not None else None

    # Link buttons live inside action rows; tolerate bare buttons too
    for component in getattr(message, "components", None) or []:
        children = getattr(component, "children", None)
        for child in children if children is not None else [component]:
            yield getattr(child, "url", None)


def extract_event_id(
    message: Any, pattern: Union[str, Pattern[str]] = DEFAULT_REFERENCE_PATTERN
) -> Optional[str]:
    """Returns the first event id referenced by ``message``, or None."""
    regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
    for text in _candidate_texts(message):
        if not text:
            continue
        match = regex.search(str(text))
        if match:
            return match.group(1)
    return None


class LinkScanner:
    """Finds the newest Raid-Helper event link within a bounded history window."""

    def __init__(
        self,
        history: HistoryReader,
        window: int = 50,
        pattern: str = DEFAULT_REFERENCE_PATTERN,
    ):
        if window < 1:
            raise ValueError("Scan window must be at least one message")
        self.history = history
        self.window = window
        self.pattern = re.compile(pattern, re.IGNORECASE)

    @property
    def max_pages(self) -> int:
        return math.ceil(self.window / MAX_PAGE_SIZE)

    async def find_latest_event_id(self, channel_id: int) -> Optional[str]:
        """Scans newest to oldest; the first match wins and stops paging."""
        seen = 0
        pages = 0
        before_id: Optional[int] = None

        while seen < self.window:
            limit = min(MAX_PAGE_SIZE, self.window - seen)
            page: List[Any] = list(
                await self.history.fetch_page(channel_id, limit=limit, before_id=before_id)
            )
            pages += 1
            # Never look past the window, even if a reader over-delivers
            page = page[:limit]

            for message in page:
                event_id = extract_event_id(message, self.pattern)
                if event_id:
                    logger.debug(
                        f"Found event {event_id} in channel {channel_id} "
                        f"(message {getattr(message, 'id', '?')}, page {pages})"
                    )
                    return event_id

            seen += len(page)
            if len(page) < limit:
                logger.debug(
                    f"History of channel {channel_id} exhausted after {seen} messages"
                )
                break
            before_id = getattr(page[-1], "id", None)
            if before_id is None:
                break

        logger.info(f"No event link in the last {seen} messages of channel {channel_id}")
        return None
