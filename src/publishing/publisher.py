from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from loguru import logger

from src.errors import OversightError, PublishTargetUnresolvable, SourceUnavailable
from src.models.enums import DestinationKey
from src.models.summary import OutputArtifact, PublishResult

PLACEHOLDER_TEXT = "Refreshing raid signups..."

MessageCreatedCallback = Callable[[DestinationKey, int, int], None]


class PublishGateway(Protocol):
    """Create-or-edit access to the chat platform."""

    async def get_destination(self, channel_id: int) -> Any:
        """Returns a postable channel/thread or raises SourceUnavailable."""
        ...

    async def fetch_message(self, destination: Any, message_id: int) -> Any:
        """Returns our own message or raises PublishTargetUnresolvable."""
        ...

    async def create_message(self, destination: Any, text: str) -> Any: ...

    async def edit_message(self, message: Any, text: str) -> None: ...


class Publisher:
    """Keeps exactly one bot-authored message per destination up to date.

    The destination -> message id map is owned here. It starts from configuration
    and is updated whenever a replacement message has to be created, so later
    runs in the same process edit that message instead of posting again.
    """

    def __init__(
        self,
        gateway: PublishGateway,
        channels: Mapping[DestinationKey, Optional[int]],
        message_ids: Optional[Mapping[DestinationKey, Optional[int]]] = None,
    ):
        self.gateway = gateway
        self.channels: Dict[DestinationKey, Optional[int]] = dict(channels)
        self.message_ids: Dict[DestinationKey, Optional[int]] = dict(message_ids or {})
        self._on_created: List[MessageCreatedCallback] = []

    def on_message_created(self, callback: MessageCreatedCallback) -> None:
        """Registers ``callback(destination, channel_id, message_id)``."""
        self._on_created.append(callback)

    async def _resolve_message(
        self, key: DestinationKey, channel_id: int, destination: Any
    ) -> Tuple[Any, bool]:
        message_id = self.message_ids.get(key)
        if message_id is not None:
            try:
                return await self.gateway.fetch_message(destination, message_id), False
            except PublishTargetUnresolvable as e:
                logger.warning(f"{e}; creating a new {key.value} message in channel {channel_id}")
        else:
            logger.warning(f"No {key.value} message id known; creating one in channel {channel_id}")

        message = await self.gateway.create_message(destination, PLACEHOLDER_TEXT)
        self.message_ids[key] = message.id
        logger.warning(
            f"Created {key.value} message {message.id} in channel {channel_id}. "
            f"Set {key.value.upper()}_MESSAGE_ID={message.id} to keep reusing it."
        )
        for callback in self._on_created:
            callback(key, channel_id, message.id)
        return message, True

    async def publish(self, artifact: OutputArtifact) -> PublishResult:
        key = artifact.destination
        channel_id = self.channels.get(key)
        if channel_id is None:
            raise SourceUnavailable(None, f"no channel configured for {key.value}")

        destination = await self.gateway.get_destination(channel_id)
        message, created = await self._resolve_message(key, channel_id, destination)

        edited = False
        if getattr(message, "content", None) != artifact.text:
            await self.gateway.edit_message(message, artifact.text)
            edited = True
        else:
            logger.debug(f"{key.value} message {message.id} already up to date")

        return PublishResult(
            destination=key,
            channel_id=channel_id,
            message_id=message.id,
            created=created,
            edited=edited,
        )

    async def publish_all(
        self, artifacts: Sequence[OutputArtifact]
    ) -> Tuple[List[PublishResult], List[DestinationKey]]:
        """Publishes each artifact independently; one failure never blocks another."""
        results: List[PublishResult] = []
        failed: List[DestinationKey] = []
        for artifact in artifacts:
            try:
                result = await self.publish(artifact)
            except OversightError as e:
                logger.error(f"Skipping {artifact.destination.value} publish this run: {e}")
                failed.append(artifact.destination)
                continue
            except Exception as e:
                logger.exception(
                    f"Unexpected error publishing {artifact.destination.value}, skipping it this run: {e}"
                )
                failed.append(artifact.destination)
                continue
            results.append(result)
            logger.success(
                f"Published {artifact.destination.value} to message {result.message_id}"
            )
        return results, failed
