"""
Keyphrase Ingestion Worker - concept suggestions → keyphrase annotations

Pipeline per feed message:
1. Throttle   - wait for the next tick (bounds the sustained write rate)
2. Filter     - only messages from the concept suggestor, as JSON
3. Decode     - body → Suggestion; unreadable bodies are dropped
4. Select     - annotations whose concept types include the KeyPhrase ontology
5. Dispatch   - each selected annotation goes to the bounded write dispatcher;
                the loop moves on without waiting for the write

Nothing is retried or sent back to the feed. Every message ends in one
IngestionOutcome, and every write in one write-level outcome.
"""
import asyncio
import logging
from typing import Optional

from pydantic import ValidationError as PayloadError

from config.settings import Settings
from models.annotation import Suggestion
from models.feed import FeedMessage
from services.annotation_service import KeyphraseAnnotationService
from services.exceptions import DecodeFailureError
from services.ingestion_stats import IngestionOutcome, IngestionStats
from services.message_feed import FeedConsumer, MessageFeed
from services.throttle import Throttle
from services.write_dispatcher import WriteDispatcher

logger = logging.getLogger(__name__)

CONCEPT_SUGGESTOR = "concept-suggestor"
JSON_CONTENT_TYPE = "application/json"


def decode_suggestion(body: str) -> Suggestion:
    """
    Raises:
        DecodeFailureError: body is not a JSON Suggestion
    """
    try:
        return Suggestion.model_validate_json(body)
    except PayloadError as e:
        raise DecodeFailureError(f"Could not unmarshal suggestion json: {e}") from e


class KeyphraseIngestionWorker:
    """
    Feed callback turning suggestion messages into annotation writes.

    Throttle, dispatcher and stats are injected; the worker holds no
    connection of its own.
    """

    def __init__(
        self,
        throttle: Throttle,
        dispatcher: WriteDispatcher,
        stats: IngestionStats = None,
        origin_system_id: str = CONCEPT_SUGGESTOR,
        worker_name: str = "keyphrase-worker"
    ):
        self.throttle = throttle
        self.dispatcher = dispatcher
        self.stats = stats or dispatcher.stats
        self.origin_system_id = origin_system_id
        self.worker_name = worker_name

    def accepts(self, message: FeedMessage) -> bool:
        """Header filter - other producers share the topic"""
        return (
            message.origin_system == self.origin_system_id
            and message.content_type == JSON_CONTENT_TYPE
        )

    async def handle_message(self, message: FeedMessage) -> IngestionOutcome:
        await self.throttle.wait()

        if not self.accepts(message):
            logger.debug(
                f"[{self.worker_name}] Skipping message from {message.origin_system!r} "
                f"({message.content_type!r})"
            )
            return self._finish(IngestionOutcome.FILTERED)

        try:
            suggestion = decode_suggestion(message.body)
        except DecodeFailureError as e:
            logger.error(f"[{self.worker_name}] {e} (request id {message.request_id})")
            return self._finish(IngestionOutcome.DECODE_FAILURE, error=e)

        annotations = suggestion.keyphrase_annotations()
        if not annotations:
            logger.debug(f"[{self.worker_name}] No keyphrases suggested for {suggestion.content_uuid}")
            return self._finish(IngestionOutcome.NO_KEYPHRASES)

        for annotation in annotations:
            await self.dispatcher.submit(suggestion.content_uuid, annotation)

        logger.info(
            f"[{self.worker_name}] Dispatched {len(annotations)} keyphrase(s) "
            f"for content {suggestion.content_uuid}"
        )
        return self._finish(IngestionOutcome.DISPATCHED)

    def _finish(self, outcome: IngestionOutcome, error: Optional[Exception] = None) -> IngestionOutcome:
        self.stats.record(outcome, error=error)
        return outcome


class KeyphraseIngestion:
    """
    Runs the feed consumer as a background task and owns the write dispatcher.

    stop() lets the consumer finish its current message, then gives in-flight
    writes shutdown_grace_seconds before cancelling them.
    """

    def __init__(
        self,
        consumer: FeedConsumer,
        dispatcher: WriteDispatcher,
        shutdown_grace_seconds: float = 5.0
    ):
        self.consumer = consumer
        self.dispatcher = dispatcher
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.consumer.start())
        return self._task

    async def stop(self):
        logger.info("Shutting down keyphrase ingestion...")
        self.consumer.stop()
        if self._task is not None:
            try:
                await asyncio.wait_for(
                    self._task,
                    timeout=self.consumer.timeout + self.shutdown_grace_seconds
                )
            except asyncio.TimeoutError:
                logger.warning("Consumer did not stop in time, cancelled")
            self._task = None

        await self.dispatcher.close(timeout=self.shutdown_grace_seconds)
        logger.info("Keyphrase ingestion closed")


def build_keyphrase_ingestion(
    annotation_service: KeyphraseAnnotationService,
    feed: MessageFeed,
    settings: Settings,
    stats: IngestionStats
) -> KeyphraseIngestion:
    """Wire throttle, dispatcher, worker and consumer from settings"""
    dispatcher = WriteDispatcher(
        annotation_service.write,
        max_in_flight=settings.max_in_flight_writes,
        stats=stats,
    )
    worker = KeyphraseIngestionWorker(
        throttle=Throttle(settings.throttle),
        dispatcher=dispatcher,
        stats=stats,
        origin_system_id=settings.origin_system_id,
    )
    consumer = FeedConsumer(
        feed,
        worker.handle_message,
        timeout=settings.consumer_timeout_seconds,
    )
    return KeyphraseIngestion(consumer, dispatcher, settings.shutdown_grace_seconds)
