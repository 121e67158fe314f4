"""
Redis-backed concept suggestion feed

Uses LPUSH/BRPOP on a single list:
- 'queue:concept-suggestions' → consumed by the keyphrase ingestion worker

BRPOP removes the entry as it is delivered, so delivery is auto-committed:
the consumer never acknowledges or rejects individual messages, and a
message that fails downstream is not redelivered.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from models.feed import FeedMessage

logger = logging.getLogger(__name__)

MessageHandler = Callable[[FeedMessage], Awaitable[object]]


class MessageFeed:
    """Redis list carrying JSON feed envelopes"""

    def __init__(self, redis_url: str, queue_name: str):
        self.redis = None
        self.redis_url = redis_url
        self.queue_name = queue_name

    async def connect(self):
        """Initialize Redis connection"""
        self.redis = await redis.from_url(self.redis_url, decode_responses=True)

    async def close(self):
        """Close Redis connection"""
        if self.redis:
            await self.redis.close()
            self.redis = None

    async def publish(self, message: FeedMessage):
        """
        Add a message to the feed

        Example:
            await feed.publish(FeedMessage(
                headers={'Origin-System-Id': 'concept-suggestor',
                         'Content-Type': 'application/json'},
                body='{"uuid": "...", "suggestions": [...]}'
            ))
        """
        await self.redis.lpush(self.queue_name, message.to_json())

    async def receive(self, timeout: int = 5) -> Optional[str]:
        """
        Blocking pop of one raw envelope (BRPOP)

        Returns None on timeout
        """
        result = await self.redis.brpop(self.queue_name, timeout=timeout)
        if result:
            # result is a tuple: (queue_name, envelope_json)
            return result[1]
        return None

    async def length(self) -> int:
        """Get current feed backlog"""
        return await self.redis.llen(self.queue_name)

    async def ping(self) -> bool:
        return bool(await self.redis.ping())


class FeedConsumer:
    """
    Sequential consumer loop

    Pulls one message at a time and awaits the registered handler before
    pulling the next. stop() lets the current handler call finish.
    """

    def __init__(
        self,
        feed: MessageFeed,
        handler: MessageHandler,
        consumer_name: str = "keyphrase-consumer",
        timeout: int = 1
    ):
        self.feed = feed
        self.handler = handler
        self.consumer_name = consumer_name
        self.timeout = timeout
        self.running = False
        self.messages_received = 0
        self.envelopes_rejected = 0

    async def start(self):
        self.running = True
        logger.info(f"[{self.consumer_name}] Started, listening on {self.feed.queue_name}")

        while self.running:
            try:
                raw = await self.feed.receive(timeout=self.timeout)
                if raw is None:
                    continue

                try:
                    message = FeedMessage.from_json(raw)
                except ValueError as e:
                    self.envelopes_rejected += 1
                    logger.error(f"[{self.consumer_name}] Dropping unreadable envelope: {e}")
                    continue

                self.messages_received += 1
                await self.handler(message)

            except asyncio.CancelledError:
                logger.info(f"[{self.consumer_name}] Received cancellation signal")
                raise
            except RedisError as e:
                logger.error(f"[{self.consumer_name}] Feed error: {e}", exc_info=True)
                await asyncio.sleep(1)
            except Exception as e:
                logger.error(f"[{self.consumer_name}] Consumer loop error: {e}", exc_info=True)

        logger.info(
            f"[{self.consumer_name}] Stopped. "
            f"Received: {self.messages_received}, Rejected envelopes: {self.envelopes_rejected}"
        )

    def stop(self):
        """Ask the loop to exit after the current message"""
        self.running = False
