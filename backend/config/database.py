"""
Database Configuration
======================

Turns settings into connection configs and connected clients for the
Neo4j gateway and the Redis-backed feed.
"""
from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, get_settings


@dataclass
class Neo4jConfig:
    """Neo4j connection configuration."""
    uri: str
    user: str
    password: str
    database: str = "neo4j"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'Neo4jConfig':
        settings = settings or get_settings()
        if not settings.neo4j_uri:
            raise ValueError("NEO4J_URI environment variable is required")
        return cls(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
        )


@dataclass
class RedisConfig:
    """Redis feed configuration."""
    url: str
    queue_name: str

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'RedisConfig':
        settings = settings or get_settings()
        if not settings.redis_url:
            raise ValueError("REDIS_URL environment variable is required")
        return cls(url=settings.redis_url, queue_name=settings.feed_queue)


def get_neo4j_config(settings: Optional[Settings] = None) -> Neo4jConfig:
    """Get Neo4j configuration from settings."""
    return Neo4jConfig.from_settings(settings)


def get_redis_config(settings: Optional[Settings] = None) -> RedisConfig:
    """Get Redis configuration from settings."""
    return RedisConfig.from_settings(settings)


async def create_neo4j_service(settings: Optional[Settings] = None):
    """Create and connect Neo4j service from settings."""
    from services.neo4j_service import Neo4jService
    config = get_neo4j_config(settings)
    service = Neo4jService(
        uri=config.uri,
        user=config.user,
        password=config.password,
        database=config.database,
    )
    await service.connect()
    return service


async def create_message_feed(settings: Optional[Settings] = None):
    """Create and connect the Redis feed from settings."""
    from services.message_feed import MessageFeed
    config = get_redis_config(settings)
    feed = MessageFeed(config.url, config.queue_name)
    await feed.connect()
    return feed
