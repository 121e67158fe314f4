"""
Configuration module for settings and service connections.
"""
from .settings import Settings, get_settings
from .database import (
    Neo4jConfig,
    RedisConfig,
    get_neo4j_config,
    get_redis_config,
    create_neo4j_service,
    create_message_feed,
)

__all__ = [
    'Settings',
    'get_settings',
    'Neo4jConfig',
    'RedisConfig',
    'get_neo4j_config',
    'get_redis_config',
    'create_neo4j_service',
    'create_message_feed',
]
