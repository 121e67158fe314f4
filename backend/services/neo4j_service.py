"""
Neo4j Graph Service - graph store gateway

Neo4j is the SINGLE SOURCE OF TRUTH for keyphrase annotations.
This service only knows how to run Cypher; what to run is decided by
services.keyphrase_cypher and orchestrated by the annotation service.

Contract:
- execute_batch: all statements of an operation in ONE write transaction,
  returns aggregated BatchStats
- execute_query: one read statement, returns rows as dicts
- Any driver or database failure surfaces as StoreUnavailableError
  (the managed transaction functions already retry transient errors)
"""
import os
import logging
from typing import Any, Dict, List, Optional

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncManagedTransaction
from neo4j.exceptions import DriverError, Neo4jError

from models.graph import BatchStats, GraphWriteOperation
from services.exceptions import StoreUnavailableError
from services.keyphrase_cypher import CHECK_CONNECTIVITY, CONSTRAINTS

logger = logging.getLogger(__name__)


class Neo4jService:
    """Service for Neo4j graph operations"""

    def __init__(
        self,
        uri: str = None,
        user: str = None,
        password: str = None,
        database: str = None
    ):
        """Initialize Neo4j connection settings (connect() opens the driver)"""
        self.uri = uri or os.getenv('NEO4J_URI', 'bolt://localhost:7687')
        self.user = user or os.getenv('NEO4J_USER', 'neo4j')
        self.password = password or os.getenv('NEO4J_PASSWORD', '')
        self.database = database or os.getenv('NEO4J_DATABASE', 'neo4j')

        self.driver: Optional[AsyncDriver] = None

    async def connect(self):
        """Establish connection to Neo4j"""
        if not self.driver:
            self.driver = AsyncGraphDatabase.driver(
                self.uri,
                auth=(self.user, self.password)
            )
            try:
                await self.driver.verify_connectivity()
            except (Neo4jError, DriverError) as e:
                raise StoreUnavailableError(f"Could not connect to Neo4j at {self.uri}: {e}") from e
            logger.info(f"✅ Connected to Neo4j at {self.uri}")

    async def close(self):
        """Close Neo4j connection"""
        if self.driver:
            await self.driver.close()
            self.driver = None
            logger.info("🔌 Closed Neo4j connection")

    def _require_driver(self) -> AsyncDriver:
        if self.driver is None:
            raise StoreUnavailableError("Neo4j driver is not connected")
        return self.driver

    @staticmethod
    async def _run_batch(tx: AsyncManagedTransaction, operation: GraphWriteOperation) -> BatchStats:
        contains_updates = False
        relationships_deleted = 0
        relationships_created = 0
        nodes_created = 0

        for stmt in operation:
            result = await tx.run(stmt.statement, stmt.parameters)
            summary = await result.consume()
            counters = summary.counters
            contains_updates = contains_updates or counters.contains_updates
            relationships_deleted += counters.relationships_deleted
            relationships_created += counters.relationships_created
            nodes_created += counters.nodes_created

        return BatchStats(
            contains_updates=contains_updates,
            relationships_deleted=relationships_deleted,
            relationships_created=relationships_created,
            nodes_created=nodes_created,
        )

    async def execute_batch(self, operation: GraphWriteOperation) -> BatchStats:
        """Run every statement of the operation in a single write transaction"""
        driver = self._require_driver()
        try:
            async with driver.session(database=self.database) as session:
                stats = await session.execute_write(self._run_batch, operation)
        except (Neo4jError, DriverError) as e:
            raise StoreUnavailableError(f"Neo4j batch failed: {e}") from e

        logger.debug(f"Batch of {len(operation)} statement(s) done: {stats}")
        return stats

    async def execute_query(self, statement: str, parameters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """Execute read query"""
        driver = self._require_driver()
        try:
            async with driver.session(database=self.database) as session:
                result = await session.run(statement, parameters or {})
                return await result.data()
        except (Neo4jError, DriverError) as e:
            raise StoreUnavailableError(f"Neo4j query failed: {e}") from e

    async def check(self):
        """Run a trivial query; raises StoreUnavailableError when Neo4j is unreachable"""
        await self.execute_query(CHECK_CONNECTIVITY)

    async def initialize_constraints(self):
        """Create uniqueness constraints for Thing and Keyphrase uuids."""
        driver = self._require_driver()
        for constraint_query in CONSTRAINTS:
            try:
                async with driver.session(database=self.database) as session:
                    result = await session.run(constraint_query)
                    await result.consume()
                logger.info(f"✅ {constraint_query.split()[2]} ensured")
            except (Neo4jError, DriverError) as e:
                logger.warning(f"⚠️  Constraint creation failed (may already exist): {e}")
