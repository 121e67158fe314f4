"""
Graph operation models - what the service submits to Neo4j and gets back
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class GraphStatement:
    """One Cypher statement with its bound parameters"""
    statement: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GraphWriteOperation:
    """
    Ordered statements submitted as one batch (one write transaction).

    Every statement uses MERGE/MATCH semantics, so replaying an operation
    never duplicates nodes or relationships.
    """
    statements: Tuple[GraphStatement, ...]

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)


@dataclass(frozen=True)
class BatchStats:
    """Summary counters of an executed batch"""
    contains_updates: bool = False
    relationships_deleted: int = 0
    relationships_created: int = 0
    nodes_created: int = 0
