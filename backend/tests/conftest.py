"""
Pytest fixtures for keyphrase annotation tests.

InMemoryGraph stands in for Neo4jService: it recognises the statements of
services.keyphrase_cypher and applies them to a dict-based graph, so the
service, worker and API can be exercised end to end without Neo4j.
"""
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from models.annotation import (
    CONFIDENCE_SCORING_SYSTEM,
    KEYPHRASE_ONTOLOGY,
    MENTIONS_PREDICATE,
    RELEVANCE_SCORING_SYSTEM,
    Annotation,
)
from models.graph import BatchStats, GraphWriteOperation
from services import keyphrase_cypher as cypher
from services.annotation_service import KeyphraseAnnotationService
from services.exceptions import StoreUnavailableError

KEYPHRASE_UUID = "aaaaaaaa-0000-0000-0000-000000000000"
OTHER_KEYPHRASE_UUID = "bbbbbbbb-0000-0000-0000-000000000000"
AGENT_UUID = "cccccccc-1111-2222-3333-444444444444"
NOW = 1_700_000_000


class InMemoryGraph:
    """Dict-backed graph understanding the keyphrase Cypher statements"""

    def __init__(self):
        self.nodes: Dict[str, Dict[str, Any]] = {}
        self.relationships: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.identifiers: Set[str] = set()
        self.identifies: Set[Tuple[str, str]] = set()
        self.batches: List[GraphWriteOperation] = []
        self.queries: List[Tuple[str, Dict[str, Any]]] = []
        self.fail_with: Optional[Exception] = None
        self.constraints_initialized = False

    # ----- test helpers -----

    @property
    def calls(self) -> int:
        return len(self.batches) + len(self.queries)

    def merge_node(self, uuid: str, *labels: str) -> Dict[str, Any]:
        node = self.nodes.setdefault(uuid, {'labels': {'Thing'}, 'props': {'uuid': uuid}})
        node['labels'].update(labels)
        return node

    def add_content(self, uuid: str, published_epoch: int):
        node = self.merge_node(uuid, 'Content')
        node['props']['publishedDateEpoch'] = published_epoch

    def add_concept(self, uuid: str, labels, pref_label: Optional[str] = ''):
        node = self.merge_node(uuid, *labels)
        node['props']['prefLabel'] = pref_label

    def add_mention(self, content_uuid: str, concept_uuid: str, props: Dict[str, Any] = None):
        self.relationships[(content_uuid, concept_uuid, 'MENTIONS')] = dict(props or {})

    def mention_count(self) -> int:
        return len(self.relationships)

    # ----- gateway contract -----

    async def connect(self):
        pass

    async def close(self):
        pass

    async def check(self):
        if self.fail_with:
            raise self.fail_with

    async def initialize_constraints(self):
        self.constraints_initialized = True

    async def execute_batch(self, operation: GraphWriteOperation) -> BatchStats:
        if self.fail_with:
            raise self.fail_with
        self.batches.append(operation)

        contains_updates = False
        deleted = 0
        for stmt in operation:
            updated, removed = self._apply(stmt.statement, stmt.parameters)
            contains_updates = contains_updates or updated
            deleted += removed
        return BatchStats(contains_updates=contains_updates, relationships_deleted=deleted)

    async def execute_query(self, statement: str, parameters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        if self.fail_with:
            raise self.fail_with
        parameters = parameters or {}
        self.queries.append((statement, parameters))

        if statement == cypher.READ_ANNOTATIONS:
            return self._read(parameters['uuid'])
        if statement == cypher.COUNT_ANNOTATIONS:
            return self._count(parameters['lifecycle'])
        if statement == cypher.POPULAR_KEYPHRASES:
            return self._popular(parameters['searchTime'], parameters['limit'])
        if statement == cypher.CO_OCCURRENCES:
            return self._co_occurrences(parameters['uuid'], parameters['limit'])
        if statement == cypher.CHECK_CONNECTIVITY:
            return [{'ok': 1}]
        raise AssertionError(f"Unexpected query: {statement}")

    # ----- statement semantics -----

    def _apply(self, statement: str, params: Dict[str, Any]) -> Tuple[bool, int]:
        if statement == cypher.CLEAR_KEYPHRASE_LABELS:
            node = self.nodes.get(params['uuid'])
            if node is None:
                return False, 0
            before = set(node['labels'])
            node['labels'] -= {'Concept', 'Keyphrase'}
            return before != node['labels'], 0

        if statement == cypher.UPSERT_KEYPHRASE:
            node = self.merge_node(params['uuid'], 'Concept', 'Keyphrase')
            node['props']['prefLabel'] = params['prefLabel']
            return True, 0

        if statement == cypher.UPSERT_ANNOTATION:
            concept_id = params['conceptID']
            content_id = params['contentID']
            self.merge_node(concept_id)
            self.merge_node(content_id)
            self.identifiers.add(concept_id)
            self.identifies.add((concept_id, concept_id))
            self.relationships[(content_id, concept_id, 'MENTIONS')] = dict(params['annProps'])
            return True, 0

        if statement == cypher.DELETE_ANNOTATIONS:
            doomed = [
                key for key in self.relationships
                if key[0] == params['contentID'] and self._is_keyphrase(key[1])
            ]
            for key in doomed:
                del self.relationships[key]
            return bool(doomed), len(doomed)

        raise AssertionError(f"Unexpected write: {statement}")

    def _is_keyphrase(self, uuid: str) -> bool:
        node = self.nodes.get(uuid)
        return node is not None and 'Keyphrase' in node['labels']

    def _read(self, content_uuid: str) -> List[Dict[str, Any]]:
        rows = []
        for (content, concept, rel_type), props in self.relationships.items():
            if content != content_uuid or not self._is_keyphrase(concept):
                continue
            node = self.nodes[concept]
            rows.append({
                'id': concept,
                'prefLabel': node['props'].get('prefLabel'),
                'types': sorted(node['labels']),
                'predicate': rel_type,
                'relevanceScore': props.get('relevanceScore'),
                'confidenceScore': props.get('confidenceScore'),
                'annotatedBy': props.get('annotatedBy'),
                'annotatedDate': props.get('annotatedDate'),
            })
        return sorted(rows, key=lambda row: row['id'])

    def _count(self, lifecycle: str) -> List[Dict[str, Any]]:
        count = sum(
            1 for (_, concept, _), props in self.relationships.items()
            if self._is_keyphrase(concept) and props.get('lifecycle') in (lifecycle, None)
        )
        return [{'count': count}]

    def _popular(self, search_time: int, limit: int) -> List[Dict[str, Any]]:
        counts: Dict[str, int] = defaultdict(int)
        for (content, concept, _) in self.relationships:
            node = self.nodes.get(content)
            if node is None or 'Content' not in node['labels'] or not self._is_keyphrase(concept):
                continue
            label = self.nodes[concept]['props'].get('prefLabel')
            if label is not None and node['props'].get('publishedDateEpoch', 0) >= search_time:
                counts[label] += 1
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [{'keyphrase': name, 'count': count} for name, count in ranked[:limit]]

    def _co_occurrences(self, keyphrase_uuid: str, limit: int) -> List[Dict[str, Any]]:
        if not self._is_keyphrase(keyphrase_uuid):
            return []
        keyphrase = self.nodes[keyphrase_uuid]
        contents = {
            content for (content, concept, _) in self.relationships
            if concept == keyphrase_uuid and 'Content' in self.nodes[content]['labels']
        }
        counts: Dict[str, int] = defaultdict(int)
        for (content, concept, _) in self.relationships:
            if content in contents and concept != keyphrase_uuid and 'Concept' in self.nodes[concept]['labels']:
                counts[concept] += 1
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [
            {
                'keyphraseLabel': keyphrase['props'].get('prefLabel'),
                'cooccurrence': count,
                'conceptUUID': uuid,
                'conceptTypes': sorted(self.nodes[uuid]['labels']),
                'conceptLabel': self.nodes[uuid]['props'].get('prefLabel'),
            }
            for uuid, count in ranked[:limit]
        ]


def make_annotation(
    concept_uuid: str = KEYPHRASE_UUID,
    pref_label: str = "brexit negotiations",
    relevance: float = None,
    confidence: float = None,
    agent_role: str = None,
    at_time: str = None,
    types=None,
) -> Annotation:
    """Annotation in wire form, the way the feed and the PUT body carry it"""
    provenance: Dict[str, Any] = {}
    scores = []
    if relevance is not None:
        scores.append({'scoringSystem': RELEVANCE_SCORING_SYSTEM, 'value': relevance})
    if confidence is not None:
        scores.append({'scoringSystem': CONFIDENCE_SCORING_SYSTEM, 'value': confidence})
    if scores:
        provenance['scores'] = scores
    if agent_role is not None:
        provenance['agentRole'] = agent_role
    if at_time is not None:
        provenance['atTime'] = at_time

    payload: Dict[str, Any] = {
        'thing': {
            'id': f"http://api.ft.com/things/{concept_uuid}",
            'prefLabel': pref_label,
            'types': types if types is not None else [KEYPHRASE_ONTOLOGY],
            'predicate': MENTIONS_PREDICATE,
        },
    }
    if provenance:
        payload['provenances'] = [provenance]
    return Annotation.model_validate(payload)


@pytest.fixture
def graph():
    return InMemoryGraph()


@pytest.fixture
def annotation_service(graph):
    return KeyphraseAnnotationService(graph, clock=lambda: NOW)


@pytest.fixture
def full_annotation():
    return make_annotation(
        relevance=0.9,
        confidence=0.8,
        agent_role=f"http://api.ft.com/things/{AGENT_UUID}",
        at_time="2016-01-20T19:43:47.314Z",
    )


@pytest.fixture
def store_down():
    return StoreUnavailableError("Neo4j batch failed: connection refused")
