"""
Keyphrase Annotation Service

Orchestrates validation, Cypher building and the Neo4j gateway for every
operation on keyphrase annotations. Each call is independent: no state is
kept between calls, and every call is one or two round trips to Neo4j.

Write sequence:
1. Preconditions (content uuid) and validation (concept id) - no store call
2. Keyphrase node upsert batch (clear labels, re-apply labels + prefLabel)
3. Annotation upsert batch (MENTIONS relationship + provenance properties)

Step 3 references the node created in step 2, so the batches run in order.
"""
import time
import logging
from typing import Callable, List, Optional, Tuple

from models.annotation import (
    CONFIDENCE_SCORING_SYSTEM,
    MENTIONS_PREDICATE,
    RELATIONS,
    RELEVANCE_SCORING_SYSTEM,
    Annotation,
    Concept,
    Provenance,
    Score,
)
from models.keyphrase_stats import CoOccurrence, CoOccurrences, PopularKeyphrase
from services import keyphrase_cypher as cypher
from services.exceptions import (
    EmptyContentIDError,
    TypeResolutionError,
    ValidationError,
)
from services.neo4j_service import Neo4jService
from services.type_mapper import TypeMapper
from services.validation import validate_annotation
from utils.id_utils import thing_uri

logger = logging.getLogger(__name__)

POPULAR_LIMIT = 25

# Relationship type -> predicate URI
PREDICATES = {rel_type: predicate for predicate, rel_type in RELATIONS.items()}


class KeyphraseAnnotationService:
    """
    Read/write/delete/count keyphrase annotations of content items.

    The gateway, type mapper and clock are injected so the service can be
    exercised without a live Neo4j.
    """

    def __init__(
        self,
        neo4j: Neo4jService,
        type_mapper: TypeMapper = None,
        clock: Callable[[], float] = time.time
    ):
        self.neo4j = neo4j
        self.type_mapper = type_mapper or TypeMapper()
        self.clock = clock

    async def initialise(self):
        """Ensure uniqueness constraints exist"""
        await self.neo4j.initialize_constraints()

    async def check(self):
        """Raises StoreUnavailableError when Neo4j can't be reached"""
        await self.neo4j.check()

    # ===== Writes =====

    async def write(self, content_uuid: str, annotation: Annotation) -> None:
        """
        Upsert one keyphrase annotation for a content item.

        Raises:
            EmptyContentIDError, MissingConceptIDError, MalformedURIError,
            MalformedTimestampError: before any store call
            StoreUnavailableError: Neo4j failed
        """
        if not content_uuid:
            raise EmptyContentIDError()
        try:
            validate_annotation(annotation)
        except ValidationError:
            logger.warning("Validation of supplied annotations failed")
            raise

        # Build both operations up front so a malformed provenance fails
        # before the keyphrase node is touched
        keyphrase_op = cypher.build_keyphrase_upsert(annotation.concept)
        annotation_op = cypher.build_annotation_upsert(content_uuid, annotation)

        await self.neo4j.execute_batch(keyphrase_op)
        await self.neo4j.execute_batch(annotation_op)

        logger.info(f"Updated keyphrase annotation for content uuid: {content_uuid}")
        logger.debug(f"For update, ran statements: {[s.statement for s in annotation_op]}")

    async def delete(self, content_uuid: str) -> bool:
        """
        Delete all keyphrase annotations of a content item.

        Returns:
            True when at least one relationship was removed
        """
        if not content_uuid:
            raise EmptyContentIDError()

        stats = await self.neo4j.execute_batch(cypher.build_delete(content_uuid))
        if stats.contains_updates:
            logger.info(f"Deleted {stats.relationships_deleted} keyphrase annotation(s) for {content_uuid}")
        return stats.contains_updates

    # ===== Reads =====

    async def read(self, content_uuid: str) -> Tuple[Optional[Annotation], bool]:
        """
        Read back the keyphrase annotation of a content item.

        The format mirrors the PUT body. When a content item mentions several
        keyphrases, the one with the lowest concept uuid is returned.

        Returns:
            (annotation, found) - (None, False) when nothing is stored
        """
        if not content_uuid:
            raise EmptyContentIDError()

        rows = await self.neo4j.execute_query(cypher.READ_ANNOTATIONS, {'uuid': content_uuid})
        if not rows:
            return None, False

        return self._row_to_annotation(rows[0]), True

    def _row_to_annotation(self, row: dict) -> Annotation:
        concept = Concept(
            id=thing_uri(row['id']),
            pref_label=row.get('prefLabel') or '',
            types=self.type_mapper.type_uris(row.get('types') or []),
            predicate=PREDICATES.get(row.get('predicate'), MENTIONS_PREDICATE),
        )

        scores = []
        if row.get('relevanceScore') is not None:
            scores.append(Score(scoring_system=RELEVANCE_SCORING_SYSTEM, value=row['relevanceScore']))
        if row.get('confidenceScore') is not None:
            scores.append(Score(scoring_system=CONFIDENCE_SCORING_SYSTEM, value=row['confidenceScore']))

        provenance_fields = {}
        if scores:
            provenance_fields['scores'] = scores
        if row.get('annotatedBy'):
            provenance_fields['agent_role'] = thing_uri(row['annotatedBy'])
        if row.get('annotatedDate'):
            provenance_fields['at_time'] = row['annotatedDate']

        if not provenance_fields:
            return Annotation(concept=concept)
        return Annotation(concept=concept, provenances=[Provenance(**provenance_fields)])

    async def count(self) -> int:
        """Number of keyphrase relationships written by this service (or untagged legacy ones)"""
        rows = await self.neo4j.execute_query(cypher.COUNT_ANNOTATIONS, {'lifecycle': cypher.LIFECYCLE})
        if not rows:
            return 0
        return rows[0]['count']

    async def get_popular(self, window_seconds: int) -> List[PopularKeyphrase]:
        """
        Top keyphrases by mention count over content published in the window.

        Content published strictly before now - window_seconds is excluded.
        """
        search_time = int(self.clock()) - int(window_seconds)
        logger.debug(f"Popular keyphrases since epoch {search_time}")

        rows = await self.neo4j.execute_query(cypher.POPULAR_KEYPHRASES, {
            'searchTime': search_time,
            'limit': POPULAR_LIMIT,
        })
        return [PopularKeyphrase(name=row['keyphrase'], count=row['count']) for row in rows]

    async def get_co_occurrence(
        self,
        keyphrase_uuid: str,
        limit: int,
        skip_unresolved: bool = False
    ) -> Tuple[CoOccurrences, bool]:
        """
        Concepts mentioned alongside a keyphrase, most frequent first.

        Args:
            keyphrase_uuid: keyphrase concept uuid
            limit: maximum number of co-occurring concepts
            skip_unresolved: drop rows whose type can't be resolved instead
                of failing the whole call

        Returns:
            (co_occurrences, found) - found is False when nothing co-occurs

        Raises:
            ValidationError: limit is not a positive integer
            TypeResolutionError: a concept type couldn't be resolved
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"Limit must be a positive integer, got {limit!r}")

        rows = await self.neo4j.execute_query(cypher.CO_OCCURRENCES, {
            'uuid': keyphrase_uuid,
            'limit': limit,
        })

        keyphrase_label = ''
        co_occurrences = []
        for row in rows:
            keyphrase_label = keyphrase_label or row.get('keyphraseLabel') or ''
            try:
                direct_type = self.type_mapper.most_specific_type(row.get('conceptTypes') or [])
            except TypeResolutionError:
                logger.debug(f"Invalid concept type found for {row.get('conceptUUID')} (keyphrase {keyphrase_uuid})")
                if skip_unresolved:
                    continue
                raise

            co_occurrences.append(CoOccurrence(
                cooccurrence=row['cooccurrence'],
                concept_uuid=row['conceptUUID'],
                concept_label=row.get('conceptLabel') or '',
                concept_types=row.get('conceptTypes') or [],
                concept_type=direct_type,
            ))

        result = CoOccurrences(
            keyphrase_uuid=keyphrase_uuid,
            keyphrase_label=keyphrase_label,
            co_occurrences=co_occurrences[:limit],
        )
        return result, bool(result.co_occurrences)
