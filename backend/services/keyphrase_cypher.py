"""
Cypher for keyphrase annotations

Graph shape written here:
- (:Thing:Concept:Keyphrase {uuid, prefLabel})       - the keyphrase concept
- (:Thing {uuid})                                     - the content item
- (:Identifier:CesIdentifier {value})-[:IDENTIFIES]->(concept)
- (content)-[:MENTIONS {lifecycle, annotatedBy, annotatedDate,
                        annotatedDateEpoch, relevanceScore,
                        confidenceScore}]->(concept)

Every write uses MERGE (or MATCH on an existing node), so replaying the same
operation never creates duplicate nodes or relationships. Read statements
live here too so that reads stay consistent with what the writer produces.
"""
import logging
from typing import Any, Dict

from models.annotation import Annotation, Concept
from models.graph import GraphStatement, GraphWriteOperation
from utils.datetime_utils import to_epoch
from utils.id_utils import extract_uuid_from_uri
from utils.scores import SCORE_NOT_SET, fold_scores

logger = logging.getLogger(__name__)

# Tags relationships owned by this service
LIFECYCLE = "keyphrase"

# ===== Writes =====

CLEAR_KEYPHRASE_LABELS = """
MATCH (t:Thing {uuid: $uuid})
REMOVE t:Concept:Keyphrase
SET t.uuid = $uuid
"""

UPSERT_KEYPHRASE = """
MERGE (n:Thing {uuid: $uuid})
SET n:Concept:Keyphrase, n.prefLabel = $prefLabel
"""

UPSERT_ANNOTATION = """
MERGE (concept:Thing {uuid: $conceptID})
MERGE (content:Thing {uuid: $contentID})
MERGE (ces:Identifier:CesIdentifier {value: $conceptID})
MERGE (ces)-[:IDENTIFIES]->(concept)
MERGE (content)-[pred:MENTIONS]->(concept)
SET pred = $annProps
"""

DELETE_ANNOTATIONS = """
OPTIONAL MATCH (:Thing {uuid: $contentID})-[r]->(:Keyphrase)
DELETE r
"""

# ===== Reads =====

READ_ANNOTATIONS = """
MATCH (content:Thing {uuid: $uuid})-[rel]->(kp:Keyphrase)
RETURN kp.uuid AS id,
       kp.prefLabel AS prefLabel,
       labels(kp) AS types,
       type(rel) AS predicate,
       rel.relevanceScore AS relevanceScore,
       rel.confidenceScore AS confidenceScore,
       rel.annotatedBy AS annotatedBy,
       rel.annotatedDate AS annotatedDate
ORDER BY id
"""

COUNT_ANNOTATIONS = """
MATCH (kp:Keyphrase)<-[r]-(t:Thing)
WHERE r.lifecycle = $lifecycle OR r.lifecycle IS NULL
RETURN count(r) AS count
"""

POPULAR_KEYPHRASES = """
MATCH (c:Content)-[a]->(k:Keyphrase)
WHERE c.publishedDateEpoch >= $searchTime AND k.prefLabel IS NOT NULL
WITH k, count(DISTINCT a) AS mentions
RETURN k.prefLabel AS keyphrase, sum(mentions) AS count
ORDER BY count DESC
LIMIT $limit
"""

CO_OCCURRENCES = """
MATCH (k:Keyphrase {uuid: $uuid})-[]-(c:Content)-[occRel]-(x:Concept)
WHERE x <> k
WITH k, x, count(DISTINCT occRel) AS cooccurrence
RETURN k.prefLabel AS keyphraseLabel,
       cooccurrence,
       x.uuid AS conceptUUID,
       labels(x) AS conceptTypes,
       x.prefLabel AS conceptLabel
ORDER BY cooccurrence DESC, conceptUUID
LIMIT $limit
"""

CHECK_CONNECTIVITY = "RETURN 1 AS ok"

CONSTRAINTS = [
    "CREATE CONSTRAINT thing_uuid IF NOT EXISTS FOR (t:Thing) REQUIRE t.uuid IS UNIQUE",
    "CREATE CONSTRAINT keyphrase_uuid IF NOT EXISTS FOR (k:Keyphrase) REQUIRE k.uuid IS UNIQUE",
]


def build_keyphrase_upsert(concept: Concept) -> GraphWriteOperation:
    """
    Two-step upsert of the keyphrase node.

    The first statement strips any previous Concept/Keyphrase classification,
    the second re-applies it with the current prefLabel, so relabeling or
    reclassifying never leaves stale labels behind.
    """
    keyphrase_id = extract_uuid_from_uri(concept.id)
    return GraphWriteOperation(statements=(
        GraphStatement(CLEAR_KEYPHRASE_LABELS, {'uuid': keyphrase_id}),
        GraphStatement(UPSERT_KEYPHRASE, {
            'uuid': keyphrase_id,
            'prefLabel': concept.pref_label,
        }),
    ))


def build_annotation_properties(annotation: Annotation) -> Dict[str, Any]:
    """
    Property bag of the MENTIONS relationship.

    Only the first provenance is honored. Fields whose source is absent are
    left out rather than written as nulls.
    """
    props: Dict[str, Any] = {'lifecycle': LIFECYCLE}
    if not annotation.provenances:
        return props

    if len(annotation.provenances) > 1:
        logger.debug(
            f"Ignoring {len(annotation.provenances) - 1} extra provenance(s) "
            f"for concept {annotation.concept.id}"
        )
    provenance = annotation.provenances[0]

    if provenance.agent_role:
        props['annotatedBy'] = extract_uuid_from_uri(provenance.agent_role)
    if provenance.at_time:
        props['annotatedDateEpoch'] = to_epoch(provenance.at_time)
        props['annotatedDate'] = provenance.at_time

    relevance, confidence = fold_scores(provenance.scores)
    if relevance != SCORE_NOT_SET:
        props['relevanceScore'] = relevance
    if confidence != SCORE_NOT_SET:
        props['confidenceScore'] = confidence

    return props


def build_annotation_upsert(content_uuid: str, annotation: Annotation) -> GraphWriteOperation:
    """
    Single MERGE statement linking content to concept.

    Raises:
        MalformedURIError: concept id or agent role carry no UUID
        MalformedTimestampError: atTime is not RFC3339
    """
    concept_id = extract_uuid_from_uri(annotation.concept.id)
    return GraphWriteOperation(statements=(
        GraphStatement(UPSERT_ANNOTATION, {
            'contentID': content_uuid,
            'conceptID': concept_id,
            'annProps': build_annotation_properties(annotation),
        }),
    ))


def build_delete(content_uuid: str) -> GraphWriteOperation:
    """Remove every outgoing relationship from the content to a Keyphrase"""
    return GraphWriteOperation(statements=(
        GraphStatement(DELETE_ANNOTATIONS, {'contentID': content_uuid}),
    ))
