"""
Tests for the keyphrase ingestion pipeline

Covers header filtering, decoding, keyphrase selection and dispatch for a
single message, then the full consumer → worker → dispatcher → graph path.

Usage:
    pytest backend/tests/test_keyphrase_worker.py -v
"""
import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from config.settings import Settings
from models.annotation import (
    CONFIDENCE_SCORING_SYSTEM,
    KEYPHRASE_ONTOLOGY,
    MENTIONS_PREDICATE,
    RELEVANCE_SCORING_SYSTEM,
)
from models.feed import CONTENT_TYPE_HEADER, ORIGIN_SYSTEM_HEADER, FeedMessage
from services.exceptions import DecodeFailureError
from services.ingestion_stats import IngestionOutcome, IngestionStats
from services.write_dispatcher import WriteDispatcher
from tests.conftest import KEYPHRASE_UUID, OTHER_KEYPHRASE_UUID, make_annotation
from workers.keyphrase_worker import (
    CONCEPT_SUGGESTOR,
    JSON_CONTENT_TYPE,
    KeyphraseIngestionWorker,
    build_keyphrase_ingestion,
    decode_suggestion,
)

CONTENT_UUID = "3fc9fe3e-af8c-4f7f-961a-e5065392bb31"
PERSON_TYPE = "http://www.ft.com/ontology/person/Person"


def suggestion_body(content_uuid, *annotations) -> str:
    return json.dumps({
        'uuid': content_uuid,
        'suggestions': [a.to_wire() for a in annotations],
    })


def feed_message(body: str, origin: str = CONCEPT_SUGGESTOR, content_type: str = JSON_CONTENT_TYPE) -> FeedMessage:
    return FeedMessage(
        headers={ORIGIN_SYSTEM_HEADER: origin, CONTENT_TYPE_HEADER: content_type},
        body=body,
    )


def nullable_keyphrase(provenances=None) -> dict:
    """Raw wire annotation; the producer sends null for empty lists and zero values"""
    return {
        'thing': {
            'id': f"http://api.ft.com/things/{KEYPHRASE_UUID}",
            'prefLabel': "brexit negotiations",
            'types': [KEYPHRASE_ONTOLOGY],
            'predicate': MENTIONS_PREDICATE,
        },
        'provenances': provenances,
    }


class InMemoryFeed:
    """Feed double: receive() pops queued envelopes, None when idle"""

    queue_name = "queue:test-suggestions"

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    async def publish(self, message: FeedMessage):
        await self.queue.put(message.to_json())

    async def receive(self, timeout: int = 1):
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=0.01)
        except asyncio.TimeoutError:
            return None

    async def ping(self):
        return True


@pytest.fixture
def stats():
    return IngestionStats()


@pytest.fixture
def worker(annotation_service, stats):
    dispatcher = WriteDispatcher(annotation_service.write, stats=stats)
    return KeyphraseIngestionWorker(throttle=AsyncMock(), dispatcher=dispatcher, stats=stats)


class TestDecode:

    def test_valid_suggestion(self):
        suggestion = decode_suggestion(suggestion_body(CONTENT_UUID, make_annotation()))
        assert suggestion.content_uuid == CONTENT_UUID
        assert len(suggestion.suggestions) == 1

    @pytest.mark.parametrize("body", ["", "not json", "[1, 2]", '{"uuid": 5}'])
    def test_undecodable(self, body):
        with pytest.raises(DecodeFailureError):
            decode_suggestion(body)

    def test_nulls_decode_as_empty(self):
        suggestion = decode_suggestion(json.dumps({
            'uuid': CONTENT_UUID,
            'suggestions': [nullable_keyphrase(
                provenances=[{'scores': [{'scoringSystem': CONFIDENCE_SCORING_SYSTEM, 'value': None}],
                              'agentRole': None, 'atTime': None}],
            )],
        }))
        provenance = suggestion.suggestions[0].provenances[0]
        assert provenance.scores[0].value == 0.0
        assert provenance.agent_role == ""
        assert decode_suggestion(json.dumps({'uuid': CONTENT_UUID, 'suggestions': None})).suggestions == []


class TestHandleMessage:

    @pytest.mark.asyncio
    async def test_waits_on_throttle_first(self, worker):
        await worker.handle_message(feed_message("{}", origin="someone-else"))
        worker.throttle.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_origin_filtered(self, worker, graph, stats):
        body = suggestion_body(CONTENT_UUID, make_annotation())
        outcome = await worker.handle_message(feed_message(body, origin="methode-web-pub"))

        assert outcome == IngestionOutcome.FILTERED
        assert graph.calls == 0
        assert stats.get(IngestionOutcome.FILTERED) == 1

    @pytest.mark.asyncio
    async def test_non_json_content_type_filtered(self, worker, graph):
        body = suggestion_body(CONTENT_UUID, make_annotation())
        outcome = await worker.handle_message(feed_message(body, content_type="text/plain"))

        await worker.dispatcher.drain(timeout=1)
        assert outcome == IngestionOutcome.FILTERED
        assert graph.calls == 0

    @pytest.mark.asyncio
    async def test_missing_headers_filtered(self, worker):
        outcome = await worker.handle_message(FeedMessage(body="{}"))
        assert outcome == IngestionOutcome.FILTERED

    @pytest.mark.asyncio
    async def test_undecodable_body_dropped(self, worker, graph, stats):
        outcome = await worker.handle_message(feed_message("{not json"))

        assert outcome == IngestionOutcome.DECODE_FAILURE
        assert graph.calls == 0
        assert stats.last_error.startswith("DecodeFailureError")

    @pytest.mark.asyncio
    async def test_no_keyphrases(self, worker, graph):
        person = make_annotation(types=[PERSON_TYPE])
        outcome = await worker.handle_message(feed_message(suggestion_body(CONTENT_UUID, person)))

        assert outcome == IngestionOutcome.NO_KEYPHRASES
        assert graph.calls == 0

    @pytest.mark.asyncio
    async def test_only_keyphrases_written(self, worker, graph, annotation_service, stats):
        body = suggestion_body(
            CONTENT_UUID,
            make_annotation(KEYPHRASE_UUID, "trade deal", relevance=0.7),
            make_annotation("eeeeeeee-0000-0000-0000-000000000000", "Theresa May", types=[PERSON_TYPE]),
            make_annotation(OTHER_KEYPHRASE_UUID, "customs union"),
        )

        outcome = await worker.handle_message(feed_message(body))
        await worker.dispatcher.drain(timeout=1)

        assert outcome == IngestionOutcome.DISPATCHED
        assert stats.get(IngestionOutcome.WRITTEN) == 2
        assert await annotation_service.count() == 2
        assert "eeeeeeee-0000-0000-0000-000000000000" not in graph.nodes

        annotation, found = await annotation_service.read(CONTENT_UUID)
        assert found is True
        assert annotation.concept.pref_label == "trade deal"

    @pytest.mark.asyncio
    async def test_keyphrase_type_matched_by_substring(self, worker, annotation_service):
        annotation = make_annotation(types=[PERSON_TYPE, "http://www.ft.com/ontology/extraction/KeyPhrase#v2"])
        await worker.handle_message(feed_message(suggestion_body(CONTENT_UUID, annotation)))
        await worker.dispatcher.drain(timeout=1)

        assert await annotation_service.count() == 1

    @pytest.mark.asyncio
    async def test_partial_success(self, worker, annotation_service, stats):
        body = suggestion_body(
            CONTENT_UUID,
            make_annotation(KEYPHRASE_UUID, agent_role="not-a-uri"),
            make_annotation(OTHER_KEYPHRASE_UUID, "survives"),
        )

        outcome = await worker.handle_message(feed_message(body))
        await worker.dispatcher.drain(timeout=1)

        assert outcome == IngestionOutcome.DISPATCHED
        assert stats.get(IngestionOutcome.WRITE_FAILED) == 1
        assert stats.get(IngestionOutcome.WRITTEN) == 1
        annotation, _ = await annotation_service.read(CONTENT_UUID)
        assert annotation.concept.pref_label == "survives"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provenances", [
        None,
        [{'scores': None}],
        [{'scores': [{'scoringSystem': RELEVANCE_SCORING_SYSTEM, 'value': None}]}],
    ])
    async def test_null_provenance_fields_still_written(self, worker, annotation_service, stats, provenances):
        body = json.dumps({'uuid': CONTENT_UUID, 'suggestions': [nullable_keyphrase(provenances=provenances)]})

        outcome = await worker.handle_message(feed_message(body))
        await worker.dispatcher.drain(timeout=1)

        assert outcome == IngestionOutcome.DISPATCHED
        assert stats.get(IngestionOutcome.WRITTEN) == 1
        _, found = await annotation_service.read(CONTENT_UUID)
        assert found is True

    @pytest.mark.asyncio
    async def test_null_types_is_not_a_keyphrase(self, worker, graph):
        annotation = nullable_keyphrase()
        annotation['thing']['types'] = None
        body = json.dumps({'uuid': CONTENT_UUID, 'suggestions': [annotation]})

        outcome = await worker.handle_message(feed_message(body))

        assert outcome == IngestionOutcome.NO_KEYPHRASES
        assert graph.calls == 0

    @pytest.mark.asyncio
    async def test_store_down_does_not_stop_worker(self, worker, graph, stats, store_down):
        graph.fail_with = store_down
        body = suggestion_body(CONTENT_UUID, make_annotation())

        assert await worker.handle_message(feed_message(body)) == IngestionOutcome.DISPATCHED
        await worker.dispatcher.drain(timeout=1)
        assert stats.get(IngestionOutcome.WRITE_FAILED) == 1

        graph.fail_with = None
        await worker.handle_message(feed_message(body))
        await worker.dispatcher.drain(timeout=1)
        assert stats.get(IngestionOutcome.WRITTEN) == 1


class TestIngestionRuntime:

    @pytest.mark.asyncio
    async def test_feed_to_graph(self, annotation_service, stats):
        feed = InMemoryFeed()
        settings = Settings(throttle=1000, shutdown_grace_seconds=1, consumer_timeout_seconds=1)
        ingestion = build_keyphrase_ingestion(annotation_service, feed, settings, stats)

        await feed.publish(feed_message(suggestion_body(CONTENT_UUID, make_annotation())))
        await feed.publish(feed_message("ignored", content_type="text/plain"))
        await feed.queue.put("not an envelope")

        ingestion.start()
        for _ in range(200):
            if feed.queue.empty() and stats.get(IngestionOutcome.WRITTEN):
                break
            await asyncio.sleep(0.01)
        await ingestion.stop()

        assert stats.get(IngestionOutcome.DISPATCHED) == 1
        assert stats.get(IngestionOutcome.FILTERED) == 1
        assert stats.get(IngestionOutcome.WRITTEN) == 1
        assert ingestion.consumer.envelopes_rejected == 1
        _, found = await annotation_service.read(CONTENT_UUID)
        assert found is True

    @pytest.mark.asyncio
    async def test_stop_drains_in_flight_writes(self, stats):
        release = asyncio.Event()
        written = []

        async def slow_write(content_uuid, annotation):
            await release.wait()
            written.append(content_uuid)

        service = AsyncMock()
        service.write = slow_write
        feed = InMemoryFeed()
        settings = Settings(throttle=1000, shutdown_grace_seconds=1)
        ingestion = build_keyphrase_ingestion(service, feed, settings, stats)

        await feed.publish(feed_message(suggestion_body(CONTENT_UUID, make_annotation())))
        ingestion.start()
        while not stats.get(IngestionOutcome.DISPATCHED):
            await asyncio.sleep(0.01)

        stopping = asyncio.create_task(ingestion.stop())
        await asyncio.sleep(0.05)
        release.set()
        await stopping

        assert written == [CONTENT_UUID]
        assert stats.get(IngestionOutcome.WRITE_CANCELLED) == 0
