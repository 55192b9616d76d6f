"""
Unit Tests for the streaming JSON event extractor and the document wrapper

Run with: python -m pytest tests/test_extractor.py -v
"""

import io
import json
from datetime import datetime, timezone

import pytest

from conftest import AGGREGATION_EVENT, OBJECT_EVENT, document
from epcis.document_wrapper import EPCIS_CONTEXT_URL, wrap_event_list, wrapped_document
from epcis.exceptions import DocumentParseError, DocumentStructureError, ExtractorDemandError
from epcis.extractor import EventListExtractor


def extractor_for(text, **kwargs):
    return EventListExtractor(io.BytesIO(text.encode("utf-8")), **kwargs)


def types(items):
    return [item["type"] for item in items]


class TestDemand:
    """request(n) semantics."""

    def test_header_first_then_events(self):
        extractor = extractor_for(document(OBJECT_EVENT, AGGREGATION_EVENT, OBJECT_EVENT))

        assert types(extractor.request(2)) == ["EPCISDocument", "ObjectEvent"]
        assert not extractor.completed
        assert types(extractor.request(5)) == ["AggregationEvent", "ObjectEvent"]
        assert extractor.completed
        assert extractor.request(1) == []

    def test_trailing_header_comes_last(self):
        extractor = extractor_for(document(OBJECT_EVENT, AGGREGATION_EVENT, header_first=False))
        assert types(list(extractor)) == ["ObjectEvent", "AggregationEvent", "EPCISDocument"]

    def test_small_buffer(self):
        extractor = extractor_for(document(OBJECT_EVENT, AGGREGATION_EVENT), buf_size=16)
        assert types(list(extractor)) == ["EPCISDocument", "ObjectEvent", "AggregationEvent"]

    @pytest.mark.parametrize("demand", [0, -1])
    def test_non_positive_demand_is_rejected(self, demand):
        extractor = extractor_for(document(OBJECT_EVENT))
        with pytest.raises(ExtractorDemandError):
            extractor.request(demand)
        with pytest.raises(ValueError):
            extractor.request(demand)

    def test_cancel_stops_extraction(self):
        extractor = extractor_for(document(OBJECT_EVENT, AGGREGATION_EVENT))
        extractor.request(1)
        extractor.cancel()

        assert extractor.cancelled
        assert extractor.completed
        assert extractor.request(3) == []

    def test_header_keeps_context(self):
        extractor = extractor_for(document(OBJECT_EVENT))
        header = extractor.request(1)[0]
        assert header["@context"][1] == {"example": "https://ns.example.com/epcis/"}


class TestShapes:
    """Supported and rejected top-level shapes."""

    def test_bare_array(self):
        extractor = extractor_for(json.dumps([OBJECT_EVENT, AGGREGATION_EVENT]))
        assert types(list(extractor)) == ["ObjectEvent", "AggregationEvent"]

    def test_single_event_object(self):
        assert list(extractor_for(json.dumps(AGGREGATION_EVENT))) == [AGGREGATION_EVENT]

    def test_query_document(self):
        query = {
            "@context": ["https://ref.gs1.org/standards/epcis/epcis-context.jsonld"],
            "type": "EPCISQueryDocument",
            "schemaVersion": "2.0",
            "creationDate": "2021-05-27T13:05:00.000Z",
            "epcisBody": {
                "queryResults": {
                    "queryName": "SimpleEventQuery",
                    "resultsBody": {"eventList": [AGGREGATION_EVENT]},
                }
            },
        }
        items = list(extractor_for(json.dumps(query)))

        assert types(items) == ["EPCISQueryDocument", "AggregationEvent"]
        assert "queryName" not in items[0]
        assert "queryResults" not in items[0]

    def test_entries_without_type_are_dropped(self):
        text = json.dumps([OBJECT_EVENT, {"eventTime": "2021-05-27T13:00:00Z"}, 42])
        assert types(list(extractor_for(text))) == ["ObjectEvent"]

    def test_event_list_must_be_array(self):
        extractor = extractor_for('{"epcisBody": {"eventList": {"type": "ObjectEvent"}}}')
        with pytest.raises(DocumentStructureError, match="must be an array"):
            extractor.request(1)
        assert extractor.completed

    def test_scalar_document_is_rejected(self):
        with pytest.raises(DocumentStructureError):
            extractor_for("42").request(1)

    def test_truncated_document(self):
        text = document(OBJECT_EVENT)[:-10]
        with pytest.raises(DocumentParseError):
            list(extractor_for(text))

    def test_trailing_content(self):
        with pytest.raises(DocumentParseError):
            list(extractor_for('[{"type": "ObjectEvent"}] {"type": "ObjectEvent"}'))


class TestDocumentWrapper:
    """Wrapping a bare event array into an EPCISDocument."""

    CREATED = datetime(2024, 3, 1, 12, 30, 45, 678000, tzinfo=timezone.utc)

    def test_wrapped_document_shape(self):
        events = [OBJECT_EVENT, AGGREGATION_EVENT]
        chunks = wrap_event_list(io.BytesIO(json.dumps(events).encode("utf-8")), creation_date=self.CREATED)
        wrapped = json.loads(b"".join(chunks))

        assert wrapped == {
            "@context": [EPCIS_CONTEXT_URL],
            "type": "EPCISDocument",
            "schemaVersion": "2.0",
            "creationDate": "2024-03-01T12:30:45.678Z",
            "epcisBody": {"eventList": events},
        }

    def test_small_chunks_and_leading_whitespace(self):
        raw = b"  \n" + json.dumps([AGGREGATION_EVENT]).encode("utf-8")
        stream = wrapped_document(io.BytesIO(raw), chunk_size=2, creation_date=self.CREATED)
        assert json.loads(stream.read())["epcisBody"]["eventList"] == [AGGREGATION_EVENT]

    def test_wrapped_stream_feeds_extractor(self):
        stream = wrapped_document(io.BytesIO(json.dumps([OBJECT_EVENT]).encode("utf-8")))
        assert types(list(EventListExtractor(stream))) == ["EPCISDocument", "ObjectEvent"]

    def test_non_array_is_rejected(self):
        with pytest.raises(DocumentStructureError, match="Expecting input as JSON array"):
            list(wrap_event_list(io.BytesIO(json.dumps(OBJECT_EVENT).encode("utf-8"))))

    def test_empty_input_is_rejected(self):
        with pytest.raises(DocumentStructureError):
            list(wrap_event_list(io.BytesIO(b"   ")))
