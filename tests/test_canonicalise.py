"""
Unit Tests for EPCIS event canonicalisation

Run with: python -m pytest tests/test_canonicalise.py -v
"""

import io

import pytest

from conftest import (
    AGGREGATION_EVENT,
    AGGREGATION_EVENT_PREHASH,
    EXAMPLE_NS,
    SENSOR_EVENT,
    SENSOR_EVENT_XML,
    document,
)
from epcis.canonicalise import EventCanonicaliser, canonicalise_event, format_time, normalize_number
from epcis.context import CBVVersion, HashContext
from epcis.exceptions import EventFormatError
from epcis.hash_event import EventHashGenerator
from epcis.json_builder import build_event_tree
from epcis.xml_builder import iter_xml_events

SENSOR_EVENT_LINES = [
    "eventType=ObjectEvent",
    "eventTime=2021-05-27T13:00:00.000Z",
    "eventTimeZoneOffset=+01:00",
    "epcList",
    "epc=https://id.gs1.org/01/10614141073464/21/2017",
    "action=OBSERVE",
    "bizStep=https://ref.gs1.org/cbv/BizStep-sensor_reporting",
    "sensorElement",
    "sensorMetadata",
    "time=2021-05-27T12:50:00.000Z",
    "sensorReport",
    "type=https://gs1.org/voc/Length",
    "value=-477979.89",
    "component=https://ref.gs1.org/cbv/Comp-northing",
    "uom=MTR",
    "sensorReport",
    "type=https://gs1.org/voc/Temperature",
    "value=26",
    "uom=CEL",
]


def gate_event():
    return {
        "@context": [{"example": EXAMPLE_NS}],
        "type": "ObjectEvent",
        "eventTime": "2021-05-27T13:00:00Z",
        "eventTimeZoneOffset": "+00:00",
        "action": "OBSERVE",
        "readPoint": {"example:gate": "G1", "id": "urn:epc:id:sgln:0614141.07346.0"},
    }


def xml_lines(xml, context=None):
    trees = list(iter_xml_events(io.BytesIO(xml.encode("utf-8"))))
    assert len(trees) == 1
    return EventCanonicaliser(context).lines(trees[0])


def json_lines(event, context=None, namespaces=None):
    return EventCanonicaliser(context).lines(build_event_tree(event, namespaces))


class TestFormatting:
    """Value helpers."""

    def test_format_time_converts_to_utc_milliseconds(self):
        assert format_time("2020-06-08T20:11:16+02:00") == "2020-06-08T18:11:16.000Z"
        assert format_time("2021-05-27T13:00:00.123456Z") == "2021-05-27T13:00:00.123Z"
        assert format_time("2021-05-27T13:00Z") == "2021-05-27T13:00:00.000Z"

    def test_format_time_requires_offset(self):
        with pytest.raises(EventFormatError):
            format_time("2021-05-27T13:00:00")

    def test_format_time_rejects_garbage(self):
        with pytest.raises(EventFormatError):
            format_time("yesterday")

    def test_normalize_number(self):
        assert normalize_number("25.0") == "25"
        assert normalize_number("-477979.890") == "-477979.89"
        assert normalize_number("42") == "42"
        assert normalize_number("12345678.0") == "12345678.0"


class TestStandardFields:
    """Standard field ordering and formatting."""

    def test_object_event_prehash(self, object_event, object_event_prehash):
        tree = build_event_tree(object_event, {"example": EXAMPLE_NS})
        assert canonicalise_event(tree) == object_event_prehash

    def test_aggregation_event_prehash(self):
        assert canonicalise_event(build_event_tree(AGGREGATION_EVENT)) == AGGREGATION_EVENT_PREHASH

    def test_field_order_ignores_input_order(self, object_event):
        reordered = dict(reversed(list(object_event.items())))
        first = canonicalise_event(build_event_tree(object_event))
        second = canonicalise_event(build_event_tree(reordered))
        assert first == second

    def test_identical_values_sort_http_before_https(self):
        event = {
            "type": "ObjectEvent",
            "eventTime": "2021-05-27T13:00:00Z",
            "eventTimeZoneOffset": "+00:00",
            "epcList": ["https://example.org/2", "http://example.org/1"],
            "action": "OBSERVE",
        }
        prehash = canonicalise_event(build_event_tree(event))
        assert "epcListepc=http://example.org/1epc=https://example.org/2action" in prehash

    def test_invalid_time_raises(self, object_event):
        object_event["eventTime"] = "2021-05-27T13:00:00"
        with pytest.raises(EventFormatError):
            canonicalise_event(build_event_tree(object_event))

    def test_invalid_epc_raises(self, object_event):
        object_event["epcList"] = ["urn:epc:id:sgtin:0614141.107346"]
        with pytest.raises(EventFormatError):
            canonicalise_event(build_event_tree(object_event))

    def test_canonicalisation_is_deterministic(self, object_event):
        results = {canonicalise_event(build_event_tree(object_event)) for _ in range(5)}
        assert len(results) == 1


class TestExtensions:
    """User extension placement."""

    def test_cbv20_hoists_extensions_after_standard_fields(self):
        lines = json_lines(gate_event())
        assert lines[-4:] == [
            "readPoint",
            "id=https://id.gs1.org/414/0614141073467",
            "readPoint",
            "{https://ns.example.com/epcis/}gate=G1",
        ]

    def test_cbv21_keeps_extensions_inline(self):
        context = HashContext().with_cbv_version(CBVVersion.V2_1)
        lines = json_lines(gate_event(), context)
        assert lines[-3:] == [
            "readPoint",
            "id=https://id.gs1.org/414/0614141073467",
            "{https://ns.example.com/epcis/}gate=G1",
        ]

    def test_ilmd_fields_sort_by_expanded_name(self):
        event = {
            "@context": [{"example": EXAMPLE_NS}],
            "type": "ObjectEvent",
            "eventTime": "2021-05-27T13:00:00Z",
            "eventTimeZoneOffset": "+00:00",
            "action": "ADD",
            "ilmd": {"cbvmda:lotNumber": "LOT1", "example:grading": "A"},
        }
        assert json_lines(event)[-3:] == [
            "ilmd",
            "{https://ns.example.com/epcis/}grading=A",
            "{urn:epcglobal:cbv:mda}lotNumber=LOT1",
        ]

    def test_unknown_prefix_is_kept_verbatim(self, object_event):
        prehash = canonicalise_event(build_event_tree(object_event))
        assert prehash.endswith("example:myField=Example of a vendor/user extension")


class TestExclusions:
    """Excluded fields."""

    def test_default_exclusions(self, object_event):
        object_event["eventID"] = "ni:///sha-256;abc?ver=CBV2.0"
        object_event["recordTime"] = "2021-05-27T13:01:00Z"
        object_event["errorDeclaration"] = {"declarationTime": "2021-05-28T00:00:00Z", "reason": "incorrect_data"}
        with_metadata = canonicalise_event(build_event_tree(object_event))

        for name in ("eventID", "recordTime", "errorDeclaration"):
            del object_event[name]
        assert with_metadata == canonicalise_event(build_event_tree(object_event))

    def test_excluding_twice_is_idempotent(self, object_event):
        once = HashContext().with_excluded_fields("bizStep")
        twice = once.with_excluded_fields("bizStep, bizStep")
        first = canonicalise_event(build_event_tree(object_event, excluded_fields=once.excluded_fields), once)
        second = canonicalise_event(build_event_tree(object_event, excluded_fields=twice.excluded_fields), twice)
        assert first == second
        assert "bizStep=" not in first


class TestCrossFormat:
    """XML and JSON renditions of the same event canonicalise identically."""

    def test_object_event(self, object_event_xml, object_event_document):
        generator = EventHashGenerator()
        xml_result = list(generator.from_xml(object_event_xml, "prehash"))
        json_result = list(generator.from_json(object_event_document, "prehash"))
        assert xml_result == json_result

    def test_sensor_event(self):
        assert xml_lines(SENSOR_EVENT_XML) == SENSOR_EVENT_LINES
        assert json_lines(SENSOR_EVENT) == SENSOR_EVENT_LINES

    def test_sensor_event_cbv21_labels_element_list(self):
        context = HashContext().with_cbv_version("2.1")
        lines = json_lines(SENSOR_EVENT, context)
        assert lines[lines.index("bizStep=https://ref.gs1.org/cbv/BizStep-sensor_reporting") + 1] == \
            "sensorElementList"
        assert xml_lines(SENSOR_EVENT_XML, context) == lines

    def test_sensor_document_from_json_stream(self):
        results = list(EventHashGenerator().from_json(document(SENSOR_EVENT), "prehash"))
        assert results == [{"prehash": "".join(SENSOR_EVENT_LINES)}]


class TestXmlStreaming:
    """Event trees are produced while the document is still being read."""

    def test_first_event_yielded_before_document_end(self, object_event_xml):
        start = object_event_xml.index("<ObjectEvent>")
        end = object_event_xml.index("</ObjectEvent>") + len("</ObjectEvent>")
        event = object_event_xml[start:end]
        two_events = object_event_xml[:end] + event + object_event_xml[end:]
        stream = io.BytesIO(two_events.encode("utf-8"))

        trees = iter_xml_events(stream, chunk_size=16)
        first = next(trees)

        assert stream.tell() < len(stream.getvalue())
        second = next(trees)
        assert list(trees) == []
        assert EventCanonicaliser().lines(first) == EventCanonicaliser().lines(second)
