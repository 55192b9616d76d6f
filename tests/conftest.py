"""
Shared EPCIS sample documents for the event hash tests.

Each XML sample describes the same logical event as its JSON counterpart, so
both must produce the same pre-hash string.
"""

import json

import pytest

EXAMPLE_NS = "https://ns.example.com/epcis/"

EPCIS_CONTEXT = [
    "https://ref.gs1.org/standards/epcis/epcis-context.jsonld",
    {"example": EXAMPLE_NS},
]

OBJECT_EVENT = {
    "type": "ObjectEvent",
    "eventTime": "2021-05-27T13:00:00Z",
    "eventTimeZoneOffset": "+01:00",
    "epcList": ["urn:epc:id:sgtin:0614141.107346.2017"],
    "action": "OBSERVE",
    "bizStep": "shipping",
    "disposition": "in_transit",
    "readPoint": {"id": "urn:epc:id:sgln:0614141.07346.1234"},
    "bizTransactionList": [
        {"type": "po", "bizTransaction": "urn:epcglobal:cbv:bt:0614141073467:1152"}
    ],
    "example:myField": "Example of a vendor/user extension",
}

OBJECT_EVENT_PREHASH_LINES = [
    "eventType=ObjectEvent",
    "eventTime=2021-05-27T13:00:00.000Z",
    "eventTimeZoneOffset=+01:00",
    "epcList",
    "epc=https://id.gs1.org/01/10614141073464/21/2017",
    "action=OBSERVE",
    "bizStep=https://ref.gs1.org/cbv/BizStep-shipping",
    "disposition=https://ref.gs1.org/cbv/Disp-in_transit",
    "readPoint",
    "id=https://id.gs1.org/414/0614141073467/254/1234",
    "bizTransactionList",
    "type=https://ref.gs1.org/cbv/BTT-po",
    "bizTransaction=urn:epcglobal:cbv:bt:0614141073467:1152",
    "{https://ns.example.com/epcis/}myField=Example of a vendor/user extension",
]

OBJECT_EVENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<epcis:EPCISDocument xmlns:epcis="urn:epcglobal:epcis:xsd:2" xmlns:example="https://ns.example.com/epcis/"
                     schemaVersion="2.0" creationDate="2021-05-27T13:05:00Z">
  <EPCISBody>
    <EventList>
      <ObjectEvent>
        <eventTime>2021-05-27T14:00:00+01:00</eventTime>
        <eventTimeZoneOffset>+01:00</eventTimeZoneOffset>
        <eventID>ni:///sha-256;ignored?ver=CBV2.0</eventID>
        <recordTime>2021-05-27T13:01:00Z</recordTime>
        <epcList>
          <epc>urn:epc:id:sgtin:0614141.107346.2017</epc>
        </epcList>
        <action>OBSERVE</action>
        <bizStep>urn:epcglobal:cbv:bizstep:shipping</bizStep>
        <disposition>urn:epcglobal:cbv:disp:in_transit</disposition>
        <readPoint>
          <id>urn:epc:id:sgln:0614141.07346.1234</id>
        </readPoint>
        <bizTransactionList>
          <bizTransaction type="urn:epcglobal:cbv:btt:po">urn:epcglobal:cbv:bt:0614141073467:1152</bizTransaction>
        </bizTransactionList>
        <example:myField>Example of a vendor/user extension</example:myField>
      </ObjectEvent>
    </EventList>
  </EPCISBody>
</epcis:EPCISDocument>
"""

AGGREGATION_EVENT = {
    "type": "AggregationEvent",
    "eventTime": "2020-06-08T20:11:16+02:00",
    "eventTimeZoneOffset": "+02:00",
    "parentID": "https://id.gs1.org/01/19520010123455/21/22222223333",
    "childEPCs": ["https://id.gs1.org/01/09520001123467/21/10000001001"],
    "action": "DELETE",
    "bizStep": "unpacking",
    "disposition": "in_progress",
    "persistentDisposition": {
        "unset": ["completeness_inferred"],
        "set": ["completeness_verified"],
    },
    "readPoint": {"id": "https://id.gs1.org/414/9529999999993"},
    "bizLocation": {"id": "https://id.gs1.org/414/9529999999993"},
}

AGGREGATION_EVENT_PREHASH = (
    "eventType=AggregationEvent"
    "eventTime=2020-06-08T18:11:16.000Z"
    "eventTimeZoneOffset=+02:00"
    "parentID=https://id.gs1.org/01/19520010123455/21/22222223333"
    "childEPCsepc=https://id.gs1.org/01/09520001123467/21/10000001001"
    "action=DELETE"
    "bizStep=https://ref.gs1.org/cbv/BizStep-unpacking"
    "disposition=https://ref.gs1.org/cbv/Disp-in_progress"
    "persistentDisposition"
    "set=https://ref.gs1.org/cbv/Disp-completeness_verified"
    "unset=https://ref.gs1.org/cbv/Disp-completeness_inferred"
    "readPointid=https://id.gs1.org/414/9529999999993"
    "bizLocationid=https://id.gs1.org/414/9529999999993"
)

SENSOR_EVENT = {
    "type": "ObjectEvent",
    "eventTime": "2021-05-27T13:00:00Z",
    "eventTimeZoneOffset": "+01:00",
    "epcList": ["urn:epc:id:sgtin:0614141.107346.2017"],
    "action": "OBSERVE",
    "bizStep": "sensor_reporting",
    "sensorElementList": [
        {
            "sensorMetadata": {"time": "2021-05-27T12:50:00Z"},
            "sensorReport": [
                {"type": "gs1:Length", "value": -477979.89, "component": "northing", "uom": "MTR"},
                {"type": "Temperature", "value": 26.0, "uom": "CEL"},
            ],
        }
    ],
}

SENSOR_EVENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<epcis:EPCISDocument xmlns:epcis="urn:epcglobal:epcis:xsd:2" schemaVersion="2.0" creationDate="2021-05-27T13:05:00Z">
  <EPCISBody>
    <EventList>
      <ObjectEvent>
        <eventTime>2021-05-27T13:00:00.000Z</eventTime>
        <eventTimeZoneOffset>+01:00</eventTimeZoneOffset>
        <epcList>
          <epc>urn:epc:id:sgtin:0614141.107346.2017</epc>
        </epcList>
        <action>OBSERVE</action>
        <bizStep>urn:epcglobal:cbv:bizstep:sensor_reporting</bizStep>
        <sensorElementList>
          <sensorElement>
            <sensorMetadata time="2021-05-27T12:50:00Z"/>
            <sensorReport type="gs1:Temperature" value="26" uom="CEL"/>
            <sensorReport type="gs1:Length" value="-477979.89" component="northing" uom="MTR"/>
          </sensorElement>
        </sensorElementList>
      </ObjectEvent>
    </EventList>
  </EPCISBody>
</epcis:EPCISDocument>
"""


def document(*events, header_first=True):
    """Build an EPCISDocument JSON string around the given events."""
    header = {
        "@context": EPCIS_CONTEXT,
        "type": "EPCISDocument",
        "schemaVersion": "2.0",
        "creationDate": "2021-05-27T13:05:00.000Z",
    }
    body = {"epcisBody": {"eventList": list(events)}}
    parts = [header, body] if header_first else [body, header]
    merged = {}
    for part in parts:
        merged.update(part)
    return json.dumps(merged)


@pytest.fixture
def object_event():
    return json.loads(json.dumps(OBJECT_EVENT))


@pytest.fixture
def object_event_document():
    return document(OBJECT_EVENT)


@pytest.fixture
def object_event_xml():
    return OBJECT_EVENT_XML


@pytest.fixture
def object_event_prehash():
    return "".join(OBJECT_EVENT_PREHASH_LINES)


@pytest.fixture
def two_event_document_trailing_header():
    return document(OBJECT_EVENT, AGGREGATION_EVENT, header_first=False)
