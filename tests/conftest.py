from datetime import datetime, timezone

import pytest

from forecast.document import MarketDocument, Period, Point, TimeInterval, TimeSeries

T0 = datetime(2023, 8, 14, 0, 0, tzinfo=timezone.utc)

LOAD_XML = """<?xml version="1.0" encoding="utf-8"?>
<GL_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-6:generationloaddocument:3:0">
    <mRID>test123</mRID>
    <revisionNumber>1</revisionNumber>
    <type>A65</type>
    <process.processType>A01</process.processType>
    <sender_MarketParticipant.mRID codingScheme="A01">10X1001A1001A450</sender_MarketParticipant.mRID>
    <sender_MarketParticipant.marketRole.type>A32</sender_MarketParticipant.marketRole.type>
    <receiver_MarketParticipant.mRID codingScheme="A01">10X1001A1001A450</receiver_MarketParticipant.mRID>
    <receiver_MarketParticipant.marketRole.type>A33</receiver_MarketParticipant.marketRole.type>
    <createdDateTime>2026-01-07T19:26:41Z</createdDateTime>
    <time_Period.timeInterval>
        <start>2023-08-14T00:00Z</start>
        <end>2023-08-14T03:00Z</end>
    </time_Period.timeInterval>
    <TimeSeries>
        <mRID>1</mRID>
        <businessType>A04</businessType>
        <objectAggregation>A01</objectAggregation>
        <outBiddingZone_Domain.mRID codingScheme="A01">10YCZ-CEPS-----N</outBiddingZone_Domain.mRID>
        <quantity_Measure_Unit.name>MAW</quantity_Measure_Unit.name>
        <curveType>A01</curveType>
        <Period>
            <timeInterval>
                <start>2023-08-14T00:00Z</start>
                <end>2023-08-14T03:00Z</end>
            </timeInterval>
            <resolution>PT60M</resolution>
            <Point><position>1</position><quantity>4933</quantity></Point>
            <Point><position>2</position><quantity>4800</quantity></Point>
            <Point><position>3</position><quantity>4700</quantity></Point>
        </Period>
    </TimeSeries>
</GL_MarketDocument>
"""

GENERATION_XML = """<?xml version="1.0" encoding="utf-8"?>
<GL_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-6:generationloaddocument:3:0">
    <mRID>gen456</mRID>
    <revisionNumber>1</revisionNumber>
    <type>A71</type>
    <process.processType>A01</process.processType>
    <createdDateTime>2026-01-07T19:26:41Z</createdDateTime>
    <time_Period.timeInterval>
        <start>2023-08-14T00:00Z</start>
        <end>2023-08-14T03:00Z</end>
    </time_Period.timeInterval>
    <TimeSeries>
        <mRID>1</mRID>
        <businessType>A01</businessType>
        <objectAggregation>A08</objectAggregation>
        <inBiddingZone_Domain.mRID codingScheme="A01">10YCZ-CEPS-----N</inBiddingZone_Domain.mRID>
        <quantity_Measure_Unit.name>MAW</quantity_Measure_Unit.name>
        <curveType>A01</curveType>
        <Period>
            <timeInterval>
                <start>2023-08-14T00:00Z</start>
                <end>2023-08-14T03:00Z</end>
            </timeInterval>
            <resolution>PT60M</resolution>
            <Point><position>1</position><quantity>3000</quantity></Point>
            <Point><position>2</position><quantity>3500</quantity></Point>
            <Point><position>3</position><quantity>2000</quantity></Point>
        </Period>
    </TimeSeries>
    <TimeSeries>
        <mRID>2</mRID>
        <businessType>A01</businessType>
        <objectAggregation>A08</objectAggregation>
        <inBiddingZone_Domain.mRID codingScheme="A01">10YCZ-CEPS-----N</inBiddingZone_Domain.mRID>
        <quantity_Measure_Unit.name>MAW</quantity_Measure_Unit.name>
        <curveType>A01</curveType>
        <Period>
            <timeInterval>
                <start>2023-08-14T00:00Z</start>
                <end>2023-08-14T03:00Z</end>
            </timeInterval>
            <resolution>PT60M</resolution>
            <Point><position>1</position><quantity>2000</quantity></Point>
            <Point><position>2</position><quantity>2000</quantity></Point>
            <Point><position>3</position><quantity>2000</quantity></Point>
        </Period>
    </TimeSeries>
</GL_MarketDocument>
"""

ACK_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Acknowledgement_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-1:acknowledgementdocument:7:0">
    <mRID>ack-1</mRID>
    <createdDateTime>2026-01-07T19:26:41Z</createdDateTime>
    <Reason>
        <code>999</code>
        <text>No matching data found for Data item Day-ahead Total Load Forecast</text>
    </Reason>
</Acknowledgement_MarketDocument>
"""


def _make_period(start, resolution, quantities, positions=None):
    positions = positions or range(1, len(quantities) + 1)
    return Period(
        time_interval=TimeInterval(start=start, end=start),
        resolution=resolution,
        points=tuple(Point(position=p, quantity=q) for p, q in zip(positions, quantities)),
    )


def _make_document(*periods, doc_type="A71"):
    return MarketDocument(
        time_series=tuple(TimeSeries(period=p, mrid=str(i)) for i, p in enumerate(periods, start=1)),
        mrid="doc",
        doc_type=doc_type,
    )


@pytest.fixture
def make_period():
    return _make_period


@pytest.fixture
def make_document():
    return _make_document


@pytest.fixture
def load_xml():
    return LOAD_XML


@pytest.fixture
def generation_xml():
    return GENERATION_XML


@pytest.fixture
def ack_xml():
    return ACK_XML
