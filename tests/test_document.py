import pytest

from forecast.document import MarketDocument, parse_document
from forecast.errors import InvalidResponse, XmlParsingError

MULTI_PERIOD_XML = """<GL_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-6:generationloaddocument:3:0">
    <type>A71</type>
    <TimeSeries>
        <mRID>7</mRID>
        <inBiddingZone_Domain.mRID codingScheme="A01">10YBE----------2</inBiddingZone_Domain.mRID>
        <Period>
            <timeInterval><start>2023-08-14T00:00Z</start><end>2023-08-14T01:00Z</end></timeInterval>
            <resolution>PT15M</resolution>
            <Point><position>2</position><quantity>20.5</quantity></Point>
            <Point><position>1</position><quantity>10</quantity></Point>
        </Period>
        <Period>
            <timeInterval><start>2023-08-14T01:00Z</start><end>2023-08-14T02:00Z</end></timeInterval>
            <resolution>PT60M</resolution>
            <Point><position>1</position><quantity>30</quantity></Point>
        </Period>
    </TimeSeries>
</GL_MarketDocument>
"""


def test_parse_load_forecast(load_xml):
    doc = parse_document(load_xml)
    assert doc.mrid == "test123"
    assert doc.doc_type == "A65"
    assert doc.process_type == "A01"
    assert doc.sender_mrid.value == "10X1001A1001A450"
    assert doc.sender_mrid.coding_scheme == "A01"
    assert doc.receiver_role == "A33"
    assert doc.time_period_interval.start == "2023-08-14T00:00Z"
    assert len(doc.time_series) == 1

    series = doc.time_series[0]
    assert series.business_type == "A04"
    assert series.quantity_measure_unit == "MAW"
    assert series.out_bidding_zone.value == "10YCZ-CEPS-----N"
    assert series.in_bidding_zone is None
    assert series.domain == "10YCZ-CEPS-----N"
    assert series.period.resolution == "PT60M"
    assert series.period.start == "2023-08-14T00:00Z"
    assert series.period.points[0].quantity == 4933.0
    assert [p.position for p in series.period.points] == [1, 2, 3]


def test_parse_accepts_bytes(generation_xml):
    doc = parse_document(generation_xml.encode("utf-8"))
    assert doc.doc_type == "A71"
    assert len(doc.time_series) == 2
    assert doc.time_series[1].domain == "10YCZ-CEPS-----N"


def test_multi_period_series_is_flattened():
    doc = parse_document(MULTI_PERIOD_XML)
    assert len(doc.time_series) == 2
    first, second = doc.time_series
    assert first.mrid == second.mrid == "7"
    assert first.domain == "10YBE----------2"
    # points come back ordered by position
    assert [p.position for p in first.period.points] == [1, 2]
    assert second.period.resolution == "PT60M"
    assert second.period.start == "2023-08-14T01:00Z"


def test_acknowledgement_is_invalid_response(ack_xml):
    with pytest.raises(InvalidResponse) as excinfo:
        parse_document(ack_xml)
    assert "999" in str(excinfo.value)
    assert "No matching data found" in str(excinfo.value)


@pytest.mark.parametrize(
    "body",
    [
        "not xml at all",
        "<GL_MarketDocument><TimeSeries>",
        "<Publication_MarketDocument/>",
    ],
)
def test_malformed_bodies(body):
    with pytest.raises(XmlParsingError):
        parse_document(body)


def test_missing_resolution_is_a_parse_error():
    body = MULTI_PERIOD_XML.replace("<resolution>PT60M</resolution>", "")
    with pytest.raises(XmlParsingError):
        parse_document(body)


def test_bad_quantity_is_a_parse_error():
    body = MULTI_PERIOD_XML.replace("<quantity>30</quantity>", "<quantity>n/a</quantity>")
    with pytest.raises(XmlParsingError):
        parse_document(body)


def test_raw_statistics(generation_xml):
    doc = parse_document(generation_xml)
    assert doc.point_count() == 6
    assert doc.total_forecast() == 14500.0
    assert doc.average_forecast() == pytest.approx(14500.0 / 6)
    assert doc.min_max() == (2000.0, 3500.0)
    assert doc.all_points_with_time()[1] == ("2023-08-14T00:00Z", 2, 3500.0)
    assert doc.all_points()[0] == ("2023-08-14T00:00Z", 3000.0)


def test_raw_statistics_on_empty_document():
    doc = MarketDocument()
    assert doc.min_max() is None
    assert doc.total_forecast() == 0
    assert doc.average_forecast() == 0.0
    assert doc.all_points() == []
