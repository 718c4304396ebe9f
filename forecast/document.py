"""
GridSurplus: ENTSO-E GL_MarketDocument model and XML reader.

Wire layout (IEC 62325-451-6, generation/load document)
-------------------------------------------------------
    GL_MarketDocument
      mRID, revisionNumber, type, process.processType
      sender_/receiver_MarketParticipant.mRID (+ marketRole.type)
      createdDateTime
      time_Period.timeInterval/{start,end}
      TimeSeries*                      one per production type / area
        mRID, businessType, objectAggregation, curveType
        inBiddingZone_Domain.mRID | outBiddingZone_Domain.mRID
        quantity_Measure_Unit.name
        Period*
          timeInterval/{start,end}
          resolution                   e.g. PT15M, PT60M
          Point*/{position,quantity}   position is 1-based

A ``TimeSeries`` carrying several ``Period`` blocks is flattened into one
``TimeSeries`` per period, so every series here owns exactly one ``Period``.

Error payloads
--------------
When a query matches nothing (or is malformed) the platform answers with an
``Acknowledgement_MarketDocument`` holding ``Reason/code`` and
``Reason/text``; that is surfaced as ``InvalidResponse``.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from loguru import logger

from forecast.errors import InvalidResponse, XmlParsingError

GL_DOCUMENT_TAG = "GL_MarketDocument"
ACK_DOCUMENT_TAG = "Acknowledgement_MarketDocument"


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Point:
    position: int     # 1-based index inside its Period
    quantity: float   # MW


@dataclass(frozen=True)
class TimeInterval:
    start: str
    end: str


@dataclass(frozen=True)
class Period:
    time_interval: TimeInterval
    resolution: str
    points: tuple[Point, ...] = ()

    @property
    def start(self) -> str:
        return self.time_interval.start


@dataclass(frozen=True)
class DomainId:
    """A market participant or bidding-zone code with its coding scheme."""

    value: str
    coding_scheme: str = ""


@dataclass(frozen=True)
class TimeSeries:
    period: Period
    mrid: str = ""
    business_type: str = ""
    object_aggregation: str = ""
    quantity_measure_unit: str = ""
    curve_type: str = ""
    in_bidding_zone: Optional[DomainId] = None
    out_bidding_zone: Optional[DomainId] = None

    @property
    def domain(self) -> Optional[str]:
        """Bidding-zone code of the series, whichever side the document uses."""
        zone = self.in_bidding_zone or self.out_bidding_zone
        return zone.value if zone else None


@dataclass(frozen=True)
class MarketDocument:
    time_series: tuple[TimeSeries, ...] = ()
    mrid: str = ""
    revision_number: str = ""
    doc_type: str = ""
    process_type: str = ""
    sender_mrid: Optional[DomainId] = None
    sender_role: str = ""
    receiver_mrid: Optional[DomainId] = None
    receiver_role: str = ""
    created_date_time: str = ""
    time_period_interval: Optional[TimeInterval] = field(default=None)

    # ------------------------------------------------------------------
    # Raw (not timestamp-aware) views
    # ------------------------------------------------------------------

    def all_points_with_time(self) -> list[tuple[str, int, float]]:
        """Every raw point as ``(period start, wire position, quantity)``."""
        return [
            (series.period.start, point.position, point.quantity)
            for series in self.time_series
            for point in series.period.points
        ]

    def all_points(self) -> list[tuple[str, float]]:
        return [(start, qty) for start, _pos, qty in self.all_points_with_time()]

    def point_count(self) -> int:
        return sum(len(series.period.points) for series in self.time_series)

    def total_forecast(self) -> float:
        """Sum of every quantity across all series."""
        return sum(p.quantity for s in self.time_series for p in s.period.points)

    def average_forecast(self) -> float:
        count = self.point_count()
        if count == 0:
            return 0.0
        return self.total_forecast() / count

    def min_max(self) -> Optional[tuple[float, float]]:
        """Smallest and largest raw quantity, or None if the document has no points."""
        values = [p.quantity for s in self.time_series for p in s.period.points]
        if not values:
            return None
        return min(values), max(values)


# ---------------------------------------------------------------------------
# XML reader
# ---------------------------------------------------------------------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text(node: ET.Element, path: str, required: bool = True) -> Optional[str]:
    """Text of the first ``path`` match (namespace-agnostic)."""
    query = "/".join(f"{{*}}{part}" for part in path.split("/"))
    value = node.findtext(query)
    if value is None:
        if required:
            raise XmlParsingError(f"missing <{path}> in <{_local(node.tag)}>")
        return None
    return value.strip()


def _domain(node: ET.Element, tag: str) -> Optional[DomainId]:
    el = node.find(f"{{*}}{tag}")
    if el is None:
        return None
    return DomainId(value=(el.text or "").strip(), coding_scheme=el.get("codingScheme", ""))


def _interval(node: ET.Element, tag: str) -> TimeInterval:
    return TimeInterval(start=_text(node, f"{tag}/start"), end=_text(node, f"{tag}/end"))


def _parse_point(node: ET.Element) -> Point:
    raw_pos = _text(node, "position")
    raw_qty = _text(node, "quantity")
    try:
        position = int(raw_pos)
        quantity = float(raw_qty)
    except ValueError as exc:
        raise XmlParsingError(f"bad point position={raw_pos!r} quantity={raw_qty!r}") from exc
    if position < 1:
        raise XmlParsingError(f"point position must be >= 1, got {position}")
    return Point(position=position, quantity=quantity)


def _parse_period(node: ET.Element) -> Period:
    points = [_parse_point(p) for p in node.findall("{*}Point")]
    points.sort(key=lambda p: p.position)
    return Period(
        time_interval=_interval(node, "timeInterval"),
        resolution=_text(node, "resolution"),
        points=tuple(points),
    )


def _parse_time_series(node: ET.Element) -> list[TimeSeries]:
    periods = node.findall("{*}Period")
    if not periods:
        raise XmlParsingError("missing <Period> in <TimeSeries>")

    template = TimeSeries(
        period=_parse_period(periods[0]),
        mrid=_text(node, "mRID", required=False) or "",
        business_type=_text(node, "businessType", required=False) or "",
        object_aggregation=_text(node, "objectAggregation", required=False) or "",
        quantity_measure_unit=_text(node, "quantity_Measure_Unit.name", required=False) or "",
        curve_type=_text(node, "curveType", required=False) or "",
        in_bidding_zone=_domain(node, "inBiddingZone_Domain.mRID"),
        out_bidding_zone=_domain(node, "outBiddingZone_Domain.mRID"),
    )
    return [template] + [replace(template, period=_parse_period(p)) for p in periods[1:]]


def acknowledgement_reason(root: ET.Element) -> str:
    """Flatten every ``Reason`` block of an acknowledgement into one message."""
    reasons = []
    for reason in root.iter():
        if _local(reason.tag) != "Reason":
            continue
        code = _text(reason, "code", required=False)
        text = _text(reason, "text", required=False)
        reasons.append(": ".join(part for part in (code, text) if part))
    return "; ".join(r for r in reasons if r) or "upstream returned an error document"


def parse_document(xml: Union[str, bytes]) -> MarketDocument:
    """
    Parse a GL_MarketDocument body.

    Raises
    ------
    InvalidResponse
        The body is an acknowledgement / error document.
    XmlParsingError
        The body is not XML, has an unexpected root, or lacks a required field.
    """
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as exc:
        raise XmlParsingError(f"malformed XML: {exc}") from exc

    root_tag = _local(root.tag)
    if root_tag == ACK_DOCUMENT_TAG or root.find(".//{*}Reason") is not None:
        raise InvalidResponse(acknowledgement_reason(root))
    if root_tag != GL_DOCUMENT_TAG:
        raise XmlParsingError(f"unexpected root element <{root_tag}>")

    series: list[TimeSeries] = []
    for node in root.findall("{*}TimeSeries"):
        series.extend(_parse_time_series(node))

    interval_node = root.find("{*}time_Period.timeInterval")
    document = MarketDocument(
        time_series=tuple(series),
        mrid=_text(root, "mRID", required=False) or "",
        revision_number=_text(root, "revisionNumber", required=False) or "",
        doc_type=_text(root, "type", required=False) or "",
        process_type=_text(root, "process.processType", required=False) or "",
        sender_mrid=_domain(root, "sender_MarketParticipant.mRID"),
        sender_role=_text(root, "sender_MarketParticipant.marketRole.type", required=False) or "",
        receiver_mrid=_domain(root, "receiver_MarketParticipant.mRID"),
        receiver_role=_text(root, "receiver_MarketParticipant.marketRole.type", required=False) or "",
        created_date_time=_text(root, "createdDateTime", required=False) or "",
        time_period_interval=(
            _interval(root, "time_Period.timeInterval") if interval_node is not None else None
        ),
    )
    logger.debug(
        "Parsed {} document {}: {} series, {} points.",
        document.doc_type or "?", document.mrid or "?",
        len(document.time_series), document.point_count(),
    )
    return document
