"""
Tests for IGC parsing and point distances.
"""

import math
from datetime import date

import httpx
import pytest

from paragliding.app.core.exceptions import ParseFailureError
from paragliding.app.domain.tracks.igc_parser import (
    GeoPoint,
    IgcParser,
    haversine_distance,
    parse_igc,
)

SAMPLE_IGC = """AXXXABC FLIGHT:1
HFDTE190216
HFPLTPILOTINCHARGE: Miguel Angel Gordillo
HFGTYGLIDERTYPE:RV8
HFGIDGLIDERID:EC-XLL
B1101355206343N00006198WA0058700558
B1101455206259N00006295WA0059300556
B1101555206300S00006061EV0060300576
"""

ONE_DEGREE_KM = 6371.0 * math.pi / 180


def test_haversine_along_equator():
    assert haversine_distance(0, 0, 0, 1) == pytest.approx(ONE_DEGREE_KM)
    assert haversine_distance(10, 20, 10, 20) == 0.0


def test_point_distance_is_symmetric():
    a = GeoPoint(52.1, -0.1)
    b = GeoPoint(52.2, 0.1)
    assert a.distance(b) == pytest.approx(b.distance(a))
    assert a.distance(b) > 0


def test_parse_header_records():
    track = parse_igc(SAMPLE_IGC)
    
    assert track.pilot == "Miguel Angel Gordillo"
    assert track.glider == "RV8"
    assert track.glider_id == "EC-XLL"
    assert track.flight_date == date(2016, 2, 19)
    assert track.date_text == "2016-02-19"


def test_parse_fix_records():
    track = parse_igc(SAMPLE_IGC)
    
    assert len(track.points) == 3
    first = track.points[0]
    assert first.lat == pytest.approx(52 + 6.343 / 60)
    assert first.lon == pytest.approx(-(6.198 / 60))
    assert first.valid is True
    assert first.time.hour == 11 and first.time.minute == 1 and first.time.second == 35
    
    third = track.points[2]
    assert third.lat < 0
    assert third.lon > 0
    assert third.valid is False


def test_parse_long_form_date():
    track = parse_igc("HFDTEDATE:010799,01\n")
    assert track.flight_date == date(1999, 7, 1)
    assert track.points == []


def test_parse_rejects_text_without_igc_records():
    with pytest.raises(ValueError):
        parse_igc("<html>not a track</html>\n")


def test_parse_rejects_malformed_fix():
    with pytest.raises(ValueError):
        parse_igc("HFDTE190216\nB11013552XX343N00006198WA0058700558\n")


@pytest.mark.asyncio
async def test_igc_parser_fetches_and_parses():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/flights/a.igc"
        return httpx.Response(200, text=SAMPLE_IGC)
    
    parser = IgcParser(transport=httpx.MockTransport(handler))
    track = await parser.parse("http://tracks.test/flights/a.igc")
    
    assert track.pilot == "Miguel Angel Gordillo"
    assert len(track.points) == 3


@pytest.mark.asyncio
async def test_igc_parser_http_error_is_parse_failure():
    parser = IgcParser(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    
    with pytest.raises(ParseFailureError) as exc_info:
        await parser.parse("http://tracks.test/missing.igc")
    assert exc_info.value.error_code == "ERR_PARSE_FAILURE"


@pytest.mark.asyncio
async def test_igc_parser_bad_content_is_parse_failure():
    parser = IgcParser(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="garbage"))
    )
    
    with pytest.raises(ParseFailureError):
        await parser.parse("http://tracks.test/garbage.igc")
