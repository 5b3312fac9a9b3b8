"""Shared CoT sample buffers."""

import pytest

DECLARATION = '<?xml version="1.0" encoding="utf-8" standalone="yes"?>'

# Bytes a radio link may leave in front of the document.
NOISE = "∆ Ω8(€'BE»⁄¸º¿®“¿®“° h¥˚"

SAMPLE_XML = (
    DECLARATION
    + '<event version="2.0" uid="S-1-5-21-2515255310-331139352-785488330-3297"'
    ' type="a-f-G-E-V-A" time="2022-12-22T18:06:59.36Z" start="2022-12-22T18:06:59.36Z"'
    ' stale="2022-12-22T18:08:14.36Z" how="h-e">'
    '<point lat="31.5990919461411" lon="-81.7768698985248" hae="9999999" ce="9999999" le="9999999"/>'
    "<detail>"
    '<takv version="4.1.0.231" platform="WinTAK-CIV" os="Microsoft Windows 10 Pro"'
    ' device="Dell Inc. XPS 15 9510"/>'
    '<contact callsign="ASEIRS" endpoint="tcpsrcreply:4242:srctcp" xmppUsername=""/>'
    '<uid Droid="BIDDLE"/>'
    '<precisionlocation altsrc=" ? ? ? " geopointsrc="USER"/>'
    '<uid Droid="ASEIRS"/><__group name="Blue" role="HQ"/><status battery="100"/>'
    '<track course="0.00000000" speed="0.00000000"/></detail></event>'
)

ROUTE_XML = (
    DECLARATION
    + '<event version="2.0" uid="route-7f3a" type="a-n-G" time="2023-04-01T12:00:00.00Z"'
    ' start="2023-04-01T12:00:00.00Z" stale="2023-04-02T12:00:00.00Z" how="h-c">'
    '<point lat="34.911072" lon="-85.754034" hae="0" ce="9999999" le="9999999"/>'
    "<detail>"
    '<link uid="wp-1" callsign="CP1" type="b-m-p-w" point="34.911072,-85.754034" relation="c"/>'
    '<link uid="wp-2" callsign="CP2" type="b-m-p-w" point="34.92,-85.76" relation="c"/>'
    '<strokeColor value="-1"/>'
    '<color argb="-16776961"/>'
    '<usericon iconsetpath="COT_MAPPING_SPOTMAP/b-m-p-s-m/-16776961"/>'
    "<remarks>Route to objective</remarks>"
    '<link_attr color="-1" method="Driving" direction="Infil"/>'
    "<__routeinfo><__navcues/></__routeinfo>"
    "</detail></event>"
)


def make_event_xml(point: str = '<point lat="1.5" lon="2.5" hae="0" ce="10" le="10"/>',
                   detail: str = "", **attributes: str) -> str:
    """Build a minimal event document, overriding event attributes as needed."""
    attrs = {
        "version": "2.0",
        "uid": "unit-1",
        "type": "a-h-A",
        "time": "2023-01-01T00:00:00.00Z",
        "start": "2023-01-01T00:00:00.00Z",
        "stale": "2023-01-01T00:05:00.00Z",
        "how": "m-g",
    }
    attrs.update(attributes)
    rendered = " ".join(f'{k}="{v}"' for k, v in attrs.items())
    return f"{DECLARATION}<event {rendered}>{point}{detail}</event>"


@pytest.fixture
def sample_xml() -> str:
    return SAMPLE_XML


@pytest.fixture
def noisy_buffer() -> str:
    return NOISE + SAMPLE_XML


@pytest.fixture
def route_xml() -> str:
    return ROUTE_XML
