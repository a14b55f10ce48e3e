# ABOUTME: Unit tests for the flat XML event stream built on lxml.
# ABOUTME: Validates local names, text coalescing, empty-element detection, BOM and errors.

import pytest

from metamend.formats.xml_events import (
    EndTag,
    StartTag,
    Text,
    XmlEventError,
    local_name,
    read_xml_events,
    strip_bom,
)


class TestLocalName:
    """Tests for local_name()."""

    def test_strips_namespace(self) -> None:
        assert local_name("{http://purl.org/dc/elements/1.1/}creator") == "creator"

    def test_plain_name_unchanged(self) -> None:
        assert local_name("meta") == "meta"


class TestReadXmlEvents:
    """Tests for read_xml_events()."""

    def test_events_in_document_order(self) -> None:
        """Start, text and end events come out in document order."""
        events = read_xml_events(b"<a><b>hello</b></a>")
        assert events == [
            StartTag("a"),
            StartTag("b"),
            Text("hello"),
            EndTag("b"),
            EndTag("a"),
        ]

    def test_namespaces_are_stripped(self) -> None:
        """Element names and attribute keys are local names."""
        events = read_xml_events(
            b'<p xmlns:dc="http://purl.org/dc/elements/1.1/" '
            b'xmlns:opf="http://www.idpf.org/2007/opf">'
            b'<dc:creator opf:role="aut">X</dc:creator></p>'
        )
        creator = events[1]
        assert isinstance(creator, StartTag)
        assert creator.name == "creator"
        assert creator.attrs == {"role": "aut"}

    def test_blank_text_is_dropped(self) -> None:
        """Whitespace between elements produces no Text events."""
        events = read_xml_events(b"<a>\n  <b/>\n</a>")
        assert not any(isinstance(event, Text) for event in events)

    def test_text_is_stripped(self) -> None:
        events = read_xml_events(b"<a>  Jane Doe \n</a>")
        assert Text("Jane Doe") in events

    def test_entities_and_cdata_are_one_text(self) -> None:
        """Character data split by entities or CDATA is coalesced."""
        events = read_xml_events(b"<a>Tom &amp; <![CDATA[Jerry]]></a>")
        texts = [event for event in events if isinstance(event, Text)]
        assert texts == [Text("Tom & Jerry")]

    def test_self_closing_element_is_empty(self) -> None:
        events = read_xml_events(b'<a><meta name="x" content="y"/></a>')
        assert events[1] == StartTag("meta", {"name": "x", "content": "y"}, empty=True)

    def test_element_with_text_is_not_empty(self) -> None:
        events = read_xml_events(b"<a><meta>text</meta></a>")
        assert events[1] == StartTag("meta", {}, empty=False)

    def test_element_with_children_is_not_empty(self) -> None:
        events = read_xml_events(b"<a><b/></a>")
        assert events[0] == StartTag("a", {}, empty=False)

    def test_leading_bom_is_ignored(self) -> None:
        events = read_xml_events(b"\xef\xbb\xbf<a>x</a>")
        assert events[0] == StartTag("a")

    def test_malformed_xml_raises(self) -> None:
        with pytest.raises(XmlEventError):
            read_xml_events(b"<a><b></a>")

    def test_not_xml_at_all_raises(self) -> None:
        with pytest.raises(XmlEventError):
            read_xml_events(b"this is not xml")


class TestStripBom:
    """Tests for strip_bom()."""

    def test_removes_utf8_bom(self) -> None:
        assert strip_bom(b"\xef\xbb\xbf<x/>") == b"<x/>"

    def test_leaves_other_data_alone(self) -> None:
        assert strip_bom(b"<x/>") == b"<x/>"
