"""Where: src/mbapi/platform/musicbrainz/xml_metadata.py
What: Builders for the MMD-2 XML body accepted by ISRC submissions.
Why: The legacy WS2 POST endpoint only takes XML.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Final

MMD_NAMESPACE: Final[str] = "http://musicbrainz.org/ns/mmd-2.0#"


@dataclass
class XmlIsrcList:
    items: list[str] = field(default_factory=list)

    def push_isrc(self, isrc: str) -> None:
        self.items.append(isrc)

    def to_element(self) -> ET.Element | None:
        if not self.items:
            return None
        element = ET.Element("isrc-list", {"count": str(len(self.items))})
        for isrc in self.items:
            _ = ET.SubElement(element, "isrc", {"id": isrc})
        return element


@dataclass
class XmlRecording:
    id: str
    isrc_list: XmlIsrcList = field(default_factory=XmlIsrcList)

    def to_element(self) -> ET.Element:
        element = ET.Element("recording", {"id": self.id})
        isrcs = self.isrc_list.to_element()
        if isrcs is not None:
            element.append(isrcs)
        return element


@dataclass
class XmlMetadata:
    """Root ``<metadata>`` document holding a recording list."""

    recordings: list[XmlRecording] = field(default_factory=list)

    def push_recording(self, recording_id: str) -> XmlRecording:
        recording = XmlRecording(recording_id)
        self.recordings.append(recording)
        return recording

    def to_xml(self) -> str:
        """Serialize with an XML declaration and no pretty printing."""

        root = ET.Element("metadata", {"xmlns": MMD_NAMESPACE})
        recording_list = ET.SubElement(root, "recording-list")
        for recording in self.recordings:
            recording_list.append(recording.to_element())
        body = ET.tostring(root, encoding="unicode")
        return '<?xml version="1.0" encoding="UTF-8"?>' + body


__all__ = [
    "MMD_NAMESPACE",
    "XmlIsrcList",
    "XmlMetadata",
    "XmlRecording",
]
