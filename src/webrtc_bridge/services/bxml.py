"""Voice-instruction (BXML) documents returned to call-control webhooks."""

import xml.etree.ElementTree as ET
from typing import Optional

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
MEDIA_TYPE = "application/xml"


class BxmlResponse:
    """Builder for a ``<Response>`` verb document."""

    def __init__(self):
        self._root = ET.Element("Response")

    def speak_sentence(self, sentence: str) -> "BxmlResponse":
        ET.SubElement(self._root, "SpeakSentence").text = sentence
        return self

    def pause(self, duration: int) -> "BxmlResponse":
        ET.SubElement(self._root, "Pause", duration=str(duration))
        return self

    def bridge(
        self,
        target_call_id: str,
        bridge_complete_url: Optional[str] = None,
        bridge_target_complete_url: Optional[str] = None,
    ) -> "BxmlResponse":
        """Join the executing call to ``target_call_id``."""
        attributes = {}
        if bridge_complete_url:
            attributes["bridgeCompleteUrl"] = bridge_complete_url
        if bridge_target_complete_url:
            attributes["bridgeTargetCompleteUrl"] = bridge_target_complete_url
        ET.SubElement(self._root, "Bridge", attributes).text = target_call_id
        return self

    def hangup(self) -> "BxmlResponse":
        ET.SubElement(self._root, "Hangup")
        return self

    @property
    def verbs(self) -> list[str]:
        return [child.tag for child in self._root]

    def to_bxml(self) -> str:
        return XML_DECLARATION + ET.tostring(self._root, encoding="unicode")


def hold(sentence: str, duration: int) -> str:
    """Speak, then keep the call alive while the other leg is set up."""
    return BxmlResponse().speak_sentence(sentence).pause(duration).to_bxml()


def bridge_now(
    sentence: str,
    target_call_id: str,
    bridge_complete_url: Optional[str] = None,
    bridge_target_complete_url: Optional[str] = None,
) -> str:
    return (
        BxmlResponse()
        .speak_sentence(sentence)
        .bridge(target_call_id, bridge_complete_url, bridge_target_complete_url)
        .to_bxml()
    )


def pause_only(duration: int) -> str:
    return BxmlResponse().pause(duration).to_bxml()


def unavailable(sentence: str) -> str:
    return BxmlResponse().speak_sentence(sentence).hangup().to_bxml()
