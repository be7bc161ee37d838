"""Unit tests for the timeline exporters.

WHY: Exported timelines feed other tools (chaptering, caption import).
Invalid JSON or malformed SRT would fail far from here.

HOW: Each formatter runs against documents built from the sample
commentaries. JSON output is validated with jsonschema against the
bundled schema; SRT output is parsed back into blocks.
"""

import json
import re

import jsonschema
import pytest

from speech_sync.core.document import build_document
from speech_sync.formatters import FORMATTERS
from speech_sync.formatters.plain_text import PlainTextFormatter, format_time
from speech_sync.formatters.srt_sentences import SRTSentenceFormatter, srt_timestamp
from speech_sync.formatters.timeline_json import TimelineJSONFormatter, get_schema

_SRT_TIME_RE = re.compile(r"^\d{2}:\d{2}:\d{2},\d{3} --> \d{2}:\d{2}:\d{2},\d{3}$")


@pytest.fixture
def scenario_document(scenario_commentary, scenario_title, scenario_duration):
    return build_document(scenario_commentary, scenario_title, scenario_duration)


@pytest.fixture
def structured_document(structured_commentary):
    return build_document(structured_commentary, "Rates held steady", 75.0)


def _parse_srt(content):
    blocks = []
    for raw in content.strip().split("\n\n"):
        lines = raw.split("\n")
        blocks.append({"seq": int(lines[0]), "timing": lines[1], "text": "\n".join(lines[2:])})
    return blocks


class TestRegistry:
    def test_all_registered(self):
        assert set(FORMATTERS) == {"timeline_json", "plain_text", "srt_sentences"}

    def test_names(self):
        for cls in FORMATTERS.values():
            assert cls().name


class TestBuildDocument:
    def test_estimated_duration(self, structured_commentary):
        document = build_document(structured_commentary, "T")
        assert document.duration > 0
        assert len(document.timeline) == 3

    def test_empty_commentary(self):
        document = build_document("", "T", 30.0)
        assert document.sections == []
        assert document.timeline.is_empty


class TestTimelineJSON:
    def test_schema_valid(self, structured_document):
        outputs = TimelineJSONFormatter().format(structured_document)
        assert len(outputs) == 1
        assert outputs[0].suffix == "-timeline.json"
        assert outputs[0].media_type == "application/json"
        data = json.loads(outputs[0].content)
        jsonschema.validate(instance=data, schema=get_schema())

    def test_content(self, scenario_document):
        data = json.loads(TimelineJSONFormatter().format(scenario_document)[0].content)
        assert data["title"] == "Test"
        assert data["duration"] == 100.0
        assert [s["title"] for s in data["sections"]] == [
            "Key Points", "Impact Analysis", "Future Outlook",
        ]
        first = data["sections"][0]
        assert first["start"] == pytest.approx(data["intro_duration"])
        assert first["sentences"] == [{
            "index": 0,
            "text": "Point A.",
            "start": pytest.approx(first["content_start"]),
            "end": pytest.approx(first["end"]),
        }]

    def test_empty_document(self):
        data = json.loads(TimelineJSONFormatter().format(build_document("", "", 0.0))[0].content)
        assert data["sections"] == []
        assert data["duration"] == 0.0

    def test_schema_rejects_extra_keys(self, scenario_document):
        data = json.loads(TimelineJSONFormatter().format(scenario_document)[0].content)
        data["unexpected"] = True
        with pytest.raises(jsonschema.ValidationError):
            jsonschema.validate(instance=data, schema=get_schema())


class TestPlainText:
    @pytest.mark.parametrize("seconds,expected", [
        (0, "0:00"),
        (5.9, "0:05"),
        (65.4, "1:05"),
        (600, "10:00"),
        (None, "0:00"),
        (float("nan"), "0:00"),
        (float("inf"), "0:00"),
        (-3, "0:00"),
    ])
    def test_format_time(self, seconds, expected):
        assert format_time(seconds) == expected

    def test_table(self, scenario_document):
        output = PlainTextFormatter().format(scenario_document)[0]
        assert output.suffix == "-timeline.txt"
        assert output.media_type == "text/plain"
        lines = output.content.splitlines()
        assert lines[0] == "Title: Test"
        assert lines[1] == "Duration: 1:40 (intro 0:18, outro 0:16)"
        assert "1  0:18   0:31   0:38   Key Points" in lines
        assert "Impact Analysis [0:38]" in lines
        assert "  0:54  Point B." in lines

    def test_no_trailing_whitespace(self, structured_document):
        content = PlainTextFormatter().format(structured_document)[0].content
        assert content.endswith("\n")
        for line in content.splitlines():
            assert line == line.rstrip()

    def test_empty_document(self):
        content = PlainTextFormatter().format(build_document("", "", 0.0))[0].content
        assert "No sections to time." in content


class TestSRTSentences:
    def test_timestamp(self):
        assert srt_timestamp(0) == "00:00:00,000"
        assert srt_timestamp(61.5) == "00:01:01,500"
        assert srt_timestamp(3723.004) == "01:02:03,004"
        assert srt_timestamp(-1) == "00:00:00,000"

    def test_scenario_cues(self, scenario_document):
        output = SRTSentenceFormatter().format(scenario_document)[0]
        assert output.suffix == "-sentences.srt"
        assert output.media_type == "application/x-subrip"
        blocks = _parse_srt(output.content)
        assert [b["text"] for b in blocks] == [
            "Test",
            "Key Points", "Point A.",
            "Impact Analysis", "Point B.",
            "Future Outlook", "Point C.",
        ]
        assert [b["seq"] for b in blocks] == list(range(1, 8))
        for block in blocks:
            assert _SRT_TIME_RE.match(block["timing"])
        assert blocks[0]["timing"].startswith("00:00:00,000 --> 00:00:18,434")

    def test_multiline_sentences_flattened(self, structured_document):
        blocks = _parse_srt(SRTSentenceFormatter().format(structured_document)[0].content)
        assert all("\n" not in b["text"] for b in blocks)
        assert "Exporters benefit from a firmer dollar." in [b["text"] for b in blocks]

    def test_empty_document(self):
        assert SRTSentenceFormatter().format(build_document("", "", 0.0))[0].content == ""
