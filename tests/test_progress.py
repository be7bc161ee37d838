"""Unit tests for progress mapping and sentence/word highlighting.

WHY: The reading view overwrites its highlight state from every tick.
A mapper that jumps backwards or mislabels the intro as section 0
produces visible flicker.

HOW: Phase boundaries on the reference scenario, a monotonicity sweep
over the whole duration, and weighted sentence/word lookups with
hand-computed weights.
"""

import pytest

from speech_sync.core.ir import (
    HighlightPosition,
    Intro,
    ReadingContent,
    ReadingHeader,
    Stopped,
    Timeline,
)
from speech_sync.core.progress import (
    locate_highlight,
    locate_highlight_at,
    locate_word,
    map_progress,
    split_sentences,
)
from speech_sync.core.segmenter import segment_commentary
from speech_sync.core.timeline import build_timeline


@pytest.fixture
def scenario(scenario_commentary, scenario_title, scenario_duration):
    sections = segment_commentary(scenario_commentary)
    return sections, build_timeline(sections, scenario_duration, scenario_title)


def _order_key(progress):
    return (progress.section_index, 0 if progress.is_reading_header else 1, progress.content_progress)


class TestMapProgress:
    def test_before_intro_end(self, scenario):
        _, timeline = scenario
        progress = map_progress(0.0, timeline)
        assert isinstance(progress, Intro)
        assert progress.section_index == -1
        assert progress.is_reading_header is True

    def test_at_intro_duration_reads_first_header(self, scenario):
        _, timeline = scenario
        progress = map_progress(timeline.intro_duration, timeline)
        assert isinstance(progress, ReadingHeader)
        assert progress.section_index == 0
        assert progress.is_reading_header is True

    def test_content_midpoint(self, scenario):
        _, timeline = scenario
        entry = timeline[1]
        progress = map_progress((entry.content_start + entry.end) / 2, timeline)
        assert isinstance(progress, ReadingContent)
        assert progress.section_index == 1
        assert progress.is_reading_header is False
        assert progress.content_progress == pytest.approx(0.5)

    def test_section_boundary_belongs_to_next(self, scenario):
        _, timeline = scenario
        progress = map_progress(timeline[1].start, timeline)
        assert isinstance(progress, ReadingHeader)
        assert progress.section_index == 1

    def test_outro_holds_last_section_complete(self, scenario):
        _, timeline = scenario
        progress = map_progress(95.0, timeline)
        assert isinstance(progress, ReadingContent)
        assert progress.section_index == 2
        assert progress.content_progress == 1.0

    def test_carries_time_and_duration(self, scenario):
        _, timeline = scenario
        progress = map_progress(42.0, timeline)
        assert progress.current_time == 42.0
        assert progress.duration == 100.0

    def test_empty_timeline_is_stopped(self):
        progress = map_progress(5.0, Timeline.empty(10.0))
        assert isinstance(progress, Stopped)
        assert progress.section_index == -1

    def test_intro_override(self):
        progress = map_progress(5.0, Timeline.empty(10.0), intro_duration=8.0)
        assert isinstance(progress, Intro)

    def test_to_dict_is_flat(self, scenario):
        _, timeline = scenario
        data = map_progress(timeline[0].start, timeline).to_dict()
        assert data["kind"] == "reading_header"
        assert data["section_index"] == 0
        assert data["is_reading_header"] is True
        assert data["content_progress"] == 0.0

    def test_monotonic_sweep(self, scenario):
        _, timeline = scenario
        keys = [_order_key(map_progress(step * 0.25, timeline)) for step in range(0, 401)]
        assert keys == sorted(keys)

    def test_intro_never_has_section(self, scenario):
        _, timeline = scenario
        t = 0.0
        while t < timeline.intro_duration:
            assert map_progress(t, timeline).section_index == -1
            t += 0.5


class TestSplitSentences:
    def test_terminators(self):
        assert split_sentences("A. B! C? D") == ["A.", "B!", "C?", "D"]

    def test_decimal_points_do_not_split(self):
        assert split_sentences("Rates at 5.25%. Next.") == ["Rates at 5.25%.", "Next."]

    def test_empty(self):
        assert split_sentences("") == []
        assert split_sentences(None) == []
        assert split_sentences("   ") == []


class TestLocateHighlight:
    # "One two." = 13.5, "Three four." = 16.5; "Three" = 5.5, "four." = 10

    def test_start(self):
        assert locate_highlight("One two. Three four.", 0.0) == HighlightPosition(0, 0)

    def test_second_sentence_first_word(self):
        assert locate_highlight("One two. Three four.", 0.5) == HighlightPosition(1, 0)

    def test_second_sentence_second_word(self):
        assert locate_highlight("One two. Three four.", 0.9) == HighlightPosition(1, 1)

    def test_end_clamps_to_last_word(self):
        assert locate_highlight("Point A.", 1.0) == HighlightPosition(0, 1)

    def test_progress_clamped(self):
        assert locate_highlight("Point A.", 7.0) == locate_highlight("Point A.", 1.0)
        assert locate_highlight("Point A.", -1.0) == HighlightPosition(0, 0)

    def test_empty_content(self):
        assert locate_highlight("", 0.5) == HighlightPosition.none()
        assert locate_highlight(None, 0.5) == HighlightPosition(-1, -1)

    def test_word_zero_for_non_positive_weight(self):
        assert locate_word("alpha beta", 0.0) == 0
        assert locate_word("alpha beta", -3.0) == 0
        assert locate_word("", 4.0) == 0


class TestLocateHighlightAt:
    def test_inside_content(self, scenario):
        sections, timeline = scenario
        entry = timeline[1]
        progress, position = locate_highlight_at(entry.content_start + 0.1, sections, timeline)
        assert progress.section_index == 1
        assert position == HighlightPosition(0, 0)

    def test_header_has_no_highlight(self, scenario):
        sections, timeline = scenario
        _, position = locate_highlight_at(timeline[0].start, sections, timeline)
        assert position == HighlightPosition.none()

    def test_intro_has_no_highlight(self, scenario):
        sections, timeline = scenario
        progress, position = locate_highlight_at(1.0, sections, timeline)
        assert isinstance(progress, Intro)
        assert position == HighlightPosition.none()
