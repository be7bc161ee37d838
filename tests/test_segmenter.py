"""Unit tests for commentary segmentation.

WHY: The narrator reads exactly three sections. If the segmenter splits
differently than the narration, every section marker is off.

HOW: Structured header splits, paragraph fallback, padding, folding,
and degenerate inputs.
"""

from speech_sync.config import SECTION_HEADERS
from speech_sync.core.segmenter import find_headers, segment_commentary, split_paragraphs


class TestFindHeaders:
    def test_all_headers_in_order(self, scenario_commentary):
        spans = find_headers(scenario_commentary)
        assert spans is not None
        assert len(spans) == 3
        assert spans[0] == (0, len("Key Points"))
        starts = [s for s, _ in spans]
        assert starts == sorted(starts)

    def test_missing_header_returns_none(self):
        assert find_headers("Key Points foo. Impact Analysis bar.") is None

    def test_out_of_order_headers_return_none(self):
        text = "Future Outlook a. Key Points b. Impact Analysis c."
        assert find_headers(text) is None

    def test_case_insensitive(self):
        assert find_headers("key points a. IMPACT ANALYSIS b. future outlook c.") is not None


class TestStructuredSplit:
    def test_scenario_sections(self, scenario_commentary):
        sections = segment_commentary(scenario_commentary)
        assert [s.title for s in sections] == list(SECTION_HEADERS)
        assert [s.content for s in sections] == ["Point A.", "Point B.", "Point C."]

    def test_multiline_content_trimmed(self, structured_commentary):
        sections = segment_commentary(structured_commentary)
        assert sections[0].content == (
            "The central bank held rates at 5.25%. Markets had expected a cut!"
        )
        assert sections[1].content.startswith("Borrowing costs")
        assert sections[1].content.endswith("firmer dollar.")
        assert sections[2].content == (
            "Analysts now see the first cut in Q3. Will inflation cooperate?"
        )

    def test_covers_source_text_apart_from_headers(self, scenario_commentary):
        sections = segment_commentary(scenario_commentary)
        rebuilt = " ".join("{} {}".format(s.title, s.content) for s in sections)
        assert rebuilt == scenario_commentary

    def test_titles_are_canonical_not_source_casing(self):
        sections = segment_commentary("KEY POINTS a. impact analysis b. Future outlook c.")
        assert [s.title for s in sections] == list(SECTION_HEADERS)

    def test_preamble_dropped(self):
        sections = segment_commentary("Intro words. Key Points a. Impact Analysis b. Future Outlook c.")
        assert sections[0].content == "a."


class TestParagraphFallback:
    def test_three_paragraphs(self, paragraph_commentary):
        sections = segment_commentary(paragraph_commentary)
        assert [s.title for s in sections] == list(SECTION_HEADERS)
        assert sections[0].content == "Shares rallied after the earnings beat."
        assert sections[2].content == "Investors will watch margins next quarter."

    def test_extra_paragraphs_fold_into_last(self):
        sections = segment_commentary("One.\n\nTwo.\n\nThree.\n\nFour.")
        assert len(sections) == 3
        assert sections[2].content == "Three.\n\nFour."

    def test_fewer_paragraphs_padded(self):
        sections = segment_commentary("Only one paragraph here.")
        assert len(sections) == 3
        assert sections[0].content == "Only one paragraph here."
        assert sections[1].content == ""
        assert sections[2].content == ""

    def test_whitespace_only_lines_count_as_breaks(self):
        assert split_paragraphs("a\n   \nb") == ["a", "b"]


class TestDegenerateInput:
    def test_empty(self):
        sections = segment_commentary("")
        assert len(sections) == 3
        assert all(s.content == "" for s in sections)

    def test_none(self):
        sections = segment_commentary(None)
        assert len(sections) == 3
        assert all(s.content == "" for s in sections)
