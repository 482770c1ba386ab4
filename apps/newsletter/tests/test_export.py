"""Tests for HTML and plain-text export."""

from newsletter_agent.document import Document, OpeningHook, Recommendation, Recommendations, StorySection, WordOfTheDay
from newsletter_agent.export import render_issue_html, render_issue_text, section_html, section_plain_text
from newsletter_agent.games import GAME_TEMPLATES
from newsletter_agent.section_parsers import parse_section

from conftest import SAMPLE_RESPONSES


def _issue(today) -> Document:
    document = Document.new()
    for key in ("opening_hook", "lead_story", "statistic", "quick_hits", "word_of_the_day"):
        document.sections[key] = parse_section(key, SAMPLE_RESPONSES[key], today)
    return document


class TestHtml:
    def test_standalone_page(self, today):
        html = render_issue_html(_issue(today))

        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Stem Cell Patch Restores Heart Function in Trial</title>" in html
        assert 'href="https://www.nature.com/articles/heart-patch"' in html
        assert "<strong>phase 2</strong>" in html
        assert "{{LINK:" not in html

    def test_empty_sections_are_skipped(self):
        assert section_html("lead_story", StorySection()) == ""
        assert section_html("opening_hook", OpeningHook()) == ""

    def test_recommendation_link_text_with_token_characters(self):
        pick = Recommendation(prefix="Read", link_text="Cells | {aging}", url="https://example.com/r?a=1&b=2")

        html = section_html("recommendations", Recommendations(read=pick))

        assert 'href="https://example.com/r?a=1&amp;b=2"' in html
        assert ">Cells | {aging}</a>" in html
        assert "{{LINK:" not in html

    def test_game_included(self, today):
        html = render_issue_html(_issue(today), GAME_TEMPLATES[0])

        assert GAME_TEMPLATES[0].title in html


class TestPlainText:
    def test_section_has_no_markup(self, today):
        text = section_plain_text(_issue(today), "lead_story")

        assert text.startswith("Stem Cell Patch Restores Heart Function in Trial")
        assert "{{LINK:" not in text
        assert "**" not in text
        assert "(Nature)" in text

    def test_word_of_the_day(self):
        document = Document.new()
        document.sections["word_of_the_day"] = WordOfTheDay(word="Qi", definition="Vital energy.")

        assert section_plain_text(document, "word_of_the_day") == "Qi: Vital energy."

    def test_issue_skips_empty_sections(self):
        document = Document.new()
        document.sections["opening_hook"] = OpeningHook(content="Hello **there**")

        assert render_issue_text(document) == "Hello there"
