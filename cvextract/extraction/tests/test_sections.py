"""Keyword section locator."""
from cvextract.extraction.sections import SECTION_KEYWORDS, has_sections, locate_sections

CV = """Ada Lovelace
ada@example.com

Summary
Analyst and writer.

Work Experience:
Skills
Analytical Engines Ltd
Wrote the first program.

EDUCATION
University of London
Skills
Math

Languages
English
French
"""


def test_all_known_sections_are_reported() -> None:
    sections = locate_sections(CV)
    assert set(sections) == set(SECTION_KEYWORDS)
    assert sections["projects"] == ""
    assert sections["publications"] == ""


def test_section_ends_at_next_major_header_after_grace_lines() -> None:
    experience = locate_sections(CV)["experience"]
    # "Skills" right under the header does not end the section.
    assert experience.startswith("Work Experience:")
    assert "Wrote the first program." in experience
    assert "University of London" not in experience


def test_header_match_is_case_insensitive_and_runs_to_end() -> None:
    sections = locate_sections(CV)
    assert sections["education"].splitlines()[:2] == ["EDUCATION", "University of London"]
    assert sections["languages"] == "Languages\nEnglish\nFrench"


def test_header_must_be_whole_line() -> None:
    assert locate_sections("My experience with Python is long\nmore")["experience"] == ""


def test_has_sections() -> None:
    assert not has_sections(None)
    assert not has_sections({"experience": "  "})
    assert has_sections({"experience": "x"})
