"""Locate named CV sections by header keywords on line boundaries."""
from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "experience": (
        "experience",
        "work experience",
        "employment",
        "professional experience",
        "work history",
        "career history",
        "job history",
        "employment history",
    ),
    "education": (
        "education",
        "academic background",
        "qualifications",
        "degrees",
        "academic qualifications",
        "educational background",
        "academic history",
    ),
    "projects": (
        "projects",
        "project experience",
        "personal projects",
        "key projects",
        "technical projects",
        "software projects",
        "portfolio",
    ),
    "certifications": (
        "certifications",
        "certificates",
        "professional certifications",
        "technical certifications",
        "certification",
        "licenses",
    ),
    "publications": (
        "publications",
        "research papers",
        "papers",
        "journal articles",
        "conference papers",
        "published works",
        "research",
    ),
    "languages": (
        "languages",
        "language skills",
        "linguistic skills",
        "language proficiency",
        "foreign languages",
        "spoken languages",
    ),
}

# Any of these starts a new section and ends the current one.
MAJOR_SECTION_HEADERS = (
    "experience",
    "work experience",
    "education",
    "skills",
    "technical skills",
    "projects",
    "certifications",
    "publications",
    "languages",
    "references",
    "awards",
    "summary",
    "objective",
    "interests",
    "hobbies",
    "achievements",
    "courses",
    "coursework",
    "volunteering",
    "links",
    "portfolio",
    "contact",
)

# Lines right after a header that may not end the section (sub-headers, repeated titles).
HEADER_GRACE_LINES = 2


def _header_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"^\s*({alternatives})\s*:?\s*$", re.IGNORECASE)


_SECTION_PATTERNS = {name: _header_pattern(kws) for name, kws in SECTION_KEYWORDS.items()}
_MAJOR_PATTERN = _header_pattern(MAJOR_SECTION_HEADERS)


def extract_section(text: str, pattern: re.Pattern[str]) -> str:
    """Text from the first header line matching pattern to the next major header (or end)."""
    if not text:
        return ""
    lines = text.split("\n")
    start = next((i for i, line in enumerate(lines) if pattern.match(line.strip())), -1)
    if start == -1:
        return ""
    end = len(lines) - 1
    for i in range(start + 1, len(lines)):
        if i > start + HEADER_GRACE_LINES and _MAJOR_PATTERN.match(lines[i].strip()):
            end = i - 1
            break
    return "\n".join(lines[start : end + 1]).strip()


def locate_sections(text: str) -> dict[str, str]:
    """Every known section name mapped to its text ("" when the header is absent)."""
    sections = {name: extract_section(text, pattern) for name, pattern in _SECTION_PATTERNS.items()}
    found = [name for name, body in sections.items() if body]
    logger.debug("sections located", extra={"sections_found": found})
    return sections


def has_sections(sections: dict[str, str] | None) -> bool:
    return bool(sections) and any(v and v.strip() for v in sections.values())
