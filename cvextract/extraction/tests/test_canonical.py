"""Canonicalizer: aliases, list coercion, fidelity filters, idempotence."""
from cvextract.extraction.canonical import (
    CanonicalRecord,
    DEFAULT_SKILL_CATEGORY,
    canonicalize,
    empty_to_none,
    summarize_sections,
)

LIST_FIELDS = (
    "work_experience",
    "education",
    "skills",
    "projects",
    "languages",
    "certifications",
    "publications",
    "volunteer",
)


def _messy() -> dict:
    return {
        "personal": {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": "ada@example.com",
            "phone": "",
            "linkedin": "https://linkedin.com/in/ada",
            "github": ["https://github.com/ada", "https://github.com/other"],
            "links": [{"platform": "LinkedIn", "url": "https://linkedin.com/in/ada"}],
        },
        "summary": "Analyst.",
        "experience": [
            {"role": "Engineer", "company": "Analytical Engines Ltd", "startDate": "1842", "current": True},
            {"title": "Consultant", "company": ""},
            {"company": "No Title Inc"},
        ],
        "education": [
            {"degree": "BSc", "institution": "University of London"},
            {"degree": "Graduation Project: Engine", "institution": "University of London"},
            {"degree": "MSc", "institution": ""},
        ],
        "skills": ["Math", {"name": "Python", "category": "Languages"}, {"category": "Tools", "skills": ["Git", 3]}],
        "projects": [{"name": "Notes", "technologies": "Python, Rust"}, {"description": "untitled"}],
        "languages": ["English", {"language": "French", "level": "B2"}, {"name": ""}],
        "certifications": [{"name": "AWS SAA", "issuer": "Amazon", "date": "2021"}, {"name": "Capstone Project X"}, {}],
        "publications": [
            {"title": "Notes on the Engine", "venue": "Scientific Memoirs"},
            {"title": "My App", "publisher": "GitHub"},
            {"title": "Portfolio", "publisher": "vercel.app"},
            {"title": "Live Demo of Thing", "publisher": "ACM"},
            {"title": "No venue"},
        ],
        "volunteer": [{"role": "Mentor", "organization": "Code Club"}],
    }


def test_empty_strings_become_none_recursively() -> None:
    assert empty_to_none({"a": "", "b": ["", "x", {"c": "  "}]}) == {"a": None, "b": [None, "x", {"c": None}]}


def test_empty_input_is_schema_complete() -> None:
    record = canonicalize()
    assert record.title == "Untitled CV"
    assert record.template == "modern"
    assert record.professional_summary == ""
    for field in LIST_FIELDS:
        assert getattr(record, field) == []


def test_non_list_groups_become_empty_lists() -> None:
    record = canonicalize({"workExperience": "lots", "skills": None, "education": 5, "publications": True})
    assert record.work_experience == []
    assert record.skills == []
    assert record.education == []
    assert record.publications == []


def test_lone_entry_or_wrapper_is_not_a_list() -> None:
    record = canonicalize(
        {
            "workExperience": {"company": "Acme", "title": "Eng"},
            "education": {"institution": "MIT"},
            "projects": {"items": [{"name": "Notes"}]},
            "volunteer": {"role": "Mentor", "organization": "Code Club"},
        }
    )
    assert record.work_experience == []
    assert record.education == []
    assert record.projects == []
    assert record.volunteer == []


def test_aliases_and_normalization() -> None:
    record = canonicalize(_messy())
    assert record.personal_info.first_name == "Ada"
    assert record.professional_summary == "Analyst."
    assert [w.company for w in record.work_experience] == ["Analytical Engines Ltd"]
    assert record.work_experience[0].title == "Engineer"
    assert record.work_experience[0].current is True
    assert record.projects[0].title == "Notes"
    assert record.projects[0].technologies == ["Python", "Rust"]
    assert [(l.name, l.proficiency) for l in record.languages] == [
        ("English", "Intermediate"),
        ("French", "B2"),
        ("Unknown", "Intermediate"),
    ]
    assert record.certifications[0].company == "Amazon"
    assert record.certifications[0].start_date == "2021"
    assert [v.organization for v in record.volunteer] == ["Code Club"]


def test_flat_links_are_folded_without_duplicates() -> None:
    links = canonicalize(_messy()).personal_info.links
    assert [(l.label, l.url) for l in links] == [
        ("LinkedIn", "https://linkedin.com/in/ada"),
        ("GitHub", "https://github.com/ada"),
    ]


def test_skills_grouping() -> None:
    skills = canonicalize(_messy()).skills
    assert [(g.category, g.skills) for g in skills] == [
        (DEFAULT_SKILL_CATEGORY, ["Math"]),
        ("Languages", ["Python"]),
        ("Tools", ["Git", "3"]),
    ]


def test_legacy_skill_map() -> None:
    skills = canonicalize({"skills": {"technical": ["Go"], "soft": ["Empathy"]}}).skills
    assert [(g.category, g.skills) for g in skills] == [("Technical", ["Go"]), ("Soft", ["Empathy"])]


def test_fidelity_filters() -> None:
    record = canonicalize(_messy())
    assert [e.degree for e in record.education] == ["BSc"]
    assert [c.name for c in record.certifications] == ["AWS SAA"]
    assert [p.title for p in record.publications] == ["Notes on the Engine"]
    assert record.publications[0].publisher == "Scientific Memoirs"


def test_hosting_venues_never_survive() -> None:
    for venue in ("github", "Vercel", "netlify.app", "Demo Day"):
        record = canonicalize({"publications": [{"title": "Paper", "publisher": venue}]})
        assert record.publications == []


def test_earlier_fragments_win_and_later_fill_gaps() -> None:
    record = canonicalize(
        {"summary": "first", "skills": []},
        {"professionalSummary": "second", "skills": ["SQL"]},
    )
    assert record.professional_summary == "first"
    assert record.skills[0].skills == ["SQL"]


def test_idempotent() -> None:
    once = canonicalize(_messy())
    assert canonicalize(once) == once
    assert canonicalize(once.model_dump()) == once


def test_scalars_and_lists_never_null() -> None:
    data = CanonicalRecord.model_validate(canonicalize(_messy()).model_dump()).model_dump()
    for field in LIST_FIELDS:
        assert isinstance(data[field], list)
    for field in ("title", "template", "professional_summary"):
        assert isinstance(data[field], str)


def test_summarize_sections() -> None:
    found = summarize_sections(canonicalize({"summary": "x", "projects": [{"title": "P"}]}))
    assert found == ["professional_summary", "projects"]
