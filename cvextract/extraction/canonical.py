"""Canonical CV record: merge heterogeneous fragments, normalize shapes, drop fabricated entries.

canonicalize() is pure and idempotent: feeding its own output (model or dump) back in
returns an equal record. Every list field is a list and every scalar a string afterwards.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Callable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled CV"
DEFAULT_TEMPLATE = "modern"
DEFAULT_SKILL_CATEGORY = "Key Skills"
DEFAULT_LINK_LABEL = "Link"

# Projects misfiled as degrees or certificates.
PROJECT_PATTERN = re.compile(r"graduation project|capstone project|course project|final[- ]year project", re.IGNORECASE)
# Code/demo hosting posing as a publication venue.
HOSTING_VENUE_PATTERN = re.compile(r"github|vercel|netlify|demo|link|self", re.IGNORECASE)
HOSTING_TITLE_PATTERN = re.compile(r"demo|github", re.IGNORECASE)

_FLAT_LINK_FIELDS = (("linkedin", "LinkedIn"), ("github", "GitHub"), ("website", "Website"), ("portfolio", "Portfolio"))


class Link(BaseModel):
    label: str = DEFAULT_LINK_LABEL
    url: str = ""


class PersonalInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    country: str = ""
    city: str = ""
    links: list[Link] = Field(default_factory=list)


class WorkExperience(BaseModel):
    title: str = ""
    company: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    current: bool = False
    description: str = ""


class Education(BaseModel):
    degree: str = ""
    institution: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    current: bool = False
    description: str = ""


class SkillGroup(BaseModel):
    category: str = DEFAULT_SKILL_CATEGORY
    skills: list[str] = Field(default_factory=list)


class Project(BaseModel):
    title: str = ""
    description: str = ""
    url: str = ""
    technologies: list[str] = Field(default_factory=list)


class Language(BaseModel):
    name: str = "Unknown"
    proficiency: str = "Intermediate"


class Certification(BaseModel):
    name: str = ""
    company: str = ""
    start_date: str = ""
    description: str = ""
    url: str = ""


class Publication(BaseModel):
    title: str = ""
    publisher: str = ""
    date: str = ""
    description: str = ""
    url: str = ""


class Volunteer(BaseModel):
    role: str = ""
    organization: str = ""
    start_date: str = ""
    end_date: str = ""
    description: str = ""


class CanonicalRecord(BaseModel):
    """Schema-complete extraction output. No field is ever None."""

    title: str = DEFAULT_TITLE
    template: str = DEFAULT_TEMPLATE
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    professional_summary: str = ""
    work_experience: list[WorkExperience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[SkillGroup] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    languages: list[Language] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    publications: list[Publication] = Field(default_factory=list)
    volunteer: list[Volunteer] = Field(default_factory=list)


# Accepted source names per canonical field, in priority order.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "title": ("title",),
    "template": ("template",),
    "personal_info": ("personalInfo", "personal_info", "personal", "profile", "contact"),
    "professional_summary": ("professionalSummary", "professional_summary", "summary", "objective"),
    "work_experience": ("workExperience", "work_experience", "experience", "employment"),
    "education": ("education",),
    "skills": ("skills",),
    "projects": ("projects",),
    "languages": ("languages",),
    "certifications": ("certifications", "certificates"),
    "publications": ("publications",),
    "volunteer": ("volunteer", "volunteering", "volunteerExperience", "volunteer_experience"),
}
_ALIAS_TO_FIELD = {alias.lower(): field for field, aliases in FIELD_ALIASES.items() for alias in aliases}


def canonical_key(key: str) -> str | None:
    """Canonical field name for a source key, or None if the key is not part of the record."""
    return _ALIAS_TO_FIELD.get(str(key).lower())


def empty_to_none(value: Any) -> Any:
    """Recursively replace empty/blank strings with None."""
    if isinstance(value, str):
        return None if not value.strip() else value
    if isinstance(value, Mapping):
        return {k: empty_to_none(v) for k, v in value.items()}
    if isinstance(value, list):
        return [empty_to_none(v) for v in value]
    return value


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and not value)


def _text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return "\n".join(t for t in (_text(v) for v in value) if t)
    return ""


def _url(value: Any) -> str:
    if isinstance(value, list):
        return _url(value[0]) if value else ""
    return _text(value)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "present", "current")
    return False


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if isinstance(item, Mapping):
            item = item.get("name")
        text = _text(item) if isinstance(item, (str, int, float)) else ""
        if text:
            out.append(text)
    return out


def _pick(entry: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if not _is_empty(value):
            return value
    return None


def _entries(value: Any) -> list[Any]:
    """List groups: anything that is not a list, a lone dict included, is empty."""
    return value if isinstance(value, list) else []


def _mappings(value: Any) -> list[Mapping[str, Any]]:
    return [e for e in _entries(value) if isinstance(e, Mapping)]


def _work(entry: Mapping[str, Any]) -> WorkExperience:
    return WorkExperience(
        title=_text(_pick(entry, "title", "role", "position", "jobTitle", "job_title")),
        company=_text(_pick(entry, "company", "organization", "employer")),
        location=_text(entry.get("location")),
        start_date=_text(_pick(entry, "startDate", "start_date")),
        end_date=_text(_pick(entry, "endDate", "end_date")),
        current=_flag(entry.get("current")),
        description=_text(_pick(entry, "description", "responsibilities", "highlights")),
    )


def _education(entry: Mapping[str, Any]) -> Education:
    return Education(
        degree=_text(_pick(entry, "degree", "qualification", "field")),
        institution=_text(_pick(entry, "institution", "school", "university")),
        location=_text(entry.get("location")),
        start_date=_text(_pick(entry, "startDate", "start_date")),
        end_date=_text(_pick(entry, "endDate", "end_date", "graduationDate")),
        current=_flag(entry.get("current")),
        description=_text(entry.get("description")),
    )


def _project(entry: Mapping[str, Any]) -> Project:
    return Project(
        title=_text(_pick(entry, "title", "name")),
        description=_text(entry.get("description")),
        url=_url(_pick(entry, "url", "link")),
        technologies=_string_list(_pick(entry, "technologies", "techStack", "tech_stack")),
    )


def _language(entry: Any) -> Language | None:
    if isinstance(entry, str):
        return Language(name=entry.strip())
    if not isinstance(entry, Mapping):
        return None
    lang = Language()
    name = _text(_pick(entry, "name", "language"))
    proficiency = _text(_pick(entry, "proficiency", "level"))
    return Language(name=name or lang.name, proficiency=proficiency or lang.proficiency)


def _certification(entry: Mapping[str, Any]) -> Certification:
    return Certification(
        name=_text(_pick(entry, "name", "title")),
        company=_text(_pick(entry, "company", "issuer", "organization")),
        start_date=_text(_pick(entry, "startDate", "start_date", "date")),
        description=_text(entry.get("description")),
        url=_url(entry.get("url")),
    )


def _publication(entry: Mapping[str, Any]) -> Publication:
    return Publication(
        title=_text(entry.get("title")),
        publisher=_text(_pick(entry, "publisher", "venue", "journal")),
        date=_text(entry.get("date")),
        description=_text(entry.get("description")),
        url=_url(entry.get("url")),
    )


def _volunteer(entry: Mapping[str, Any]) -> Volunteer:
    return Volunteer(
        role=_text(_pick(entry, "role", "title")),
        organization=_text(_pick(entry, "organization", "company")),
        start_date=_text(_pick(entry, "startDate", "start_date")),
        end_date=_text(_pick(entry, "endDate", "end_date")),
        description=_text(entry.get("description")),
    )


def _keep_work(e: WorkExperience) -> bool:
    return bool(e.company and e.title)


def _keep_education(e: Education) -> bool:
    if not e.institution:
        return False
    return not (PROJECT_PATTERN.search(e.degree) or PROJECT_PATTERN.search(e.institution))


def _keep_certification(e: Certification) -> bool:
    return bool(e.name) and not PROJECT_PATTERN.search(e.name)


def _keep_project(e: Project) -> bool:
    return bool(e.title)


def _keep_publication(e: Publication) -> bool:
    if not (e.title and e.publisher):
        return False
    return not (HOSTING_VENUE_PATTERN.search(e.publisher) or HOSTING_TITLE_PATTERN.search(e.title))


def _keep_volunteer(e: Volunteer) -> bool:
    return bool(e.organization or e.role)


def _normalize_list(
    field: str,
    value: Any,
    build: Callable[[Mapping[str, Any]], BaseModel],
    keep: Callable[[Any], bool],
) -> list[Any]:
    built = [build(entry) for entry in _mappings(value)]
    kept = [e for e in built if keep(e)]
    if len(kept) != len(built):
        logger.debug("dropped %d implausible %s entries", len(built) - len(kept), field)
    return kept


def _skills(value: Any) -> list[SkillGroup]:
    grouped: dict[str, list[str]] = {}
    if isinstance(value, Mapping) and not ({"category", "skills", "name"} & set(value)):
        # {"technical": [...], "soft": [...]}
        for key, items in value.items():
            category = str(key)[:1].upper() + str(key)[1:]
            grouped.setdefault(category, []).extend(_string_list(items))
    else:
        for item in _entries(value):
            if isinstance(item, (str, int, float)) and not isinstance(item, bool):
                text = _text(item)
                if text:
                    grouped.setdefault(DEFAULT_SKILL_CATEGORY, []).append(text)
            elif isinstance(item, Mapping):
                category = _text(item.get("category")) or DEFAULT_SKILL_CATEGORY
                if isinstance(item.get("skills"), list):
                    grouped.setdefault(category, []).extend(_string_list(item["skills"]))
                else:
                    name = _text(_pick(item, "name", "skill"))
                    if name:
                        grouped.setdefault(category, []).append(name)
    return [SkillGroup(category=c, skills=s) for c, s in grouped.items() if s]


def _links(value: Any) -> list[Link]:
    out = []
    for item in _entries(value):
        if isinstance(item, str):
            link = Link(url=item.strip())
        elif isinstance(item, Mapping):
            link = Link(
                label=_text(_pick(item, "label", "platform", "name")) or DEFAULT_LINK_LABEL,
                url=_url(item.get("url")),
            )
        else:
            continue
        if link.url:
            out.append(link)
    return out


def _personal_info(value: Any) -> PersonalInfo:
    if not isinstance(value, Mapping):
        return PersonalInfo()
    first = _text(_pick(value, "firstName", "first_name"))
    last = _text(_pick(value, "lastName", "last_name"))
    full = _text(_pick(value, "fullName", "full_name", "name"))
    if full and not (first or last):
        first, _, last = full.partition(" ")
        last = last.strip()
    links = _links(value.get("links"))
    for field, label in _FLAT_LINK_FIELDS:
        url = _url(value.get(field))
        if not url:
            continue
        if any(l.label.lower() == label.lower() or l.url == url for l in links):
            continue
        links.append(Link(label=label, url=url))
    return PersonalInfo(
        first_name=first,
        last_name=last,
        email=_text(value.get("email")),
        phone=_text(value.get("phone")),
        country=_text(value.get("country")),
        city=_text(value.get("city")),
        links=links,
    )


def merge_fragments(*fragments: Mapping[str, Any] | CanonicalRecord | None) -> dict[str, Any]:
    """Combine fragments by canonical field. The first non-empty value for a field wins."""
    merged: dict[str, Any] = {}
    for fragment in fragments:
        if isinstance(fragment, CanonicalRecord):
            fragment = fragment.model_dump()
        if not isinstance(fragment, Mapping):
            continue
        cleaned = empty_to_none(fragment)
        lowered = {str(k).lower(): v for k, v in cleaned.items()}
        for field, aliases in FIELD_ALIASES.items():
            if not _is_empty(merged.get(field)):
                continue
            for alias in aliases:
                value = lowered.get(alias.lower())
                if not _is_empty(value):
                    merged[field] = value
                    break
    return merged


def canonicalize(*fragments: Mapping[str, Any] | CanonicalRecord | None) -> CanonicalRecord:
    """Merge fragments in argument order and normalize into one CanonicalRecord."""
    merged = merge_fragments(*fragments)
    return CanonicalRecord(
        title=_text(merged.get("title")) or DEFAULT_TITLE,
        template=_text(merged.get("template")) or DEFAULT_TEMPLATE,
        personal_info=_personal_info(merged.get("personal_info")),
        professional_summary=_text(merged.get("professional_summary")),
        work_experience=_normalize_list("work_experience", merged.get("work_experience"), _work, _keep_work),
        education=_normalize_list("education", merged.get("education"), _education, _keep_education),
        skills=_skills(merged.get("skills")),
        projects=_normalize_list("projects", merged.get("projects"), _project, _keep_project),
        languages=[lang for lang in (_language(e) for e in _entries(merged.get("languages"))) if lang is not None],
        certifications=_normalize_list(
            "certifications", merged.get("certifications"), _certification, _keep_certification
        ),
        publications=_normalize_list("publications", merged.get("publications"), _publication, _keep_publication),
        volunteer=_normalize_list("volunteer", merged.get("volunteer"), _volunteer, _keep_volunteer),
    )


def summarize_sections(record: CanonicalRecord) -> list[str]:
    """Names of fields that carry extracted data (defaults like title/template excluded)."""
    found = []
    info = record.personal_info
    if any([info.first_name, info.last_name, info.email, info.phone, info.country, info.city, info.links]):
        found.append("personal_info")
    if record.professional_summary:
        found.append("professional_summary")
    for field in (
        "work_experience",
        "education",
        "skills",
        "projects",
        "languages",
        "certifications",
        "publications",
        "volunteer",
    ):
        if getattr(record, field):
            found.append(field)
    return found
