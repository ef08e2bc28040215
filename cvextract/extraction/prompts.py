"""Chunk prompt templates: named, versioned, one {{cvText}} placeholder each.

Built-ins live here; a directory of <name>.txt files may override any of them.
"""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)

PLACEHOLDER = "{{cvText}}"

CHUNK_PROFILE = "chunk_profile"
CHUNK_EXPERIENCE = "chunk_experience"
CHUNK_CREDENTIALS = "chunk_credentials"
CHUNK_NAMES = (CHUNK_PROFILE, CHUNK_EXPERIENCE, CHUNK_CREDENTIALS)
MANDATORY_TEMPLATES = frozenset({CHUNK_PROFILE})

BUILTIN_VERSION = "chunk_v3"

_RULES = """
RULES:
1) Output ONLY one valid JSON object. No markdown, no commentary.
2) Extract only what is explicitly written in the CV TEXT. Never invent employers, degrees, dates, links or publications.
3) Use null for a value that is not present. Use [] for a list with no entries.
4) Keep the original language of the CV for free text.
5) Dates as written in the CV (e.g. "Jan 2020", "2019", "Present").
"""

_PROFILE = """
You extract the candidate profile from a CV.
{rules}
Return exactly this shape:
{{
  "personalInfo": {{
    "firstName": string, "lastName": string, "email": string, "phone": string,
    "country": string, "city": string,
    "links": [{{"label": string, "url": string}}]
  }},
  "professionalSummary": string,
  "education": [{{
    "degree": string, "institution": string, "location": string,
    "startDate": string, "endDate": string, "current": boolean, "description": string
  }}],
  "languages": [{{"name": string, "proficiency": string}}]
}}

Education holds degrees and diplomas only. A graduation, capstone or course project is NOT an education entry.

CV TEXT:
{placeholder}
"""

_EXPERIENCE = """
You extract work history and projects from a CV.
{rules}
Return exactly this shape:
{{
  "workExperience": [{{
    "title": string, "company": string, "location": string,
    "startDate": string, "endDate": string, "current": boolean, "description": string
  }}],
  "projects": [{{"title": string, "description": string, "url": string, "technologies": [string]}}]
}}

Every work entry needs both a company and a job title. Personal, academic and open-source work goes in "projects".

CV TEXT:
{placeholder}
"""

_CREDENTIALS = """
You extract skills and credentials from a CV.
{rules}
Return exactly this shape:
{{
  "skills": [{{"category": string, "skills": [string]}}],
  "certifications": [{{"name": string, "issuer": string, "date": string, "description": string, "url": string}}],
  "publications": [{{"title": string, "publisher": string, "date": string, "description": string, "url": string}}],
  "volunteer": [{{"role": string, "organization": string, "startDate": string, "endDate": string, "description": string}}]
}}

A publication is a paper, article or book with a real venue or publisher. GitHub repositories, demos and
deployed sites are NOT publications; leave them out.

CV TEXT:
{placeholder}
"""


class PromptTemplate(BaseModel):
    """One chunk template. render() substitutes the single placeholder."""

    name: str
    version: str
    text: str
    placeholder: str = PLACEHOLDER

    def render(self, document_text: str) -> str:
        return self.text.replace(self.placeholder, document_text)


def _builtin(name: str, body: str) -> PromptTemplate:
    text = body.format(rules=_RULES.strip(), placeholder=PLACEHOLDER).strip()
    return PromptTemplate(name=name, version=BUILTIN_VERSION, text=text)


BUILTIN_TEMPLATES: dict[str, PromptTemplate] = {
    CHUNK_PROFILE: _builtin(CHUNK_PROFILE, _PROFILE),
    CHUNK_EXPERIENCE: _builtin(CHUNK_EXPERIENCE, _EXPERIENCE),
    CHUNK_CREDENTIALS: _builtin(CHUNK_CREDENTIALS, _CREDENTIALS),
}


def _load_file(path: Path, name: str) -> PromptTemplate | None:
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.warning("Failed to load prompt %s: %s", path, e)
        return None
    if not text:
        logger.warning("Prompt file %s is empty", path)
        return None
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return PromptTemplate(name=name, version=f"file-{digest}", text=text)


def load_templates(
    prompts_dir: Path | None = None,
    *,
    use_builtin: bool = True,
) -> dict[str, PromptTemplate | None]:
    """Resolve every chunk template: file override first, then built-in, else None."""
    out: dict[str, PromptTemplate | None] = {}
    for name in CHUNK_NAMES:
        template = None
        if prompts_dir is not None:
            path = Path(prompts_dir) / f"{name}.txt"
            if path.exists():
                template = _load_file(path, name)
        if template is None and use_builtin:
            template = BUILTIN_TEMPLATES[name]
        out[name] = template
    logger.info(
        "Prompt templates loaded",
        extra={
            "loaded": sorted(k for k, v in out.items() if v is not None),
            "missing": sorted(k for k, v in out.items() if v is None),
        },
    )
    return out
