"""Rule-based extraction of resume fields from plain text.

Every rule is a pure function over the non-blank, stripped lines of the
input. ``parse_resume`` composes them and never raises: text without any
recognizable structure simply yields empty fields.
"""

import re
from collections.abc import Sequence
from enum import Enum
from typing import Optional

from resume_ingest.logger import get_logger
from resume_ingest.models import EducationEntry, ExperienceEntry, ParsedResume

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[0-9]{7,15}")
NAME_PATTERN = re.compile(r"[A-Za-z ,.'-]{2,80}")
MAX_NAME_TOKENS = 5

SKILLS_SCAN_LINES = 30
SKILLS_LABEL_SEPARATOR = re.compile(r"[:\-–—]")
SKILLS_ITEM_SEPARATOR = re.compile(r"[;,|•·]")

EXPERIENCE_HEADER = re.compile(r"^(?:work )?experience", re.IGNORECASE)
EDUCATION_HEADER = re.compile(r"^education", re.IGNORECASE)
EDUCATION_KEYWORDS = re.compile(r"degree|university|bachelor|master", re.IGNORECASE)

# "<field A> <dash or @> <field B> (<year>...)"
ENTRY_PATTERN = re.compile(r"^(.*?)\s+[-–—@]\s+(.*?)\s*\(?([0-9]{4}.*?)\)?$")
# Entry lines are short; longer ones are skipped before matching
MAX_ENTRY_LINE_CHARS = 300

LINE_BREAK = re.compile(r"\r?\n")


class Section(Enum):
    NONE = "none"
    EXPERIENCE = "experience"
    EDUCATION = "education"


def split_lines(text: str) -> list[str]:
    """Split on CRLF/LF, strip each line and drop blank ones."""
    return [line.strip() for line in LINE_BREAK.split(text or "") if line.strip()]


def find_email(lines: Sequence[str]) -> Optional[str]:
    for line in lines:
        match = EMAIL_PATTERN.search(line)
        if match:
            return match.group(0)
    return None


def find_phone(lines: Sequence[str]) -> Optional[str]:
    for line in lines:
        match = PHONE_PATTERN.search(line)
        if match:
            return match.group(0)
    return None


def find_name(lines: Sequence[str]) -> Optional[str]:
    """Accept the first line as the name if it looks like one.

    Only letters, spaces and ``,.'-`` are allowed, 2-80 characters, and at
    most five whitespace-separated tokens (``"Jane, Q. Smith"`` is three).
    """
    if not lines:
        return None

    candidate = lines[0]
    if NAME_PATTERN.fullmatch(candidate) and len(candidate.split()) <= MAX_NAME_TOKENS:
        return candidate
    return None


def find_skills(lines: Sequence[str]) -> list[str]:
    """Read the skill list from the first line mentioning "skill".

    Only the first matching line among the leading lines is consulted; an
    inline list is expected after a ``:`` or dash.
    """
    for line in lines[:SKILLS_SCAN_LINES]:
        if "skill" not in line.lower():
            continue

        parts = SKILLS_LABEL_SEPARATOR.split(line, maxsplit=1)
        remainder = parts[1] if len(parts) > 1 else ""
        return [item.strip() for item in SKILLS_ITEM_SEPARATOR.split(remainder) if item.strip()]

    return []


def classify_header(line: str) -> Optional[Section]:
    """Return the section a header line opens, or None for ordinary lines."""
    if EXPERIENCE_HEADER.match(line):
        return Section.EXPERIENCE
    if EDUCATION_HEADER.match(line) or EDUCATION_KEYWORDS.search(line):
        return Section.EDUCATION
    return None


def match_entry(line: str) -> Optional[tuple[Optional[str], Optional[str], Optional[str]]]:
    """Split an entry line into (field A, field B, date range)."""
    if len(line) > MAX_ENTRY_LINE_CHARS:
        return None
    match = ENTRY_PATTERN.match(line)
    if not match:
        return None
    return tuple(group.strip() or None for group in match.groups())


def parse_sections(
    lines: Sequence[str],
) -> tuple[list[ExperienceEntry], list[EducationEntry]]:
    """Walk the lines with an experience/education section state machine.

    Header lines switch the current section and are not parsed as entries.
    Entry lines that do not match the expected shape are skipped.
    """
    experience: list[ExperienceEntry] = []
    education: list[EducationEntry] = []
    section = Section.NONE

    for line in lines:
        header = classify_header(line)
        if header is not None:
            section = header
            continue

        if section is Section.NONE:
            continue

        fields = match_entry(line)
        if fields is None:
            continue

        first, second, date_range = fields
        if section is Section.EXPERIENCE:
            experience.append(ExperienceEntry(title=first, company=second, date_range=date_range))
        else:
            education.append(EducationEntry(degree=first, institution=second, date_range=date_range))

    return experience, education


def parse_resume(text: str) -> ParsedResume:
    """Parse resume fields from plain text.

    Args:
        text: Raw resume text

    Returns:
        ParsedResume whose ``raw`` is exactly ``text``
    """
    raw = text if text is not None else ""
    lines = split_lines(raw)
    experience, education = parse_sections(lines)

    resume = ParsedResume(
        raw=raw,
        name=find_name(lines),
        email=find_email(lines),
        phone=find_phone(lines),
        skills=tuple(find_skills(lines)),
        experience=tuple(experience),
        education=tuple(education),
    )

    logger.debug(
        "Parsed resume fields",
        extra_data={
            "line_count": len(lines),
            "name_found": resume.name is not None,
            "email_found": resume.email is not None,
            "phone_found": resume.phone is not None,
            "skill_count": len(resume.skills),
            "experience_count": len(experience),
            "education_count": len(education),
        },
    )
    return resume
