"""
Field extraction for job-style feed entries.

Scrapes labeled values out of semi-structured entry bodies such as::

    Great role.<br /><b>Hourly Range</b>: $50-60
    <b>Country</b>: US<b>Category</b>: Eng<b>Skills</b>: Go, SQL

Every field falls back to an empty value when its marker is missing,
so extraction never fails.
"""

import html
import re
from dataclasses import dataclass, field

SUMMARY_PATTERN = re.compile(r"(.*?)<b>Hourly Range</b>:", re.DOTALL)
HOURLY_RANGE_PATTERN = re.compile(r"<b>Hourly Range</b>:\s*([^\n<]+)")
COUNTRY_PATTERN = re.compile(r"<b>Country</b>:\s*([^\n<]+)")
CATEGORY_PATTERN = re.compile(r"<b>Category</b>:\s*([^\n<]+)")
SKILLS_PATTERN = re.compile(r"<b>Skills</b>:\s*([^<]+)")

LINE_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)


@dataclass
class ExtractedFields:
    """
    Structured attributes derived from an entry body.

    Attributes
    ----------
    summary : str
        Decoded text preceding the hourly range marker.
    hourly_range : str
        Value of the "Hourly Range" marker.
    location : str
        Value of the "Country" marker.
    category : str
        Value of the "Category" marker.
    skills : list[str]
        Trimmed, de-duplicated skill names in their original order.
    """

    summary: str = ""
    hourly_range: str = ""
    location: str = ""
    category: str = ""
    skills: list[str] = field(default_factory=list)

    @property
    def skills_text(self) -> str:
        """Skills joined for display."""
        return ", ".join(self.skills)


def _first_line(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def _extract_summary(text: str) -> str:
    match = SUMMARY_PATTERN.search(text)
    if not match:
        return ""
    summary = LINE_BREAK_PATTERN.sub("\n", match.group(1))
    return html.unescape(summary).strip()


def _extract_skills(text: str) -> list[str]:
    match = SKILLS_PATTERN.search(text)
    if not match:
        return []

    skills: list[str] = []
    for token in match.group(1).split(","):
        token = token.strip()
        if token and token not in skills:
            skills.append(token)
    return skills


def extract(body_text: str) -> ExtractedFields:
    """
    Extract structured fields from an entry body.

    Parameters
    ----------
    body_text : str
        Raw entry content, possibly containing HTML markup.

    Returns
    -------
    ExtractedFields
        Extracted values; absent markers yield empty fields.
    """
    text = body_text or ""
    return ExtractedFields(
        summary=_extract_summary(text),
        hourly_range=_first_line(HOURLY_RANGE_PATTERN, text),
        location=_first_line(COUNTRY_PATTERN, text),
        category=_first_line(CATEGORY_PATTERN, text),
        skills=_extract_skills(text),
    )
