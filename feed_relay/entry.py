"""
Feed entry model.

Normalizes feedparser entries into the shape stored and relayed by the app.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def stable_id(*parts: str) -> str:
    """Create a deterministic identifier from a set of string parts."""
    joined = "|".join(p.strip() for p in parts if p is not None)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def _parse_published(entry: Any) -> datetime | None:
    """Return the entry publication time in UTC, if feedparser could parse one."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    return None


@dataclass
class FeedEntry:
    """
    One syndication item.

    Attributes
    ----------
    guid : str
        Unique identifier of the entry, used as the deduplication key.
    title : str
        Entry title.
    link : str
        Entry URL.
    published_at : datetime | None
        Timezone-aware publication time, None when the feed omits it.
    body_text : str
        Free-text entry content scanned for structured fields.
    """

    guid: str = ""
    title: str = ""
    link: str = ""
    published_at: datetime | None = None
    body_text: str = ""

    @classmethod
    def from_feedparser(cls, entry: Any) -> "FeedEntry":
        """
        Create a FeedEntry from a feedparser entry.

        Missing fields map to empty strings. When the feed carries no guid,
        the link is used, and failing that a key synthesized from the title,
        link and publication date, so guid-less entries stay distinct.

        Parameters
        ----------
        entry : Any
            A feedparser entry object.

        Returns
        -------
        FeedEntry
            Normalized entry instance.
        """
        # Prefer full content over summary
        body_text = ""
        if entry.get("content"):
            body_text = entry["content"][0].get("value", "")
        elif entry.get("summary"):
            body_text = entry["summary"]

        title = entry.get("title", "") or ""
        link = entry.get("link", "") or ""
        guid = entry.get("id", "") or link
        if not guid:
            guid = stable_id(title, link, entry.get("published", "") or "")

        return cls(
            guid=guid,
            title=title,
            link=link,
            published_at=_parse_published(entry),
            body_text=body_text,
        )

    @property
    def action_url(self) -> str:
        """URL to open the entry: the guid when it is a URL, else the link."""
        if self.guid.startswith(("http://", "https://")):
            return self.guid
        return self.link

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "guid": self.guid,
            "title": self.title,
            "link": self.link,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "body_text": self.body_text,
        }

    def to_json(self) -> str:
        """Serialize the entry for storage."""
        return json.dumps(self.to_dict(), ensure_ascii=False)
