"""Uploaded resource data model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel


class MediaKind(Enum):
    PDF = "pdf"
    PLAIN_TEXT = "plainText"
    MARKUP = "markup"
    UNSUPPORTED = "unsupported"

    @classmethod
    def sniff(cls, content_type: str | None, filename: str) -> MediaKind:
        """Classify an upload by declared type, falling back to its suffix."""
        content_type = (content_type or "").split(";", 1)[0].strip().lower()
        name = filename.lower()
        if content_type == "application/pdf" or name.endswith(".pdf"):
            return cls.PDF
        if content_type == "text/plain" or name.endswith(".txt"):
            return cls.PLAIN_TEXT
        if content_type == "text/html" or name.endswith((".html", ".htm")):
            return cls.MARKUP
        return cls.UNSUPPORTED


@dataclass
class UploadedResource:
    """One user-supplied document.

    Identity is positional; names need not be unique. Only ``source_url``
    changes after upload.
    """

    name: str
    media_kind: MediaKind
    content: bytes
    source_url: str = ""
    content_type: str = ""

    @classmethod
    def from_upload(
        cls, name: str, content: bytes, content_type: str | None = None
    ) -> UploadedResource:
        return cls(
            name=name,
            media_kind=MediaKind.sniff(content_type, name),
            content=content,
            content_type=content_type or "",
        )


class FileSource(BaseModel):
    """Citation URL the client attached to an upload."""

    filename: str = ""
    sourceUrl: str = ""


def apply_file_sources(
    resources: list[UploadedResource], sources: list[FileSource]
) -> None:
    """Copy citation URLs onto resources by list position."""
    for resource, source in zip(resources, sources):
        resource.source_url = source.sourceUrl or ""
