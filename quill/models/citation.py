# The citation set is derived from the uploads on every call, never stored.
from __future__ import annotations

from quill.models.resource import UploadedResource


def citation_set(resources: list[UploadedResource]) -> list[UploadedResource]:
    """Uploads that currently carry a reference URL, in upload order."""
    return [r for r in resources if r.source_url and r.source_url.strip()]


__all__ = ["citation_set"]
