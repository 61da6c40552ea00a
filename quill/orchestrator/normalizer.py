"""Document normalizer — turns uploads into prompt fragments."""

from __future__ import annotations

import logging
import re
from typing import Literal

from quill.config import settings
from quill.errors import NormalizationError
from quill.models.fragment import PromptFragment
from quill.models.resource import MediaKind, UploadedResource

logger = logging.getLogger(__name__)

PdfMode = Literal["attach", "placeholder"]
UnsupportedMode = Literal["skip", "note"]

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

_ENTITIES = [
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
]

PDF_PLACEHOLDER = """\
--- {name} (PDF) ---
[The content of this PDF was not extracted. Ask the user to paste the \
relevant text from "{name}" if it is needed for the task.]\
"""

UNSUPPORTED_NOTE = """\
--- {name} ---
[This file could not be read and its content is missing. Treat the \
provided materials as incomplete.]\
"""


def strip_markup(html: str) -> str:
    """Best-effort plain text from HTML. Structure is not preserved."""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return _WS_RE.sub(" ", text).strip()


def _source_header(name: str, text: str) -> str:
    return f"--- Content from {name} ---\n{text}"


class DocumentNormalizer:
    """Converts one uploaded resource into at most one prompt fragment.

    The PDF behaviour is fixed per instance: either the bytes are attached
    for providers that read documents natively, or a placeholder asks for
    the text to be pasted.
    """

    def __init__(
        self,
        pdf_mode: PdfMode | None = None,
        unsupported_mode: UnsupportedMode | None = None,
    ) -> None:
        self.pdf_mode = pdf_mode or settings.pdf_mode
        self.unsupported_mode = unsupported_mode or settings.unsupported_mode
        if self.pdf_mode not in ("attach", "placeholder"):
            raise ValueError(f"Unknown pdf_mode: {self.pdf_mode!r}")
        if self.unsupported_mode not in ("skip", "note"):
            raise ValueError(f"Unknown unsupported_mode: {self.unsupported_mode!r}")

    def normalize(self, resource: UploadedResource) -> PromptFragment | None:
        kind = resource.media_kind
        if kind is MediaKind.PDF:
            if self.pdf_mode == "attach":
                return PromptFragment.document(resource.content, resource.name)
            return PromptFragment.raw_text(PDF_PLACEHOLDER.format(name=resource.name))

        if kind is MediaKind.PLAIN_TEXT:
            return PromptFragment.raw_text(
                _source_header(resource.name, self._decode(resource))
            )

        if kind is MediaKind.MARKUP:
            text = strip_markup(self._decode(resource))
            return PromptFragment.raw_text(_source_header(resource.name, text))

        logger.info("Unsupported upload %s (%s)", resource.name, resource.content_type or "no type")
        if self.unsupported_mode == "note":
            return PromptFragment.raw_text(UNSUPPORTED_NOTE.format(name=resource.name))
        return None

    def normalize_all(self, resources: list[UploadedResource]) -> list[PromptFragment]:
        """Normalize every upload, keeping upload order."""
        fragments: list[PromptFragment] = []
        for resource in resources:
            fragment = self.normalize(resource)
            if fragment is not None:
                fragments.append(fragment)
        return fragments

    def _decode(self, resource: UploadedResource) -> str:
        try:
            return resource.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise NormalizationError(resource.name, "not valid UTF-8 text") from exc
