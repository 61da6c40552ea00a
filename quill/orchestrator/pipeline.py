"""Single-request pipeline: normalize uploads, assemble, invoke."""

from __future__ import annotations

import logging
from typing import Callable

from quill.backends.base import GenerationBackend
from quill.backends.registry import get_backend
from quill.errors import MissingField
from quill.models.citation import citation_set
from quill.models.fragment import PromptFragment
from quill.models.request import GenerationRequest, RequestType
from quill.models.resource import UploadedResource
from quill.orchestrator.assembler import PromptAssembler, TypeOptions
from quill.orchestrator.invoker import GenerationInvoker
from quill.orchestrator.normalizer import DocumentNormalizer

logger = logging.getLogger(__name__)


class Pipeline:
    """Runs one generation request end to end."""

    def __init__(
        self,
        normalizer: DocumentNormalizer | None = None,
        assembler: PromptAssembler | None = None,
        backend_factory: Callable[[str | None], GenerationBackend] = get_backend,
    ) -> None:
        self.normalizer = normalizer or DocumentNormalizer()
        self.assembler = assembler or PromptAssembler()
        self.backend_factory = backend_factory

    def normalize(self, resources: list[UploadedResource]) -> list[PromptFragment]:
        return self.normalizer.normalize_all(resources)

    async def generate(
        self,
        request: GenerationRequest,
        fragments: list[PromptFragment] | None = None,
    ) -> str:
        """Generate text for ``request``.

        ``fragments`` lets a batch reuse one normalization for every item.
        The request type and model are checked before any upload is read or
        any provider is called.
        """
        request_type = RequestType.parse(request.type)
        # Batch items may have an empty body; a single reply needs its post.
        if request_type is RequestType.RESPONSE and not (request.discussion_post or "").strip():
            raise MissingField("discussionPost", request_type.value)
        invoker = GenerationInvoker(self.backend_factory(request.model))

        if fragments is None:
            fragments = self.normalize(request.resources)

        prompt = self.assembler.assemble(
            request_type,
            request.context,
            fragments,
            TypeOptions(
                page_count=request.page_count,
                discussion_post=request.discussion_post,
                additional_instructions=request.additional_instructions,
            ),
            # Recomputed every call: URLs can change between calls.
            citation_set(request.resources),
        )
        logger.debug("Assembled %s prompt:\n%s", request_type.value, prompt.task_instructions)
        return await invoker.invoke(prompt)
