"""Prompt assembler — builds system and task instructions for one request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from quill.config import settings
from quill.errors import UnknownRequestType
from quill.models.fragment import AssembledPrompt, PromptFragment
from quill.models.request import RequestType, parse_page_count, word_target
from quill.models.resource import UploadedResource
from quill.orchestrator.policies import PERSONA_PREAMBLE, StylePolicy, load_policies

logger = logging.getLogger(__name__)

REFERENCES_DIRECTIVE = """\
MANDATORY - APA7 CITATION REQUIREMENTS:
- When you use information from any of the uploaded materials, include an in-text citation
- At the VERY END of your response, include a "References" section
- For each source you cited, list it in APA7 format using the provided URL
- APA7 web format: Author (if known). (Year). Title. Retrieved from URL
- If author/date unknown, use the title and (n.d.)
- YOU MUST include the References section - do not skip it\
"""

SOURCE_URLS_HEADER = (
    "SOURCE URLS FOR UPLOADED MATERIALS (include in References if you cite from them):"
)
SOURCE_URLS_FOOTER = (
    "If you reference content from any of these materials, include the URL "
    "in your References section at the end."
)


@dataclass
class TypeOptions:
    """Per-request values the task directive is rendered with."""

    page_count: str | int | None = None
    discussion_post: str = ""
    additional_instructions: str = ""


class PromptAssembler:
    """Renders the style policy table into prompts."""

    def __init__(
        self,
        policies: Mapping[RequestType, StylePolicy] | None = None,
        persona: str | None = None,
    ) -> None:
        self.policies = dict(policies) if policies is not None else load_policies(settings.policy_file)
        self.persona = persona or settings.persona_name

    def assemble(
        self,
        request_type: RequestType | str,
        context: str,
        fragments: list[PromptFragment],
        options: TypeOptions,
        citations: list[UploadedResource],
    ) -> AssembledPrompt:
        policy = self._policy_for(request_type)
        pages = parse_page_count(options.page_count)
        values = {
            "pages": pages,
            "words": word_target(pages),
            "post": options.discussion_post or "",
        }

        blocks: list[PromptFragment] = []
        if context and context.strip():
            blocks.append(PromptFragment.raw_text(f"ADDITIONAL CONTEXT:\n{context}"))
        blocks.extend(fragments)
        blocks.append(
            PromptFragment.raw_text(
                self._task_text(policy, values, options.additional_instructions, citations)
            )
        )

        return AssembledPrompt(
            system_instructions=self._system_text(policy, values),
            blocks=blocks,
        )

    def _policy_for(self, request_type: RequestType | str) -> StylePolicy:
        try:
            return self.policies[RequestType.parse(request_type)]
        except KeyError:
            raise UnknownRequestType(request_type) from None

    def _system_text(self, policy: StylePolicy, values: dict) -> str:
        sections = [
            PERSONA_PREAMBLE.format(persona=self.persona),
            policy.length_target.format(**values),
            "BANNED: " + ", ".join(policy.banned_terms),
        ]
        if policy.banned_patterns:
            sections.append("BANNED PATTERNS:\n" + _bullets(policy.banned_patterns))
        if policy.style_examples:
            sections.append("WRITE LIKE THIS INSTEAD:\n" + _bullets(policy.style_examples))
        if policy.opening:
            sections.append(policy.opening)
        if policy.closing:
            sections.append(policy.closing)
        return "\n\n".join(sections)

    def _task_text(
        self,
        policy: StylePolicy,
        values: dict,
        additional_instructions: str,
        citations: list[UploadedResource],
    ) -> str:
        sections = [policy.task_directive.format(**values)]
        if policy.task_banned_terms:
            sections.append("BANNED WORDS: " + ", ".join(policy.task_banned_terms))
        if additional_instructions:
            sections.append(f"{policy.instructions_label}: {additional_instructions}")

        rules = list(policy.task_rules)
        if citations and policy.citation_hint:
            rules.append(policy.citation_hint)
        if rules:
            sections.append("\n".join(rules))

        if citations:
            sections.append(references_directive(citations))
        return "\n\n".join(sections)


def references_directive(citations: list[UploadedResource]) -> str:
    """Citation rules plus every citable upload's filename and URL."""
    listing = "\n".join(f'- "{r.name}": {r.source_url.strip()}' for r in citations)
    return "\n\n".join([
        REFERENCES_DIRECTIVE,
        f"{SOURCE_URLS_HEADER}\n{listing}",
        SOURCE_URLS_FOOTER,
    ])


def _bullets(lines: list[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)
