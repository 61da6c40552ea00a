"""Per-request-type style policies.

Wording lives here as data. The assembler looks a policy up by request type
and renders it; it never branches on the type itself. A deployment can
replace any policy with a JSON file (``QUILL_POLICY_FILE``) whose keys are
request type values and whose values match ``StylePolicy``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from string import Formatter

from pydantic import BaseModel, TypeAdapter, field_validator

from quill.models.request import RequestType

logger = logging.getLogger(__name__)

# Values available to length_target and task_directive
TEMPLATE_FIELDS = frozenset({"pages", "words", "post"})

PERSONA_PREAMBLE = """\
You are {persona}, a college student writing a quick response.

WRITE LIKE A REAL STUDENT - short, casual, imperfect.

EXAMPLE OF BAD AI WRITING (NEVER DO THIS):
"Your scenario outlines the importance of effective communication really well. \
Officers play a key role in preserving the scene. Their familiarity with the \
neighborhood can indeed lead to valuable leads. Continued diligence will surely \
support the investigation."

EXAMPLE OF GOOD HUMAN WRITING:
"The communication piece is big here. If patrol doesn't relay what they saw clearly, \
detectives are working with gaps. And yeah neighborhood knowledge helps - if you've \
been on the same beat you notice when something's off."

BANNED - DO NOT USE THESE WORDS/PHRASES:
essential, crucial, vital, significant, imperative, key role, play a role, plays a key, \
really well, spot on, indeed, surely, certainly, particularly, notably, specifically, \
foundational, comprehensive, robust, effective communication, valuable leads, \
continued diligence, will surely, familiarity with, outlines the importance, \
insights about, your insight, your scenario, especially in cases, are foundational, \
it's worth noting, important to note

BANNED SENTENCE PATTERNS:
- "[Person], your [noun] outlines/shows/highlights..."
- "...play a key role in..."
- "...is spot on"
- "Continued [noun] will surely..."
- "Their [noun] can indeed..."
- Any sentence with "indeed" or "surely"
- Ending with a compliment about their "diligence" or "insight"

INSTEAD WRITE LIKE THIS:
- Short sentences. Some fragments.
- "The [topic] matters because..."
- "If [X] doesn't happen, then [Y]..."
- "That's the thing with [topic] -"
- Just state facts directly without praising them

KEEP IT SHORT. 2-4 sentences for short posts. Don't over-explain.\
"""


class StylePolicy(BaseModel):
    """Style and task wording for one request type.

    ``length_target`` and ``task_directive`` are format strings and may use
    ``{pages}``, ``{words}`` and ``{post}``; literal braces are doubled.
    Anything else fails when the policy is loaded.
    """

    model_config = {"frozen": True}

    length_target: str
    banned_terms: list[str]
    banned_patterns: list[str] = []
    style_examples: list[str] = []
    opening: str = ""
    closing: str = ""
    task_directive: str
    task_banned_terms: list[str] = []
    instructions_label: str = "INSTRUCTIONS"
    task_rules: list[str] = []
    citation_hint: str = ""

    @field_validator("length_target", "task_directive")
    @classmethod
    def _known_placeholders(cls, value: str) -> str:
        # Literal braces must be doubled ("{{" / "}}").
        try:
            fields = {name for _, name, _, _ in Formatter().parse(value) if name is not None}
        except ValueError as exc:
            raise ValueError(f"invalid format string: {exc}") from exc
        unknown = fields - TEMPLATE_FIELDS
        if unknown:
            raise ValueError(
                f"unknown placeholder(s) {sorted(unknown)}; allowed: {sorted(TEMPLATE_FIELDS)}"
            )
        return value


DISCUSSION = StylePolicy(
    length_target="Discussion post. 250-400 words.",
    banned_terms=[
        "crucial", "vital", "essential", "significant", "highlights", "demonstrates",
        "Furthermore", "Moreover", "Additionally", "not only but also",
        "The reading suggests", "This is important", "ensures", "aligns with",
    ],
    style_examples=[
        "Run-ons ok, fragments ok, start sentences with And/But/So",
    ],
    opening='START with your actual point. Example: "BWC footage alone doesn\'t tell '
            'the whole story..." NOT "This is an interesting topic..."',
    closing='END when done. No wrap-up. No "What do you think?" No moral at the end.',
    task_directive="Discussion post on this material.",
    task_banned_terms=[
        "crucial", "vital", "essential", "significant", "highlights", "demonstrates",
        "ensures", "transparency", "accountability",
    ],
    task_rules=["Sound like a student, not an essay. Messy is better than polished. End abruptly."],
    citation_hint="Citations dropped in naturally, References at end.",
)

PAPER = StylePolicy(
    length_target="Academic paper. ~{words} words ({pages} pages).",
    banned_terms=[
        "crucial", "vital", "essential", "significant", "comprehensive", "robust",
        "Furthermore", "Moreover", "Additionally", "highlights", "demonstrates",
        "underscores", "not only but also", "it is important", "plays a role", "serves as",
    ],
    style_examples=[
        "Some wordy sentences",
        "Occasional awkward phrasing",
        "Varied paragraph lengths",
        "Start some sentences with And, But, So",
        "Contractions are fine",
    ],
    opening="Write like a B+ student - solid content but not over-polished.",
    task_directive="Write a {pages}-page paper (about {words} words).",
    task_banned_terms=[
        "crucial", "vital", "essential", "significant", "Furthermore", "Moreover",
        "highlights", "demonstrates",
    ],
    task_rules=["Sound human. Imperfect is better than polished. Vary rhythm."],
    citation_hint="Citations natural, References at end.",
)

RESPONSE = StylePolicy(
    length_target="Short response to classmate. MAX 4-6 sentences unless they asked detailed questions.",
    banned_terms=[
        "essential", "crucial", "vital", "significant", "spot on", "indeed", "surely",
        "certainly", "key role", "really well", "valuable", "foundational", "diligence",
        "insight", "familiarity", "outlines", "particularly", "effective communication",
        "play a role", "plays a key", "continued diligence",
    ],
    banned_patterns=[
        '"[Name], your [scenario/point/insight] [shows/outlines/highlights]..."',
        '"...is spot on"',
        '"Their familiarity with..."',
        'Any sentence with "indeed" or "surely" or "certainly"',
        'Complimenting their "insight" or "diligence"',
    ],
    style_examples=[
        '"The patrol-to-detective handoff matters here..."',
        '"If initial reports miss details, detectives have to backtrack..."',
        '"Makes sense about the timeline - small errors compound..."',
    ],
    closing="Answer questions directly. Keep it casual and SHORT.",
    task_directive="Write a SHORT response (3-5 sentences max). No AI language.\n\n"
                   "POST TO RESPOND TO:\n{post}",
    instructions_label="CONTEXT",
    task_rules=[
        "HARD RULES:",
        '- NO "your insight/scenario shows/outlines"',
        '- NO "spot on" / "indeed" / "surely" / "certainly"',
        '- NO "play a key role" / "really well" / "valuable"',
        "- Just respond directly to what they said",
        "- If they asked a question, answer it",
    ],
    citation_hint="- Add citation only if you reference the source material",
)


def default_policies() -> dict[RequestType, StylePolicy]:
    return {
        RequestType.DISCUSSION: DISCUSSION,
        RequestType.PAPER: PAPER,
        RequestType.RESPONSE: RESPONSE,
        # A batch item is a classmate reply run once per pasted post.
        RequestType.BATCH_ITEM: RESPONSE,
    }


_POLICY_FILE = TypeAdapter(dict[RequestType, StylePolicy])


def load_policies(path: str | Path | None = None) -> dict[RequestType, StylePolicy]:
    """Built-in policies, overridden per type by the JSON file at ``path``."""
    policies = default_policies()
    if path:
        overrides = _POLICY_FILE.validate_json(Path(path).read_bytes())
        logger.info("Loaded %d style policies from %s", len(overrides), path)
        policies.update(overrides)
    return policies
