from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

CONDITION = "condition"
CONCERNS = "concerns"
RECOMMENDATIONS = "recommendations"

# Checked in this order; the first section whose prefix matches wins.
SECTION_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (CONDITION, ("condition",)),
    (CONCERNS, ("concern", "issue")),
    (RECOMMENDATIONS, ("recommend", "suggest")),
)

DEFAULT_CONDITION = "Skin analysis completed"
DEFAULT_CONCERNS = ("No specific concerns identified",)
DEFAULT_RECOMMENDATIONS = ("Maintain regular skincare routine",)

_HEADING_MARKUP = re.compile(r"^(?:#{1,6}\s*)?(?:\*\*|__)?\s*")
_BULLET = re.compile(r"^[-*•]\s*")


@dataclass
class ParsedSections:
    condition: str = ""
    concerns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.condition and not self.concerns and not self.recommendations

    def is_complete(self) -> bool:
        return bool(self.condition and self.concerns and self.recommendations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition,
            "concerns": list(self.concerns),
            "recommendations": list(self.recommendations),
        }


def parse_analysis_text(text: Any) -> ParsedSections:
    """Split a free-text model answer into condition, concerns and recommendations.

    Lines are assigned to the section announced by the most recent heading.
    When the heading pass yields nothing the lines are split positionally
    into thirds, the remainder going to recommendations. With fewer than
    three lines each line fills one section in order, condition first. When
    only some sections are filled, the missing ones are taken from the first
    line mentioning their keyword.
    """
    if not isinstance(text, str):
        return ParsedSections()

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    sections = ParsedSections()
    if not lines:
        return sections

    current_section: str | None = None
    for line in lines:
        heading = _match_heading(line)
        if heading is not None:
            current_section, trailing = heading
            if trailing:
                _assign(sections, current_section, trailing)
            continue

        if current_section is None:
            continue
        content = _strip_bullet(line)
        if content:
            _assign(sections, current_section, content)

    if sections.is_empty():
        logger.debug("Heading pass found no content; using positional fallback over %s lines", len(lines))
        _apply_positional_fallback(sections, lines)

    if not sections.is_empty() and not sections.is_complete():
        _apply_keyword_fallback(sections, lines)

    return sections


def apply_result_defaults(sections: ParsedSections) -> ParsedSections:
    condition = sections.condition.strip() if isinstance(sections.condition, str) else ""
    concerns = [item.strip() for item in sections.concerns if isinstance(item, str) and item.strip()]
    recommendations = [
        item.strip() for item in sections.recommendations if isinstance(item, str) and item.strip()
    ]
    return ParsedSections(
        condition=condition or DEFAULT_CONDITION,
        concerns=concerns or list(DEFAULT_CONCERNS),
        recommendations=recommendations or list(DEFAULT_RECOMMENDATIONS),
    )


def _match_heading(line: str) -> tuple[str, str] | None:
    candidate = _HEADING_MARKUP.sub("", line)
    lowered = candidate.lower()
    for section, keywords in SECTION_KEYWORDS:
        if lowered.startswith(keywords):
            return section, _trailing_text(candidate)
    return None


def _trailing_text(line: str) -> str:
    _, colon, rest = line.partition(":")
    if not colon:
        return ""
    rest = rest.strip().lstrip("*_").strip()
    return _strip_bullet(rest)


def _strip_bullet(line: str) -> str:
    return _BULLET.sub("", line.strip(), count=1).strip()


def _assign(sections: ParsedSections, section: str, content: str) -> None:
    if section == CONDITION:
        if not sections.condition:
            sections.condition = content
    elif section == CONCERNS:
        sections.concerns.append(content)
    else:
        sections.recommendations.append(content)


def _apply_positional_fallback(sections: ParsedSections, lines: list[str]) -> None:
    size = max(1, len(lines) // 3)
    groups = [lines[:size], lines[size : 2 * size], lines[2 * size :]]
    condition_group, concerns_group, recommendations_group = groups

    sections.condition = " ".join(condition_group)
    if concerns_group:
        sections.concerns = [" ".join(concerns_group)]
    if recommendations_group:
        sections.recommendations = [" ".join(recommendations_group)]


def _apply_keyword_fallback(sections: ParsedSections, lines: list[str]) -> None:
    for section, keywords in SECTION_KEYWORDS:
        if _section_has_content(sections, section):
            continue
        for line in lines:
            lowered = line.lower()
            if not any(keyword in lowered for keyword in keywords):
                continue
            content = _strip_heading_prefix(line)
            if content:
                logger.debug("Filled empty %s section from keyword match", section)
                _assign(sections, section, content)
            break


def _strip_heading_prefix(line: str) -> str:
    _, colon, rest = line.partition(":")
    if colon:
        return _strip_bullet(rest.strip().lstrip("*_"))
    return _strip_bullet(line)


def _section_has_content(sections: ParsedSections, section: str) -> bool:
    if section == CONDITION:
        return bool(sections.condition)
    if section == CONCERNS:
        return bool(sections.concerns)
    return bool(sections.recommendations)
