"""
Requirement-specific override rules.

Broad courses tend to be over-approved for narrowly scoped requirements.
Each rule here is keyed by the requirement names it governs and is applied
after the primary match by both matchers:

- the AI matcher sends ``instruction`` to the model and, on the rejected
  side, appends ``explanation`` to the missing requirements when the model
  left it out;
- the keyword matcher runs ``keyword_check`` (when a rule has one) and
  force-rejects the requirement with ``explanation`` when it fails.

New rules only need a new ``OverrideRule`` entry in ``OVERRIDE_RULES``.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from genedai.schemas import RejectedRequirement

CREATIVE_TERMS = (
    "creative writing", "theater", "design", "visual art", "studio", "workshop", "portfolio",
    "exhibition", "performance", "artistic", "sculpture", "painting", "drawing", "film",
    "photography", "dance", "music composition", "creative project",
)
CREATIVE_OCCURRENCE_THRESHOLD = 10

_CREATIVE_PATTERNS = [re.compile(re.escape(term), re.IGNORECASE) for term in CREATIVE_TERMS]


def count_creative_terms(text: str) -> int:
    """Total occurrences (not presence) of every creative-discipline term."""
    return sum(len(p.findall(text)) for p in _CREATIVE_PATTERNS)


def has_substantial_creative_content(text: str) -> bool:
    return count_creative_terms(text) >= CREATIVE_OCCURRENCE_THRESHOLD


@dataclass(frozen=True)
class OverrideRule:
    key: str
    requirement_names: Tuple[str, ...]
    explanation: str
    instruction: str
    keyword_check: Optional[Callable[[str], bool]] = None

    def governs(self, name: str) -> bool:
        folded = name.casefold()
        return any(folded == n.casefold() for n in self.requirement_names)


OVERRIDE_RULES: Tuple[OverrideRule, ...] = (
    OverrideRule(
        key="ethics",
        requirement_names=("Ethics", "Ethical Reasoning"),
        explanation="Ethics requirements can only be met by courses offered by the Philosophy department",
        instruction=(
            "ETHICS: Only mark this requirement MET when the syllabus shows the course is offered "
            "by a Philosophy department (for example a PHIL course code or a Department of "
            "Philosophy heading). Courses from any other department are NOT MET, however much "
            "ethical content they contain."
        ),
    ),
    OverrideRule(
        key="modern_language",
        requirement_names=("Modern Language",),
        explanation="Course must include active instruction in communicating in a language other than English",
        instruction=(
            "MODERN LANGUAGE: Only mark this requirement MET when the course explicitly teaches "
            "students to speak, read, write or listen in a language other than English. Courses "
            "that merely study other cultures or read translated texts are NOT MET."
        ),
    ),
    OverrideRule(
        key="creativity",
        requirement_names=("Creativity and Making",),
        explanation="More than half of course content must be dedicated to creative activities",
        instruction=(
            "CREATIVITY AND MAKING: Only mark this requirement MET when more than 50% of the "
            "course content is creative-discipline work (creative writing, theater, visual art, "
            "design, studio work, performance, film, music composition and the like). Occasional "
            "creative assignments in an otherwise non-creative course are NOT MET."
        ),
        keyword_check=has_substantial_creative_content,
    ),
)


def find_rule(name: str) -> Optional[OverrideRule]:
    for rule in OVERRIDE_RULES:
        if rule.governs(name):
            return rule
    return None


def prompt_instructions(names: Iterable[str]) -> List[str]:
    instructions = []
    for name in names:
        rule = find_rule(name)
        if rule and rule.instruction not in instructions:
            instructions.append(rule.instruction)
    return instructions


def keyword_rejection(name: str, syllabus_text: str) -> Optional[str]:
    """Explanation to force-reject with, or None when no keyword rule blocks ``name``."""
    rule = find_rule(name)
    if rule is None or rule.keyword_check is None:
        return None
    if rule.keyword_check(syllabus_text):
        return None
    return rule.explanation


def annotate_rejection(rejected: RejectedRequirement) -> RejectedRequirement:
    rule = find_rule(rejected.name)
    if rule is None:
        return rejected
    present = {m.casefold() for m in rejected.missing_requirements}
    if rule.explanation.casefold() in present:
        return rejected
    return rejected.model_copy(
        update={"missing_requirements": [*rejected.missing_requirements, rule.explanation]}
    )
