import math
import re
from typing import List, Tuple

from genedai import overrides
from genedai.catalog import RequirementCatalog
from genedai.schemas import (
    ApprovedRequirement,
    MatchOutcome,
    RejectedRequirement,
    RequirementDefinition,
)

UNNAMED_COURSE = "Unnamed Course"

COURSE_CODE_RE = re.compile(r"\b([A-Z]{2,4})\s*(\d{3,4})[A-Z]?\b")


class KeywordAgent:
    """Deterministic fallback matcher. No external calls; same input, same output."""

    APPROVAL_RATIO   = 0.6
    KEYWORD_OVERLAP  = 0.7
    MIN_WORD_LENGTH  = 4

    def evaluate(self, syllabus_text: str, catalog: RequirementCatalog) -> MatchOutcome:
        text = syllabus_text or ""
        normalized = text.lower()
        course_name, course_code = self.extract_course_info(text)

        approved: List[ApprovedRequirement] = []
        rejected: List[RejectedRequirement] = []
        for requirement in catalog:
            verdict = self._evaluate_requirement(requirement, normalized)
            if isinstance(verdict, ApprovedRequirement):
                approved.append(verdict)
            else:
                rejected.append(verdict)

        return MatchOutcome(
            approved=approved,
            rejected=rejected,
            course_name=course_name,
            course_code=course_code,
        )

    def _evaluate_requirement(self, requirement: RequirementDefinition, normalized: str):
        matching_elements = [e for e in requirement.required_elements if self.is_present(normalized, e)]
        matching_slos, missing_slos = [], []
        for index, slo in enumerate(requirement.slos, start=1):
            (matching_slos if self.is_present(normalized, slo) else missing_slos).append(index)
        missing_elements = [e for e in requirement.required_elements if e not in matching_elements]

        forced = overrides.keyword_rejection(requirement.name, normalized)
        if forced is not None:
            return RejectedRequirement(
                name=requirement.name,
                missing_requirements=[*missing_elements, forced],
                missing_slos=missing_slos,
            )

        if self.meets_threshold(len(matching_elements), len(requirement.required_elements)) \
                and self.meets_threshold(len(matching_slos), len(requirement.slos)):
            return ApprovedRequirement(
                name=requirement.name,
                matching_requirements=matching_elements,
                matching_slos=matching_slos,
            )
        return RejectedRequirement(
            name=requirement.name,
            missing_requirements=missing_elements,
            missing_slos=missing_slos,
        )

    def meets_threshold(self, matched: int, total: int) -> bool:
        return matched >= math.ceil(total * self.APPROVAL_RATIO)

    def is_present(self, normalized_text: str, phrase: str) -> bool:
        phrase = phrase.lower()
        return phrase in normalized_text or self.keyword_overlap(normalized_text, phrase)

    def keyword_overlap(self, normalized_text: str, phrase: str) -> bool:
        # Order-independent, not proximity-aware. Tokens keep their punctuation,
        # so "information." only matches where the text has it too.
        words = [w for w in phrase.split() if len(w) >= self.MIN_WORD_LENGTH]
        if not words:
            return False
        found = sum(1 for w in words if w in normalized_text)
        return found / len(words) >= self.KEYWORD_OVERLAP

    @staticmethod
    def extract_course_info(text: str) -> Tuple[str, str]:
        match = COURSE_CODE_RE.search(text)
        if not match:
            return UNNAMED_COURSE, ""

        course_code = f"{match.group(1)} {match.group(2)}"
        rest = text[match.end():].split("\n", 1)[0]
        course_name = rest.strip().lstrip(":-–").strip()
        return course_name or UNNAMED_COURSE, course_code
