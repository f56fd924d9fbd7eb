import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from genedai import overrides
from genedai.catalog import RequirementCatalog
from genedai.completion import CompletionService
from genedai.config import BATCH_SYLLABUS_CHARS, COURSE_INFO_CHARS
from genedai.exceptions import CompletionError, SemanticMatchError
from genedai.schemas import (
    ApprovedRequirement,
    BatchResponse,
    CourseIdentification,
    MatchOutcome,
    RejectedRequirement,
    RequirementDefinition,
    RequirementStatus,
)
from genedai.utils import truncate

logger = logging.getLogger(__name__)

UNKNOWN_COURSE = "Unknown Course"

COURSE_INFO_SYSTEM = (
    "You are an expert academic document analyzer. Extract the course name and course code "
    "from the syllabus text. Course codes typically follow formats like 'ENGL 101' or "
    "'MATH 304'. If you cannot find the course name or code, use null for that field.\n\n"
    'Return JSON only: {"courseName": "string or null", "courseCode": "string or null"}'
)


@dataclass
class BatchOutcome:
    """Result of one requirement batch: either the verdicts or the error that dropped it."""
    index: int
    requirement_names: List[str]
    approved: List[ApprovedRequirement] = field(default_factory=list)
    rejected: List[RejectedRequirement] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MergedBatches:
    approved: List[ApprovedRequirement]
    rejected: List[RejectedRequirement]
    dropped_batches: List[BatchOutcome]

    @property
    def dropped_requirements(self) -> List[str]:
        return [name for b in self.dropped_batches for name in b.requirement_names]


def merge_batches(outcomes: Iterable[BatchOutcome]) -> MergedBatches:
    # Failed batches are discarded: their requirements are simply absent from
    # approved/rejected. They are not retried and not defaulted to rejected.
    approved, rejected, dropped = [], [], []
    for outcome in sorted(outcomes, key=lambda o: o.index):
        if outcome.ok:
            approved.extend(outcome.approved)
            rejected.extend(outcome.rejected)
        else:
            dropped.append(outcome)
    return MergedBatches(approved=approved, rejected=rejected, dropped_batches=dropped)


class EvaluateAgent:
    def __init__(self, service: CompletionService, batch_size: int = 3, max_concurrent_batches: int = 1):
        if batch_size < 1 or max_concurrent_batches < 1:
            raise ValueError("batch_size and max_concurrent_batches must be at least 1")
        self.service = service
        self.batch_size = batch_size
        self.max_concurrent_batches = max_concurrent_batches

    async def evaluate_batches(self, syllabus_text: str, catalog: RequirementCatalog) -> MatchOutcome:
        if not self.service.is_configured:
            raise SemanticMatchError("Completion service is not configured.")

        course_name, course_code = await self.identify_course(syllabus_text)

        batches = catalog.batches(self.batch_size)
        logger.info(f"Processing {len(catalog)} requirements in {len(batches)} batches")
        outcomes = await self._run_batches(syllabus_text, batches)
        merged = merge_batches(outcomes)

        if batches and len(merged.dropped_batches) == len(batches):
            last_error = merged.dropped_batches[-1].error
            raise SemanticMatchError(f"All {len(batches)} requirement batches failed: {last_error}") from last_error
        if merged.dropped_batches:
            logger.warning(
                f"Dropped {len(merged.dropped_batches)} of {len(batches)} batches; "
                f"{len(merged.dropped_requirements)} requirements left unassessed: "
                f"{', '.join(merged.dropped_requirements)}"
            )

        assessed = {r.name for r in merged.approved} | {r.name for r in merged.rejected}
        unassessed = [name for name in catalog.names() if name not in assessed]

        logger.info(
            f"AI analysis summary: {len(merged.approved)} approved, "
            f"{len(merged.rejected)} rejected, {len(unassessed)} unassessed"
        )
        return MatchOutcome(
            approved=merged.approved,
            rejected=merged.rejected,
            course_name=course_name,
            course_code=course_code,
            unassessed_requirements=unassessed,
        )

    async def identify_course(self, syllabus_text: str) -> Tuple[str, str]:
        try:
            data = await self.service.complete_json(
                COURSE_INFO_SYSTEM,
                f"Extract the course name and course code from this syllabus:\n\n"
                f"{truncate(syllabus_text, COURSE_INFO_CHARS)}",
            )
            info = CourseIdentification.model_validate(data)
        except Exception as e:
            # Course identification never aborts the analysis.
            logger.warning(f"Course identification failed, using placeholders: {e}")
            return UNKNOWN_COURSE, ""

        name = (info.course_name or "").strip() or UNKNOWN_COURSE
        code = (info.course_code or "").strip()
        logger.info(f"Course identified as: {name} ({code})")
        return name, code

    async def _run_batches(
        self, syllabus_text: str, batches: Sequence[List[RequirementDefinition]]
    ) -> List[BatchOutcome]:
        # Batches are independent, so running them concurrently cannot change
        # any verdict; the default of one keeps calls sequential.
        gate = asyncio.Semaphore(self.max_concurrent_batches)

        async def run(index: int, batch: List[RequirementDefinition]) -> BatchOutcome:
            async with gate:
                return await self._guarded_batch(syllabus_text, batch, index, len(batches))

        return list(await asyncio.gather(*(run(i, b) for i, b in enumerate(batches))))

    async def _guarded_batch(
        self, syllabus_text: str, batch: List[RequirementDefinition], index: int, total: int
    ) -> BatchOutcome:
        names = [r.name for r in batch]
        logger.info(f"Processing batch {index + 1}/{total}: {', '.join(names)}")
        try:
            approved, rejected = await self.evaluate_batch(syllabus_text, batch, index, total)
        except Exception as e:
            logger.error(f"Error processing batch {index + 1} ({', '.join(names)}): {e}")
            return BatchOutcome(index=index, requirement_names=names, error=e)

        logger.info(f"Batch {index + 1} complete: {len(approved)} approved, {len(rejected)} rejected")
        return BatchOutcome(index=index, requirement_names=names, approved=approved, rejected=rejected)

    async def evaluate_batch(
        self, syllabus_text: str, batch: List[RequirementDefinition], index: int = 0, total: int = 1
    ) -> Tuple[List[ApprovedRequirement], List[RejectedRequirement]]:
        data = await self.service.complete_json(
            self._batch_system_prompt(batch, index, total),
            json.dumps({
                "requirements": [
                    {
                        "name":             r.name,
                        "description":      r.description,
                        "slos":             list(r.slos),
                        "requiredElements": list(r.required_elements),
                    }
                    for r in batch
                ],
                "syllabus_text": truncate(syllabus_text, BATCH_SYLLABUS_CHARS),
            }),
        )
        try:
            response = BatchResponse.model_validate(data)
        except ValidationError as e:
            raise CompletionError(f"Batch response did not match the expected schema: {e}") from e
        return self._normalise(response, batch)

    def _batch_system_prompt(self, batch: List[RequirementDefinition], index: int, total: int) -> str:
        rules = overrides.prompt_instructions(r.name for r in batch)
        special = ""
        if rules:
            special = "\nSpecial rules (these override the thresholds above):\n" + "\n".join(
                f"- {rule}" for rule in rules
            ) + "\n"

        return f"""You are an expert in academic curriculum analysis. Batch {index + 1} of {total}.

Analyze the syllabus against each General Education requirement you are given.

For each requirement, determine:
1. Whether it is MET or NOT MET based on the syllabus content.
2. For MET requirements: which required elements are present and which Student
   Learning Outcomes (SLOs) are addressed.
3. For NOT MET requirements: which required elements are missing and which SLOs
   are not adequately addressed.

A requirement is MET only if:
- at least 60% of its required elements are present in the syllabus, and
- at least 60% of its SLOs are addressed.
{special}
Copy required elements exactly as written in the requirement. SLOs are numbered
from 1 in the order given.

Return JSON only, with one entry per requirement:
{{
  "results": [
    {{
      "requirement": "Requirement Name",
      "status": "MET" or "NOT MET",
      "matchingElements": ["..."],
      "matchingSLOs": [1, 2],
      "missingElements": ["..."],
      "missingSLOs": [3]
    }}
  ]
}}"""

    def _normalise(
        self, response: BatchResponse, batch: List[RequirementDefinition]
    ) -> Tuple[List[ApprovedRequirement], List[RejectedRequirement]]:
        by_name = {r.name.casefold(): r for r in batch}
        seen = set()
        approved, rejected = [], []

        for item in response.results:
            definition = by_name.get(item.requirement.strip().casefold())
            if definition is None:
                logger.warning(f"Ignoring result for requirement outside this batch: {item.requirement!r}")
                continue
            if definition.name in seen:
                logger.warning(f"Ignoring duplicate result for {definition.name!r}")
                continue
            seen.add(definition.name)

            if item.status is RequirementStatus.MET:
                approved.append(ApprovedRequirement(
                    name                  = definition.name,
                    matching_requirements = _known_elements(item.matching_elements, definition),
                    matching_slos         = _valid_slos(item.matching_slos, definition),
                ))
            else:
                rejected.append(overrides.annotate_rejection(RejectedRequirement(
                    name                 = definition.name,
                    missing_requirements = _known_elements(item.missing_elements, definition),
                    missing_slos         = _valid_slos(item.missing_slos, definition),
                )))

        omitted = [r.name for r in batch if r.name not in seen]
        if omitted:
            logger.warning(f"Model returned no verdict for: {', '.join(omitted)}")
        return approved, rejected


def _known_elements(elements: Iterable[str], definition: RequirementDefinition) -> List[str]:
    literal = {e.casefold(): e for e in definition.required_elements}
    result = []
    for element in elements:
        match = literal.get(element.strip().casefold())
        if match and match not in result:
            result.append(match)
    return result


def _valid_slos(indices: Iterable[int], definition: RequirementDefinition) -> List[int]:
    allowed = definition.slo_range()
    return sorted({i for i in indices if i in allowed})
