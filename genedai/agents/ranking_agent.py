import json
import logging
from typing import Iterable, List, Sequence

from pydantic import ValidationError

from genedai.catalog import RequirementCatalog
from genedai.completion import CompletionService
from genedai.config import OUTCOME_SYLLABUS_CHARS
from genedai.exceptions import CompletionError
from genedai.schemas import FitRanking, OutcomeExtraction, RankingResponse, RequirementFit
from genedai.utils import truncate

logger = logging.getLogger(__name__)

NO_OUTCOMES = "No specific learning outcomes were identified in the syllabus."
MIN_OUTCOME_CHARS = 10
MAX_BEST_FITS = 2

OUTCOME_SYSTEM = """You are an expert in academic curriculum analysis.

Extract the course's own stated Student Learning Outcomes (also called course
objectives, learning goals or course outcomes) from the syllabus. Copy each
outcome close to its original wording. Do not invent outcomes that are not in
the syllabus; return an empty list if there are none.

Return JSON only: {"outcomes": ["outcome 1", "outcome 2"]}"""

RANKING_SYSTEM = f"""You are an expert in academic curriculum analysis.

Rank how well a course fits EVERY General Education requirement you are given,
judging the course's own learning outcomes against each requirement's SLOs.
SLO-to-SLO alignment matters more than shared vocabulary.

For every requirement give:
- matchScore: integer 0-100
- matchingSLOs / missingSLOs: requirement SLO numbers (from 1, in the order given)
- reasoning: one or two sentences

Partition the requirements into three buckets, each requirement exactly once:
- bestFits: the strongest fits, at most {MAX_BEST_FITS}, highest score first
- potentialFits: plausible fits
- poorFits: weak or no alignment

The earlier pass/fail assessment is context, not a constraint.

Return JSON only:
{{
  "bestFits":      [{{"name": "...", "matchScore": 90, "matchingSLOs": [1, 2], "missingSLOs": [3], "reasoning": "..."}}],
  "potentialFits": [],
  "poorFits":      []
}}"""


class RankingAgent:
    """Second pass: scores every requirement and picks the best fit.

    Pass/fail says nothing about which single requirement a course fits *best*,
    so this re-frames the problem as ranking over the whole catalog. A failure
    anywhere degrades to an empty ranking; it never aborts the analysis.
    """

    def __init__(self, service: CompletionService):
        self.service = service

    async def rank_fits(
        self,
        syllabus_text: str,
        approved_names: Sequence[str],
        rejected_names: Sequence[str],
        catalog: RequirementCatalog,
    ) -> FitRanking:
        try:
            outcomes = await self.extract_outcomes(syllabus_text)
            response = await self._rank(outcomes, approved_names, rejected_names, catalog)
        except Exception as e:
            logger.error(f"Fit ranking failed, continuing without a ranking: {e}")
            return FitRanking()

        ranking = reshape_ranking(response, catalog)
        logger.info(
            f"Fit ranking: best={ranking.best_fit.name if ranking.best_fit else None}, "
            f"{len(ranking.potential_fits)} potential, {len(ranking.poor_fits)} poor"
        )
        return ranking

    async def extract_outcomes(self, syllabus_text: str) -> str:
        data = await self.service.complete_json(
            OUTCOME_SYSTEM,
            f"Extract the learning outcomes from this syllabus:\n\n"
            f"{truncate(syllabus_text, OUTCOME_SYLLABUS_CHARS)}",
        )
        try:
            extraction = OutcomeExtraction.model_validate(data)
        except ValidationError as e:
            raise CompletionError(f"Outcome extraction did not match the expected schema: {e}") from e

        outcomes = [o.strip() for o in extraction.outcomes if o and o.strip()]
        if len("".join(outcomes)) < MIN_OUTCOME_CHARS:
            logger.info("No usable learning outcomes extracted; ranking with a placeholder")
            return NO_OUTCOMES
        return "\n".join(f"{i}. {o}" for i, o in enumerate(outcomes, start=1))

    async def _rank(
        self,
        outcomes: str,
        approved_names: Sequence[str],
        rejected_names: Sequence[str],
        catalog: RequirementCatalog,
    ) -> RankingResponse:
        data = await self.service.complete_json(
            RANKING_SYSTEM,
            json.dumps({
                "requirements": [
                    {"name": r.name, "description": r.description, "slos": list(r.slos)}
                    for r in catalog
                ],
                "course_learning_outcomes": outcomes,
                "approved_requirements": list(approved_names),
                "rejected_requirements": list(rejected_names),
            }),
        )
        try:
            return RankingResponse.model_validate(data)
        except ValidationError as e:
            raise CompletionError(f"Ranking response did not match the expected schema: {e}") from e


def reshape_ranking(response: RankingResponse, catalog: RequirementCatalog) -> FitRanking:
    """Expose one ``best_fit``; the runner-up best fit leads ``potential_fits``."""
    seen = set()
    best = _clean(response.best_fits, catalog, seen)
    potential = _clean(response.potential_fits, catalog, seen)
    poor = _clean(response.poor_fits, catalog, seen)

    # Anything past the cap is a near-best fit as well.
    return FitRanking(
        best_fit=best[0] if best else None,
        potential_fits=best[1:] + potential,
        poor_fits=poor,
    )


def _clean(fits: Iterable[RequirementFit], catalog: RequirementCatalog, seen: set) -> List[RequirementFit]:
    cleaned = []
    for fit in fits:
        definition = _lookup(catalog, fit.name)
        if definition is None:
            logger.warning(f"Ignoring ranking entry for unknown requirement {fit.name!r}")
            continue
        if definition.name in seen:
            continue
        seen.add(definition.name)
        allowed = definition.slo_range()
        cleaned.append(fit.model_copy(update={
            "name":          definition.name,
            "matching_slos": sorted({i for i in fit.matching_slos if i in allowed}),
            "missing_slos":  sorted({i for i in fit.missing_slos if i in allowed}),
        }))
    return cleaned


def _lookup(catalog: RequirementCatalog, name: str):
    try:
        return catalog.get(name.strip())
    except KeyError:
        return None
