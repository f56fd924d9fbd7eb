"""
Analysis orchestrator.

Per document: text extraction -> AI batch evaluation -> fit ranking.
When the AI path fails as a whole the keyword matcher produces the
verdicts instead; ranking failures never change the analysis method.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from genedai.agents.evaluate_agent import EvaluateAgent
from genedai.agents.keyword_agent import KeywordAgent
from genedai.agents.parse_agent import ParseAgent, validate_upload
from genedai.agents.ranking_agent import RankingAgent
from genedai.catalog import RequirementCatalog
from genedai.exceptions import DocumentError, SemanticMatchError
from genedai.schemas import (
    AnalysisResult,
    BatchAnalysis,
    CourseInfo,
    FileError,
    FitRanking,
    MatchOutcome,
    SyllabusAnalysis,
)

logger = logging.getLogger(__name__)

MAX_PARALLEL_FILES = 4


@dataclass(frozen=True)
class UploadedSyllabus:
    file_name: str
    file_path: str
    file_size: int


def resolve_course(outcome: MatchOutcome, course_info: Optional[CourseInfo]) -> Tuple[str, str]:
    # A supplied value wins even when it is "", which signals an explicit override.
    name, code = outcome.course_name, outcome.course_code
    if course_info is not None:
        if course_info.course_name is not None:
            name = course_info.course_name
        if course_info.course_code is not None:
            code = course_info.course_code
    return name, code


class SyllabusAnalyzer:
    def __init__(
        self,
        catalog: RequirementCatalog,
        keyword_agent: KeywordAgent,
        evaluate_agent: Optional[EvaluateAgent] = None,
        ranking_agent: Optional[RankingAgent] = None,
        parse_agent: Optional[ParseAgent] = None,
    ):
        self.catalog = catalog
        self.keyword_agent = keyword_agent
        self.evaluate_agent = evaluate_agent
        self.ranking_agent = ranking_agent
        self.parse_agent = parse_agent

    async def analyze(self, syllabus_text: str, course_info: Optional[CourseInfo] = None) -> AnalysisResult:
        ranking = FitRanking()
        try:
            if self.evaluate_agent is None:
                raise SemanticMatchError("AI analysis is not configured.")
            outcome = await self.evaluate_agent.evaluate_batches(syllabus_text, self.catalog)
            method = "ai"
        except Exception as e:
            logger.warning(f"AI analysis failed, falling back to keyword analysis: {e}")
            outcome = self.keyword_agent.evaluate(syllabus_text, self.catalog)
            method = "keyword"
        else:
            if self.ranking_agent is not None:
                ranking = await self.ranking_agent.rank_fits(
                    syllabus_text,
                    [r.name for r in outcome.approved],
                    [r.name for r in outcome.rejected],
                    self.catalog,
                )

        course_name, course_code = resolve_course(outcome, course_info)
        return AnalysisResult(
            course_name             = course_name,
            course_code             = course_code,
            approved_requirements   = outcome.approved,
            rejected_requirements   = outcome.rejected,
            best_fit                = ranking.best_fit,
            potential_fits          = ranking.potential_fits,
            poor_fits               = ranking.poor_fits,
            analysis_method         = method,
            unassessed_requirements = outcome.unassessed_requirements,
        )

    async def analyze_file(
        self, upload: UploadedSyllabus, course_info: Optional[CourseInfo] = None
    ) -> SyllabusAnalysis:
        file_type = validate_upload(upload.file_name, upload.file_size)
        if self.parse_agent is None:
            raise DocumentError("No document parser is configured.")

        text = await self.parse_agent.parse_file(upload.file_path)
        result = await self.analyze(text, course_info)
        logger.info(
            f"Analyzed {upload.file_name} ({result.analysis_method}): "
            f"{len(result.approved_requirements)} approved, {len(result.rejected_requirements)} rejected"
        )
        return SyllabusAnalysis(
            **result.model_dump(),
            file_name=upload.file_name,
            file_size=upload.file_size,
            file_type=file_type,
            upload_date=datetime.now(timezone.utc),
            content=text,
        )

    async def analyze_files(
        self, uploads: Sequence[UploadedSyllabus], course_info: Optional[CourseInfo] = None
    ) -> BatchAnalysis:
        """Each file is an independent pipeline; one failure never touches its siblings."""
        gate = asyncio.Semaphore(MAX_PARALLEL_FILES)

        async def run(upload: UploadedSyllabus) -> SyllabusAnalysis:
            async with gate:
                return await self.analyze_file(upload, course_info)

        results = await asyncio.gather(*(run(u) for u in uploads), return_exceptions=True)

        successes: List[SyllabusAnalysis] = []
        errors: List[FileError] = []
        for upload, r in zip(uploads, results):
            if isinstance(r, BaseException):
                logger.error(f"Failed to analyze {upload.file_name}: {r}")
                errors.append(FileError(file_name=upload.file_name, error=str(r) or type(r).__name__))
            else:
                successes.append(r)
        return BatchAnalysis(successes=successes, errors=errors)
