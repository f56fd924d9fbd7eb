# genedai/schemas.py

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ContractModel(BaseModel):
    # camelCase on the wire and in persisted JSON, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _none_to_list(value):
    return [] if value is None else value


# ── Requirement catalog ───────────────────────────────────────────────────────

class RequirementDefinition(ContractModel):
    name: str
    description: str
    slos: Tuple[str, ...]
    required_elements: Tuple[str, ...]
    keywords: Tuple[str, ...] = ()

    @field_validator("slos", "required_elements")
    @classmethod
    def check_not_empty(cls, value):
        if not value:
            raise ValueError("must contain at least one entry")
        return value

    def slo_range(self) -> range:
        return range(1, len(self.slos) + 1)


# ── Matching results ──────────────────────────────────────────────────────────

class ApprovedRequirement(ContractModel):
    name: str
    matching_requirements: List[str] = Field(default_factory=list)
    matching_slos: List[int] = Field(default_factory=list, alias="matchingSLOs")


class RejectedRequirement(ContractModel):
    name: str
    missing_requirements: List[str] = Field(default_factory=list)
    missing_slos: List[int] = Field(default_factory=list, alias="missingSLOs")


class RequirementFit(ContractModel):
    name: str
    match_score: int = Field(ge=0, le=100)
    matching_slos: List[int] = Field(default_factory=list, alias="matchingSLOs")
    missing_slos: List[int] = Field(default_factory=list, alias="missingSLOs")
    reasoning: str = ""

    @field_validator("matching_slos", "missing_slos", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return _none_to_list(value)

    @field_validator("reasoning", mode="before")
    @classmethod
    def none_as_text(cls, value):
        return "" if value is None else value


class FitRanking(ContractModel):
    best_fit: Optional[RequirementFit] = None
    potential_fits: List[RequirementFit] = Field(default_factory=list)
    poor_fits: List[RequirementFit] = Field(default_factory=list)


class MatchOutcome(ContractModel):
    """Output shared by the keyword and AI matchers."""
    approved: List[ApprovedRequirement] = Field(default_factory=list)
    rejected: List[RejectedRequirement] = Field(default_factory=list)
    course_name: str
    course_code: str = ""
    unassessed_requirements: List[str] = Field(default_factory=list)


class CourseInfo(ContractModel):
    """User-supplied course details. ``None`` means "not supplied"; "" is an explicit override."""
    course_name: Optional[str] = None
    course_code: Optional[str] = None


AnalysisMethod = Literal["ai", "keyword"]


class AnalysisResult(ContractModel):
    course_name: str
    course_code: str = ""
    approved_requirements: List[ApprovedRequirement] = Field(default_factory=list)
    rejected_requirements: List[RejectedRequirement] = Field(default_factory=list)
    best_fit: Optional[RequirementFit] = None
    potential_fits: List[RequirementFit] = Field(default_factory=list)
    poor_fits: List[RequirementFit] = Field(default_factory=list)
    analysis_method: AnalysisMethod
    unassessed_requirements: List[str] = Field(default_factory=list)


class SyllabusAnalysis(AnalysisResult):
    file_name: str
    file_size: int = Field(ge=0)
    file_type: str
    upload_date: datetime
    content: str = ""


class StoredAnalysis(SyllabusAnalysis):
    id: int


class FileError(ContractModel):
    file_name: str
    error: str


class BatchAnalysis(ContractModel):
    successes: List[SyllabusAnalysis] = Field(default_factory=list)
    errors: List[FileError] = Field(default_factory=list)


# ── Completion-service payloads ───────────────────────────────────────────────

class RequirementStatus(str, Enum):
    MET = "MET"
    NOT_MET = "NOT MET"


class BatchRequirementResult(ContractModel):
    requirement: str
    status: RequirementStatus
    matching_elements: List[str] = Field(default_factory=list)
    matching_slos: List[int] = Field(default_factory=list, alias="matchingSLOs")
    missing_elements: List[str] = Field(default_factory=list)
    missing_slos: List[int] = Field(default_factory=list, alias="missingSLOs")

    @field_validator(
        "matching_elements", "matching_slos", "missing_elements", "missing_slos", mode="before"
    )
    @classmethod
    def none_as_empty(cls, value):
        return _none_to_list(value)

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, value):
        if isinstance(value, str):
            return " ".join(value.replace("_", " ").split()).upper()
        return value


class BatchResponse(ContractModel):
    results: List[BatchRequirementResult]


class CourseIdentification(ContractModel):
    course_name: Optional[str] = None
    course_code: Optional[str] = None


class OutcomeExtraction(ContractModel):
    outcomes: List[str] = Field(default_factory=list)

    @field_validator("outcomes", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return _none_to_list(value)


class RankingResponse(ContractModel):
    best_fits: List[RequirementFit] = Field(default_factory=list)
    potential_fits: List[RequirementFit] = Field(default_factory=list)
    poor_fits: List[RequirementFit] = Field(default_factory=list)

    @field_validator("best_fits", "potential_fits", "poor_fits", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return _none_to_list(value)
