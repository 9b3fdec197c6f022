"""Pydantic models describing a profile audit.

The same classes drive the Gemini response schema (see ``audit.schema``) and
the validation of the model answer, so field order, required-ness and numeric
bounds here are the contract with the provider.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NOT_FOUND_SENTINEL = "No se encontró información"
DEFAULT_SOURCE_TITLE = "Fuente externa"
EXPECTED_COMPETITORS = 3

Priority = Literal["Alta", "Media", "Baja"]


class AuditModel(BaseModel):
    """Frozen base model with camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Contact(AuditModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: str
    main_link: Optional[str] = None


class BasicInfo(AuditModel):
    handle: str
    business_name: str
    category: str
    bio: str
    services: List[str]
    location: str
    target_audience: str
    unique_value_prop: str
    contact: Contact


class ContentType(AuditModel):
    type: str
    percentage: float = Field(ge=0, le=100)


class QualityScore(AuditModel):
    visual: float = Field(ge=0, le=10)
    copywriting: float = Field(ge=0, le=10)


class ContentMetrics(AuditModel):
    post_frequency: str
    content_types: List[ContentType]
    themes: List[str]
    tone: str
    visual_style: str
    engagement_level: str = Field(description="Qualitative label, e.g. Alto / Medio / Bajo.")
    brand_consistency: float = Field(ge=0, le=10)
    quality_score: QualityScore


class CompetitorMetrics(AuditModel):
    presence: float = Field(ge=0, le=10)
    consistency: float = Field(ge=0, le=10)
    professionalism: float = Field(ge=0, le=10)
    engagement: float = Field(ge=0, le=10)


class Competitor(AuditModel):
    name: str
    strengths: List[str]
    weaknesses: List[str]
    practices: List[str]
    metrics: CompetitorMetrics


class Opportunity(AuditModel):
    area: str
    priority: Priority
    advice: str


class Diagnosis(AuditModel):
    overall_score: float = Field(ge=0, le=10)
    executive_summary: str
    opportunities: List[Opportunity]
    gaps_vs_competitors: List[str]


class Solution(AuditModel):
    web_design: str
    chatbot: str
    booking_system: str
    social_optimization: str


class ProjectedBenefit(AuditModel):
    metric: str
    improvement: str


class CommercialProposal(AuditModel):
    introduction: str
    pain_points: List[str]
    solution: Solution
    projected_benefits: List[ProjectedBenefit]


class AuditPayload(AuditModel):
    """The five sections Gemini must return for a profile."""

    basic_info: BasicInfo
    content_metrics: ContentMetrics
    competitors: List[Competitor] = Field(
        description=f"Exactly {EXPECTED_COMPETITORS} real competitors in the same sector and scale."
    )
    diagnosis: Diagnosis
    commercial_proposal: CommercialProposal

    @property
    def profile_not_found(self) -> bool:
        return self.basic_info.business_name.strip().casefold() == NOT_FOUND_SENTINEL.casefold()


class Source(AuditModel):
    title: str
    uri: str


class AnalysisResult(AuditPayload):
    """Validated audit plus the web sources Gemini grounded it on."""

    sources: List[Source] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "AnalysisResult",
    "AuditPayload",
    "BasicInfo",
    "CommercialProposal",
    "Competitor",
    "CompetitorMetrics",
    "Contact",
    "ContentMetrics",
    "ContentType",
    "Diagnosis",
    "Opportunity",
    "Priority",
    "ProjectedBenefit",
    "QualityScore",
    "Solution",
    "Source",
    "NOT_FOUND_SENTINEL",
    "DEFAULT_SOURCE_TITLE",
    "EXPECTED_COMPETITORS",
]
