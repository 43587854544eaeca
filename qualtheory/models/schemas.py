from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional

RelationshipType = Literal["causes", "influences", "triggers", "precedes", "enables", "constrains"]
Strength = Literal["strong", "moderate", "weak"]
ExtractionMode = Literal["inductive", "deductive", "hybrid"]
AnalysisDepth = Literal["surface", "deep", "latent"]
Paradigm = Literal["constructivist", "objectivist", "critical"]
ThemeLinkType = Literal["encompasses", "precedes", "influences", "contrasts", "complements"]


# --- codebook ---------------------------------------------------------------

class InitialCode(BaseModel):
    id: str
    label: str
    segment: str = ""
    line: Optional[int] = None
    type: Literal["in_vivo", "constructed", "semantic", "latent"] = "constructed"
    memo: Optional[str] = None
    data_source: str = ""

class Code(BaseModel):
    id: str
    label: str
    definition: str = ""
    when_to_use: str = ""
    when_not_to_use: str = ""
    examples: List[str] = Field(default_factory=list)
    frequency: int = 0
    child_codes: Optional[List[str]] = None
    source: Literal["initial", "refined", "merged"] = "refined"
    merged_from: Optional[List[str]] = None

class CodeHierarchy(BaseModel):
    root_codes: List[str] = Field(default_factory=list)
    relationships: Dict[str, List[str]] = Field(default_factory=dict)

class MergedCode(BaseModel):
    new_code_id: str
    original_code_ids: List[str] = Field(default_factory=list)
    reason: str = ""
    confidence: float = 0.8

class CodebookMetrics(BaseModel):
    total_codes: int = 0
    hierarchy_depth: int = 0
    average_code_frequency: float = 0.0
    redundancy_score: float = 0.0

class Codebook(BaseModel):
    version: str = "1.0"
    project_name: str = ""
    methodology: Optional[str] = None
    codes: List[Code] = Field(default_factory=list)
    code_hierarchy: CodeHierarchy = Field(default_factory=CodeHierarchy)
    merged_codes: List[MergedCode] = Field(default_factory=list)
    refinement_notes: str = ""
    quality_metrics: CodebookMetrics = Field(default_factory=CodebookMetrics)
    created_at: datetime = Field(default_factory=datetime.now)


# --- themes -----------------------------------------------------------------

class Quote(BaseModel):
    id: str = ""
    text: str
    source: str = "unknown"
    participant: Optional[str] = None
    context: str = ""
    code_labels: List[str] = Field(default_factory=list)

class Subtheme(BaseModel):
    id: str
    name: str
    definition: str = ""
    related_codes: List[str] = Field(default_factory=list)
    supporting_quotes: List[Quote] = Field(default_factory=list)

class Prevalence(BaseModel):
    participants: int = 0
    total_participants: int = 0
    data_points: int = 0

    @property
    def fraction(self) -> float:
        if self.total_participants <= 0:
            return 0.0
        return min(1.0, max(0, self.participants) / self.total_participants)

class Theme(BaseModel):
    id: str
    name: str
    central_concept: str = ""
    definition: str = ""
    subthemes: Optional[List[Subtheme]] = None
    related_codes: List[str] = Field(default_factory=list)
    supporting_quotes: List[Quote] = Field(default_factory=list)
    prevalence: Prevalence = Field(default_factory=Prevalence)
    significance: str = ""
    extraction_mode: ExtractionMode = "inductive"
    analysis_depth: AnalysisDepth = "deep"

class ThemeLink(BaseModel):
    from_theme_id: str
    to_theme_id: str
    relationship_type: ThemeLinkType
    description: str = ""

class ThemeMap(BaseModel):
    themes: List[Theme] = Field(default_factory=list)
    relationships: List[ThemeLink] = Field(default_factory=list)
    overarching_narrative: str = ""


# --- theory -----------------------------------------------------------------

class ThemeRelationship(BaseModel):
    """Directed relationship between two themes (categories)."""
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    type: RelationshipType
    explanation: str = ""
    strength: Strength = "moderate"
    evidence: List[str] = Field(default_factory=list)

# grounded theory terminology
CategoryRelationship = ThemeRelationship

class ParadigmModel(BaseModel):
    phenomenon: str = ""
    causal_conditions: List[str] = Field(default_factory=list)
    context: List[str] = Field(default_factory=list)
    strategies: List[str] = Field(default_factory=list)
    consequences: List[str] = Field(default_factory=list)
    intervening_conditions: List[str] = Field(default_factory=list)

    def all_assigned(self) -> Dict[str, str]:
        """Map each theme name placed in one of the five lists to its slot."""
        out: Dict[str, str] = {}
        for slot in ("causal_conditions", "context", "strategies", "consequences", "intervening_conditions"):
            for name in getattr(self, slot):
                out[name] = slot
        return out

class TheoreticalIntegration(BaseModel):
    linked_theories: List[str] = Field(default_factory=list)
    contribution: str = ""
    novelty: str = ""
    practical_implications: List[str] = Field(default_factory=list)
    future_research: List[str] = Field(default_factory=list)

class SaturationEvidence(BaseModel):
    categories_saturated: bool = False
    negative_cases_examined: int = 0
    data_support: str = ""
    saturated_categories: List[str] = Field(default_factory=list)
    unsaturated_categories: List[str] = Field(default_factory=list)

class QualityAssessment(BaseModel):
    overall_quality: float
    criteria_scores: Dict[str, float] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    passes_quality_threshold: bool = False

class GroundedTheory(BaseModel):
    title: str
    core_category: str
    paradigm: Paradigm = "constructivist"
    paradigm_model: ParadigmModel = Field(default_factory=ParadigmModel)
    storyline: str = ""
    theoretical_propositions: List[str] = Field(default_factory=list)
    category_relationships: List[ThemeRelationship] = Field(default_factory=list)
    theoretical_integration: TheoreticalIntegration = Field(default_factory=TheoreticalIntegration)
    saturation_evidence: SaturationEvidence = Field(default_factory=SaturationEvidence)
    project_name: str = ""
    research_question: str = ""
    version: str = "1.0"
    created_at: datetime = Field(default_factory=datetime.now)
    quality: Optional[QualityAssessment] = None

class Memo(BaseModel):
    id: str
    type: Literal["initial", "focused", "theoretical", "reflective"] = "theoretical"
    content: str
    related_codes: List[str] = Field(default_factory=list)
    related_themes: List[str] = Field(default_factory=list)


# --- tool requests / responses ----------------------------------------------

class CodebookRefinementRequest(BaseModel):
    project_name: str = Field(min_length=1)
    methodology: Optional[str] = None
    merge_similar: bool = True
    min_frequency: Optional[int] = None
    preserve_in_vivo: bool = True

class CodebookSummary(BaseModel):
    initial_code_count: int
    final_code_count: int
    merged_code_count: int
    hierarchy_levels: int
    quality_score: float

class CodebookRefinementResponse(BaseModel):
    codebook: Codebook
    summary: CodebookSummary
    assessment: QualityAssessment
    recommendations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

class ThemeExtractionRequest(BaseModel):
    project_name: str = Field(min_length=1)
    mode: ExtractionMode = "inductive"
    depth: AnalysisDepth = "deep"
    research_question: Optional[str] = None
    theoretical_framework: Optional[str] = None
    min_prevalence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

class ThemeQualityMetrics(BaseModel):
    coherence: float
    distinctiveness: float
    coverage: float
    saturation: bool

class ThemeExtractionResponse(BaseModel):
    themes: List[Theme]
    theme_map: ThemeMap
    extraction_mode: ExtractionMode
    quality_metrics: ThemeQualityMetrics
    assessment: QualityAssessment
    recommendations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

class GroundedTheoryRequest(BaseModel):
    project_name: str = Field(min_length=1)
    paradigm: Paradigm = "constructivist"
    research_question: str = ""
    theoretical_sensitivity: List[str] = Field(default_factory=list)
    focus_on_process: bool = True

class TheoryVisualizations(BaseModel):
    paradigm_diagram: str
    process_model: str
    category_map: str

class GroundedTheoryResponse(BaseModel):
    grounded_theory: GroundedTheory
    visualizations: TheoryVisualizations
    assessment: QualityAssessment
    recommendations: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
