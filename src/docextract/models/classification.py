"""Classification models and the aggregate analysis result."""

from enum import Enum
from typing import Optional

from pydantic import Field

from .base import PipelineModel
from .field import ExtractedField


class ClassificationSource(str, Enum):
    """Stage that produced a classification."""

    AWS_COMPREHEND = "AWS Comprehend"
    OPENAI = "OpenAI"


class AnalysisState(str, Enum):
    """Linear states of one document analysis."""

    START = "start"
    TEXT_EXTRACTED = "text_extracted"
    HEURISTIC_CLASSIFIED = "heuristic_classified"
    LLM_CLASSIFIED = "llm_classified"
    TFN_SCANNED = "tfn_scanned"
    DONE = "done"


class ClassificationResult(PipelineModel):
    """The authoritative classification of a document."""

    type: str
    sub_type: str = ""
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: ClassificationSource

    class Config:
        frozen = True


class StageClassification(PipelineModel):
    """Raw classification reported by a single stage."""

    type: str
    sub_type: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: Optional[str] = None


class DetectedEntity(PipelineModel):
    """Named entity reported by the entity detection provider."""

    type: str = "UNKNOWN"
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    text: Optional[str] = None


class EntityTypeScore(PipelineModel):
    """Frequency and average score of one entity type."""

    name: str
    count: int = Field(..., ge=0)
    score: float = Field(..., ge=0.0, le=1.0)


class SentimentResult(PipelineModel):
    """Overall sentiment of a document's text."""

    sentiment: str = "NEUTRAL"
    scores: dict[str, float] = Field(
        default_factory=lambda: {"positive": 0.0, "negative": 0.0, "neutral": 1.0, "mixed": 0.0}
    )


class EntityProfile(PipelineModel):
    """Entity-frequency profile of a document's text.

    Language and sentiment are only set when the heuristic classifier has
    providers for them.
    """

    dominant: str = "UNKNOWN"
    classes: list[EntityTypeScore] = Field(default_factory=list)
    language_code: Optional[str] = None
    sentiment: Optional[SentimentResult] = None

    @property
    def dominant_score(self) -> float:
        """Average score of the dominant type (1.0 when nothing was detected)."""
        for entry in self.classes:
            if entry.name == self.dominant:
                return entry.score
        return 1.0


class SubTypeOption(PipelineModel):
    """Allowed sub-type in the classification taxonomy."""

    id: str
    name: str
    description: Optional[str] = None


class DocumentTypeOption(PipelineModel):
    """Allowed document type in the classification taxonomy."""

    id: str
    name: str
    description: Optional[str] = None
    sub_types: list[SubTypeOption] = Field(default_factory=list)


class AnalysisFlags(PipelineModel):
    """Caller toggles for the optional analysis stages."""

    auto_classify: bool = True
    use_text_extraction: bool = False
    scan_for_tfn: bool = False


class TextExtraction(PipelineModel):
    """Outcome of the mandatory text extraction stage."""

    success: bool = True
    text: str = ""


class TfnDetection(PipelineModel):
    """Outcome of the sensitive identifier scan."""

    detected: bool = False
    count: Optional[int] = None
    error: Optional[str] = None


class AnalysisResults(PipelineModel):
    """
    Aggregate output of one document analysis.

    Rebuilt (never mutated) after every stage. ``classification`` is left
    unset when no classification stage ran or succeeded.
    """

    state: AnalysisState = AnalysisState.START
    text_extraction: Optional[TextExtraction] = None
    classification: Optional[ClassificationResult] = None
    aws_classification: Optional[StageClassification] = None
    gpt_classification: Optional[StageClassification] = None
    tfn_detection: Optional[TfnDetection] = None
    extracted_fields: Optional[list[ExtractedField]] = None
    entity_profile: Optional[EntityProfile] = None
    sentiment: Optional[SentimentResult] = None
    language_code: Optional[str] = None
    stage_errors: dict[str, str] = Field(default_factory=dict)
    superseded: bool = False

    class Config:
        frozen = True

    @property
    def text(self) -> str:
        """Extracted plain text, empty before text extraction."""
        return self.text_extraction.text if self.text_extraction else ""
