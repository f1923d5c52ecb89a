"""Classification Stage - Orchestrate text extraction and classifiers.

One analysis walks a fixed, linear sequence of stages:

    START -> TEXT_EXTRACTED -> [HEURISTIC_CLASSIFIED] -> [LLM_CLASSIFIED]
          -> [TFN_SCANNED] -> DONE

Bracketed stages run only when their flag is set. Text extraction is
mandatory and its failure aborts the analysis. Every other stage may fail
on its own: the failure is logged and recorded in ``stage_errors`` and
the analysis carries on with whatever earlier stages produced.

Each stage yields a StageOutcome that ``merge_stage`` folds into a new
AnalysisResults; the aggregate is never patched in place. Precedence
between classifiers is the pure ``resolve_classification``: the last
stage to succeed wins, so an LLM result always replaces a heuristic one.

Analyses share no mutable state and can run concurrently. A caller that
re-triggers analysis of a document can pass tickets from an
AnalysisRegistry; a superseded analysis skips its remaining LLM and scan
calls.
"""

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from docextract.errors import PipelineStageError
from docextract.models import (
    AnalysisFlags,
    AnalysisResults,
    AnalysisState,
    ClassificationResult,
    ClassificationSource,
    DocumentExtraction,
    DocumentTypeOption,
    EntityProfile,
    StageClassification,
    TextExtraction,
    TfnDetection,
)
from docextract.providers.base import (
    DocumentClassifier,
    EntityDetector,
    LanguageDetector,
    SensitiveScanner,
    SentimentDetector,
    TextExtractor,
)
from docextract.providers.entities import (
    EntityProfileClassifier,
    classification_from_profile,
)

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Stages of one analysis, in execution order."""

    TEXT_EXTRACTION = "text_extraction"
    HEURISTIC_CLASSIFICATION = "heuristic_classification"
    LLM_CLASSIFICATION = "llm_classification"
    TFN_SCAN = "tfn_scan"


STAGE_STATES = {
    Stage.TEXT_EXTRACTION: AnalysisState.TEXT_EXTRACTED,
    Stage.HEURISTIC_CLASSIFICATION: AnalysisState.HEURISTIC_CLASSIFIED,
    Stage.LLM_CLASSIFICATION: AnalysisState.LLM_CLASSIFIED,
    Stage.TFN_SCAN: AnalysisState.TFN_SCANNED,
}


@dataclass(frozen=True)
class StageOutcome:
    """Value or error produced by one stage."""

    stage: Stage
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        """Error message, empty for a successful stage."""
        if self.error is None:
            return ""
        return str(self.error) or type(self.error).__name__

    @classmethod
    def success(cls, stage: Stage, value: Any) -> "StageOutcome":
        return cls(stage=stage, value=value)

    @classmethod
    def failure(cls, stage: Stage, error: BaseException) -> "StageOutcome":
        return cls(stage=stage, error=error)


class AnalysisTicket:
    """Handle on one in-flight analysis of a document."""

    def __init__(self, document_id: str, generation: int):
        self.document_id = document_id
        self.generation = generation
        self.superseded = False

    def __repr__(self) -> str:
        return (
            f"AnalysisTicket({self.document_id!r}, generation={self.generation}, "
            f"superseded={self.superseded})"
        )


class AnalysisRegistry:
    """Tracks the newest analysis per document.

    Starting an analysis supersedes any older one for the same document.
    Meant for use from a single event loop.
    """

    def __init__(self):
        self._current: dict[str, AnalysisTicket] = {}
        self._generations = itertools.count(1)

    def begin(self, document_id: str) -> AnalysisTicket:
        """Issue a ticket for a new analysis, superseding the previous one."""
        previous = self._current.get(document_id)
        if previous is not None:
            previous.superseded = True
            logger.info("Analysis %r superseded by a newer request", previous)
        ticket = AnalysisTicket(document_id, next(self._generations))
        self._current[document_id] = ticket
        return ticket

    def finish(self, ticket: AnalysisTicket) -> None:
        """Forget ``ticket`` if it is still the newest for its document."""
        if self._current.get(ticket.document_id) is ticket:
            del self._current[ticket.document_id]

    def is_current(self, ticket: AnalysisTicket) -> bool:
        return self._current.get(ticket.document_id) is ticket


def resolve_classification(
    current: Optional[ClassificationResult],
    candidate: Optional[ClassificationResult],
) -> Optional[ClassificationResult]:
    """Precedence rule: a newly produced classification replaces the current one.

    Stages run heuristic before LLM, so a successful LLM stage always wins
    over the heuristic, regardless of confidence.
    """
    return candidate if candidate is not None else current


def merge_stage(aggregate: AnalysisResults, outcome: StageOutcome) -> AnalysisResults:
    """Fold one stage outcome into a new aggregate.

    Args:
        aggregate: Results so far (not modified).
        outcome: Outcome of the stage that just ran.

    Returns:
        New AnalysisResults including the stage's contribution.
    """
    stage = outcome.stage

    if not outcome.ok:
        update: dict[str, Any] = {
            "stage_errors": {**aggregate.stage_errors, stage.value: outcome.message}
        }
        if stage == Stage.TFN_SCAN:
            update["tfn_detection"] = TfnDetection(detected=False, error=outcome.message)
        return aggregate.model_copy(update=update)

    update = {"state": STAGE_STATES[stage]}

    if stage == Stage.TEXT_EXTRACTION:
        extraction: DocumentExtraction = outcome.value
        update["text_extraction"] = TextExtraction(success=True, text=extraction.text)
        update["extracted_fields"] = list(extraction.fields) or None

    elif stage == Stage.HEURISTIC_CLASSIFICATION:
        profile: EntityProfile = outcome.value
        result = classification_from_profile(profile)
        update["entity_profile"] = profile
        update["sentiment"] = profile.sentiment
        update["language_code"] = profile.language_code
        update["aws_classification"] = StageClassification(
            type=result.type, sub_type=None, confidence=result.confidence
        )
        update["classification"] = resolve_classification(aggregate.classification, result)

    elif stage == Stage.LLM_CLASSIFICATION:
        llm: StageClassification = outcome.value
        result = ClassificationResult(
            type=llm.type,
            sub_type=llm.sub_type or "",
            confidence=llm.confidence,
            source=ClassificationSource.OPENAI,
        )
        update["gpt_classification"] = llm
        update["classification"] = resolve_classification(aggregate.classification, result)

    elif stage == Stage.TFN_SCAN:
        update["tfn_detection"] = outcome.value

    return aggregate.model_copy(update=update)


class ClassificationOrchestrator:
    """Runs the analysis stages for one document at a time.

    Holds only provider references, so a single instance can serve many
    concurrent analyses.
    """

    def __init__(
        self,
        text_extractor: TextExtractor,
        entity_detector: Optional[EntityDetector] = None,
        language_detector: Optional[LanguageDetector] = None,
        sentiment_detector: Optional[SentimentDetector] = None,
        llm_classifier: Optional[DocumentClassifier] = None,
        sensitive_scanner: Optional[SensitiveScanner] = None,
        stage_timeout: Optional[float] = None,
    ):
        """Initialize orchestrator.

        Args:
            text_extractor: OCR provider (mandatory stage).
            entity_detector: Entity provider for the heuristic classifier.
            language_detector: Language provider for the heuristic stage.
            sentiment_detector: Sentiment provider for the heuristic stage.
            llm_classifier: LLM classifier.
            sensitive_scanner: Sensitive identifier scanner.
            stage_timeout: Seconds allowed per stage; None leaves timeouts
                to the providers.
        """
        self.text_extractor = text_extractor
        self.entity_classifier = (
            EntityProfileClassifier(
                entity_detector,
                language_detector=language_detector,
                sentiment_detector=sentiment_detector,
            )
            if entity_detector is not None
            else None
        )
        self.llm_classifier = llm_classifier
        self.sensitive_scanner = sensitive_scanner
        self.stage_timeout = stage_timeout

    async def analyse(
        self,
        document: Any,
        flags: Optional[AnalysisFlags] = None,
        taxonomy: Optional[list[DocumentTypeOption]] = None,
        ticket: Optional[AnalysisTicket] = None,
        file_name: Optional[str] = None,
    ) -> AnalysisResults:
        """Analyse one document.

        Args:
            document: Whatever the text extractor accepts.
            flags: Optional stage toggles (defaults: heuristic only).
            taxonomy: Allowed types for the LLM classifier.
            ticket: Supersession ticket for this request.
            file_name: Original file name, passed to the LLM as a hint.

        Returns:
            Aggregate results, possibly partial when optional stages failed.

        Raises:
            PipelineStageError: Text extraction failed.
        """
        flags = flags or AnalysisFlags()
        aggregate = AnalysisResults()

        extraction = await self._extract_text(document)
        aggregate = merge_stage(aggregate, StageOutcome.success(Stage.TEXT_EXTRACTION, extraction))
        text = aggregate.text

        if flags.auto_classify:
            outcome = await self._run_stage(
                Stage.HEURISTIC_CLASSIFICATION, lambda: self._profile_entities(text)
            )
            aggregate = merge_stage(aggregate, outcome)

        if flags.use_text_extraction and text:
            if self._superseded(ticket, Stage.LLM_CLASSIFICATION):
                aggregate = aggregate.model_copy(update={"superseded": True})
            else:
                outcome = await self._run_stage(
                    Stage.LLM_CLASSIFICATION,
                    lambda: self._classify(text, taxonomy or [], file_name),
                )
                aggregate = merge_stage(aggregate, outcome)

        if flags.scan_for_tfn and text:
            if self._superseded(ticket, Stage.TFN_SCAN):
                aggregate = aggregate.model_copy(update={"superseded": True})
            else:
                outcome = await self._run_stage(Stage.TFN_SCAN, lambda: self._scan(text))
                aggregate = merge_stage(aggregate, outcome)

        aggregate = aggregate.model_copy(update={"state": AnalysisState.DONE})
        source = aggregate.classification.source.value if aggregate.classification else None
        logger.info(
            "Analysis done: classification=%s, failed stages=%s",
            source,
            sorted(aggregate.stage_errors) or "none",
        )
        return aggregate

    async def _extract_text(self, document: Any) -> DocumentExtraction:
        try:
            return await self._with_timeout(self.text_extractor.extract(document))
        except PipelineStageError:
            logger.exception("Text extraction failed")
            raise
        except Exception as e:
            logger.exception("Text extraction failed: %s", e)
            raise PipelineStageError(Stage.TEXT_EXTRACTION.value, str(e) or type(e).__name__) from e

    async def _run_stage(
        self,
        stage: Stage,
        call: Callable[[], Awaitable[Any]],
    ) -> StageOutcome:
        """Run an optional stage, converting any failure into an outcome."""
        logger.debug("Running stage %s", stage.value)
        try:
            value = await self._with_timeout(call())
        except Exception as e:
            logger.warning("Stage %s failed, continuing without it: %s", stage.value, e)
            return StageOutcome.failure(stage, e)
        return StageOutcome.success(stage, value)

    async def _with_timeout(self, awaitable: Awaitable[Any]) -> Any:
        if self.stage_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.stage_timeout)

    def _superseded(self, ticket: Optional[AnalysisTicket], stage: Stage) -> bool:
        if ticket is not None and ticket.superseded:
            logger.info("Skipping %s for superseded %r", stage.value, ticket)
            return True
        return False

    async def _profile_entities(self, text: str) -> EntityProfile:
        if self.entity_classifier is None:
            raise RuntimeError("no entity detector configured")
        return await self.entity_classifier.profile(text)

    async def _classify(
        self,
        text: str,
        taxonomy: list[DocumentTypeOption],
        file_name: Optional[str],
    ) -> StageClassification:
        if self.llm_classifier is None:
            raise RuntimeError("no LLM classifier configured")
        return await self.llm_classifier.classify(text, taxonomy, file_name)

    async def _scan(self, text: str) -> TfnDetection:
        if self.sensitive_scanner is None:
            raise RuntimeError("no sensitive scanner configured")
        return await self.sensitive_scanner.scan(text)
