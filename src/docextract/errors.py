"""Exception hierarchy for the document field extraction pipeline.

Fatal errors (``PipelineStageError`` and subclasses) propagate to the
caller and name the stage that failed. ``ProviderError`` is raised by
provider adapters and response parsers; the orchestrator turns it into a
stage-local failure for every stage except text extraction.
"""

from typing import Optional


class DocExtractError(Exception):
    """Base class for all pipeline errors."""


class PipelineStageError(DocExtractError):
    """A stage failed in a way that aborts the pipeline."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.message = message


class UnreadableDocumentError(PipelineStageError):
    """The input document could not be read."""

    def __init__(self, message: str, stage: str = "text_extraction"):
        super().__init__(stage, message)


class EmptyExtractionError(PipelineStageError):
    """The block graph has form keys but no field could be resolved."""

    def __init__(self, key_count: int, stage: str = "field_extraction"):
        super().__init__(
            stage, f"{key_count} KEY blocks present but no fields were extracted"
        )
        self.key_count = key_count


class ProviderError(DocExtractError):
    """An external provider call failed."""

    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.cause = cause


class ProviderResponseError(ProviderError):
    """A provider answered, but the answer could not be parsed."""

    def __init__(self, provider: str, message: str, raw_response: Optional[str] = None):
        super().__init__(provider, message)
        self.raw_response = raw_response
