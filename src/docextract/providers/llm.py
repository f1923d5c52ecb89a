"""LLM-backed classification and TFN scanning.

Builds the prompts sent through a ChatClient and parses the replies.
The chat transport itself is supplied by the caller.
"""

import json
import logging
from typing import Optional

from docextract.config import settings
from docextract.errors import ProviderError, ProviderResponseError
from docextract.models import DocumentTypeOption, StageClassification, TfnDetection
from docextract.providers.base import ChatClient

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openai"

TRUNCATION_MARKER = "...[truncated]"

SYSTEM_PROMPT = (
    "You are an AI specialized in document classification. You classify documents "
    "based on their text content into predefined categories. Always respond with "
    "valid JSON."
)

TFN_SYSTEM_PROMPT = (
    "You are an AI assistant specialized in identifying Tax File Numbers (TFNs) in "
    "document text. A TFN is a unique 9-digit identifier issued by the Australian "
    "Taxation Office."
)

TFN_USER_PROMPT = """Analyze the following document text and determine if it contains any Tax File Numbers (TFNs).
A valid TFN is a 9-digit number that may be formatted with spaces or without spaces.

Document Text:
{document_text}

Does this document contain any TFNs? Reply with only "Yes" or "No"."""

DEFAULT_LLM_CONFIDENCE = 0.9


def truncate_text(text: str, max_chars: Optional[int] = None) -> str:
    """Cut ``text`` to ``max_chars`` characters, marking the cut."""
    if max_chars is None:
        max_chars = settings.llm_max_text_chars
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def format_taxonomy(taxonomy: list[DocumentTypeOption]) -> str:
    """Render the allowed types and sub-types as a bullet list."""
    lines = []
    for doc_type in taxonomy:
        line = f"- {doc_type.name}"
        if doc_type.description:
            line += f": {doc_type.description}"
        if doc_type.sub_types:
            sub_lines = []
            for sub_type in doc_type.sub_types:
                sub_line = f"- {sub_type.name}"
                if sub_type.description:
                    sub_line += f": {sub_type.description}"
                sub_lines.append(sub_line)
            line += "\nSub-types: " + "\n".join(sub_lines)
        lines.append(line)
    return "\n".join(lines)


def build_classification_prompt(
    text: str,
    taxonomy: list[DocumentTypeOption],
    file_name: Optional[str] = None,
    max_chars: Optional[int] = None,
) -> str:
    """User prompt asking for a JSON classification within ``taxonomy``."""
    return f"""As a document classification expert, analyze this document text and classify it.

Available Document Types:
{format_taxonomy(taxonomy)}

Document Filename: {file_name or 'Unknown'}

Document Text (truncated if long):
{truncate_text(text, max_chars)}

Based on the text content and available document types, determine the most appropriate document type and sub-type (if applicable).

Return your analysis in JSON format:
{{
  "documentType": "Most appropriate document type from the list above",
  "subType": "Most appropriate sub-type if relevant, otherwise null",
  "confidence": <number between 0-1 indicating confidence level>,
  "reasoning": "Brief explanation of your classification decision"
}}"""


def parse_classification_response(raw: Optional[str]) -> StageClassification:
    """Parse the JSON reply of the classification prompt.

    Raises:
        ProviderResponseError: Empty reply, invalid JSON, or no type.
    """
    if not raw:
        raise ProviderResponseError(PROVIDER_NAME, "No response from classification model")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProviderResponseError(
            PROVIDER_NAME, f"Failed to parse classification response: {e}", raw
        ) from e
    if not isinstance(payload, dict):
        raise ProviderResponseError(PROVIDER_NAME, "Classification response is not an object", raw)

    doc_type = payload.get("documentType") or payload.get("type") or ""
    if not doc_type:
        raise ProviderResponseError(PROVIDER_NAME, "Classification response has no type", raw)

    confidence = payload.get("confidence")
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool) or not confidence:
        confidence = DEFAULT_LLM_CONFIDENCE

    return StageClassification(
        type=str(doc_type),
        sub_type=str(payload.get("subType") or ""),
        confidence=min(1.0, max(0.0, float(confidence))),
        reasoning=str(payload.get("reasoning") or ""),
    )


def build_tfn_prompt(
    text: str,
    user_prompt: Optional[str] = None,
    max_chars: Optional[int] = None,
) -> str:
    """User prompt for the TFN scan.

    A custom prompt without a ``{document_text}`` placeholder gets the text
    appended instead.
    """
    document_text = truncate_text(text, max_chars)
    template = user_prompt or TFN_USER_PROMPT
    if "{document_text}" in template:
        return template.replace("{document_text}", document_text)
    return f"{template}\n\nDocument Text:\n{document_text}"


def parse_tfn_response(raw: Optional[str]) -> TfnDetection:
    """A reply containing "yes" (any case) means a TFN was identified."""
    reply = (raw or "").strip()
    return TfnDetection(detected="yes" in reply.lower())


class LlmDocumentClassifier:
    """DocumentClassifier that prompts a chat model."""

    def __init__(
        self,
        client: ChatClient,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_chars: Optional[int] = None,
    ):
        """Initialize LLM classifier.

        Args:
            client: Chat-completion transport.
            model: Chat model name.
            temperature: Sampling temperature.
            max_chars: Character budget for the document text.
        """
        self.client = client
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.max_chars = max_chars

    async def classify(
        self,
        text: str,
        taxonomy: list[DocumentTypeOption],
        file_name: Optional[str] = None,
    ) -> StageClassification:
        """Classify ``text`` into one of ``taxonomy``."""
        if not text:
            raise ProviderError(PROVIDER_NAME, "Missing text content for classification")
        prompt = build_classification_prompt(text, taxonomy, file_name, self.max_chars)
        raw = await self.client.complete(
            SYSTEM_PROMPT,
            prompt,
            model=self.model,
            temperature=self.temperature,
            json_response=True,
        )
        result = parse_classification_response(raw)
        logger.info("LLM classified document as %s/%s", result.type, result.sub_type)
        return result


class LlmTfnScanner:
    """SensitiveScanner that asks a chat model whether a TFN is present."""

    def __init__(
        self,
        client: ChatClient,
        system_prompt: Optional[str] = None,
        user_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        """Initialize LLM TFN scanner.

        Args:
            client: Chat-completion transport.
            system_prompt: Overrides the default system prompt.
            user_prompt: Overrides the default user prompt template.
            model: Chat model name.
            temperature: Sampling temperature.
        """
        self.client = client
        self.system_prompt = system_prompt or TFN_SYSTEM_PROMPT
        self.user_prompt = user_prompt
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.tfn_temperature

    async def scan(self, text: str) -> TfnDetection:
        """Scan ``text`` for TFNs."""
        raw = await self.client.complete(
            self.system_prompt,
            build_tfn_prompt(text, self.user_prompt),
            model=self.model,
            temperature=self.temperature,
        )
        return parse_tfn_response(raw)
