"""Tests for provider-side logic and the local providers."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from docextract.errors import ProviderError, ProviderResponseError, UnreadableDocumentError
from docextract.models import (
    ClassificationSource,
    ConfiguredElement,
    DetectedEntity,
    DocumentTypeOption,
    SentimentResult,
    SubTypeOption,
)
from docextract.providers import (
    BlockTextExtractor,
    ChatClient,
    EntityDetector,
    EntityProfileClassifier,
    LanguageDetector,
    LlmDocumentClassifier,
    LlmTfnScanner,
    RegexTfnScanner,
    SensitiveScanner,
    SentimentDetector,
    TextExtractor,
    build_classification_prompt,
    build_entity_profile,
    build_tfn_prompt,
    classification_from_profile,
    find_tfns,
    is_valid_tfn,
    load_blocks,
    parse_classification_response,
    parse_tfn_response,
    truncate_utf8,
)
from docextract.providers.llm import TRUNCATION_MARKER, TFN_SYSTEM_PROMPT, truncate_text


@pytest.fixture
def taxonomy():
    """Two document types, one with sub-types."""
    return [
        DocumentTypeOption(
            id="t1",
            name="Identity",
            description="Proof of identity",
            sub_types=[
                SubTypeOption(id="s1", name="Passport"),
                SubTypeOption(id="s2", name="Driver Licence", description="State issued"),
            ],
        ),
        DocumentTypeOption(id="t2", name="Invoice"),
    ]


class TestTruncateUtf8:
    """Tests for byte-bounded text samples."""

    def test_short_text_unchanged(self):
        """Text within the budget is returned as is."""
        assert truncate_utf8("hello", 10) == "hello"

    def test_cut_at_byte_budget(self):
        """Longer text is cut to the byte budget."""
        assert truncate_utf8("abcdef", 4) == "abcd"

    def test_never_splits_character(self):
        """A multi-byte character straddling the limit is dropped whole."""
        sample = truncate_utf8("ab€", 4)

        assert sample == "ab"
        assert len(sample.encode("utf-8")) <= 4

    def test_default_budget(self):
        """The default budget keeps the sample under 4800 bytes."""
        assert len(truncate_utf8("é" * 5000).encode("utf-8")) <= 4800


class TestEntityProfile:
    """Tests for the entity-frequency heuristic."""

    def test_counts_and_scores(self):
        """Types are counted, scores averaged, most frequent first."""
        profile = build_entity_profile(
            [
                DetectedEntity(type="DATE", score=0.8),
                DetectedEntity(type="PERSON", score=0.9),
                DetectedEntity(type="PERSON", score=0.7),
            ]
        )

        assert profile.dominant == "PERSON"
        assert [(c.name, c.count) for c in profile.classes] == [("PERSON", 2), ("DATE", 1)]
        assert profile.classes[0].score == pytest.approx(0.8)
        assert profile.dominant_score == pytest.approx(0.8)

    def test_ties_keep_first_seen(self):
        """Equal counts keep detection order."""
        profile = build_entity_profile(
            [DetectedEntity(type="DATE", score=0.5), DetectedEntity(type="PERSON", score=0.9)]
        )

        assert profile.dominant == "DATE"

    def test_no_entities(self):
        """Without entities the dominant type is UNKNOWN."""
        profile = build_entity_profile([])

        assert profile.dominant == "UNKNOWN"
        assert profile.classes == []
        assert profile.dominant_score == 1.0

    def test_classification_from_profile(self):
        """The heuristic classification is sourced from AWS Comprehend."""
        profile = build_entity_profile([DetectedEntity(type="ORGANIZATION", score=0.6)])

        result = classification_from_profile(profile)

        assert result.type == "ORGANIZATION"
        assert result.sub_type == ""
        assert result.confidence == pytest.approx(0.6)
        assert result.source == ClassificationSource.AWS_COMPREHEND

    def test_classifier_sends_sample(self):
        """The detector receives the byte-bounded sample."""
        detector = AsyncMock()
        detector.detect_entities.return_value = [DetectedEntity(type="PERSON", score=0.9)]

        profile = asyncio.run(EntityProfileClassifier(detector, max_bytes=3).profile("abcdef"))

        detector.detect_entities.assert_awaited_once_with("abc")
        assert profile.dominant == "PERSON"
        assert profile.language_code is None
        assert profile.sentiment is None

    def test_language_and_sentiment(self):
        """Language and sentiment are detected on the same sample."""
        detector = AsyncMock()
        detector.detect_entities.return_value = []
        language = AsyncMock()
        language.detect_dominant_language.return_value = "fr"
        sentiment = AsyncMock()
        sentiment.detect_sentiment.return_value = SentimentResult(sentiment="NEGATIVE")
        classifier = EntityProfileClassifier(
            detector, max_bytes=3, language_detector=language, sentiment_detector=sentiment
        )

        profile = asyncio.run(classifier.profile("abcdef"))

        language.detect_dominant_language.assert_awaited_once_with("abc")
        sentiment.detect_sentiment.assert_awaited_once_with("abc", "fr")
        assert profile.language_code == "fr"
        assert profile.sentiment.sentiment == "NEGATIVE"

    def test_undetected_language_defaults(self):
        """No detected language falls back to English."""
        detector = AsyncMock()
        detector.detect_entities.return_value = []
        language = AsyncMock()
        language.detect_dominant_language.return_value = None
        sentiment = AsyncMock()
        sentiment.detect_sentiment.return_value = SentimentResult()
        classifier = EntityProfileClassifier(
            detector, language_detector=language, sentiment_detector=sentiment
        )

        profile = asyncio.run(classifier.profile("text"))

        assert profile.language_code == "en"
        sentiment.detect_sentiment.assert_awaited_once_with("text", "en")

    def test_sentiment_failure_is_neutral(self):
        """A failing sentiment provider is reported as neutral."""
        detector = AsyncMock()
        detector.detect_entities.return_value = [DetectedEntity(type="PERSON", score=0.9)]
        sentiment = AsyncMock()
        sentiment.detect_sentiment.side_effect = ProviderError("comprehend", "throttled")

        profile = asyncio.run(
            EntityProfileClassifier(detector, sentiment_detector=sentiment).profile("text")
        )

        assert profile.dominant == "PERSON"
        assert profile.sentiment.sentiment == "NEUTRAL"
        assert profile.sentiment.scores == {
            "positive": 0.0,
            "negative": 0.0,
            "neutral": 1.0,
            "mixed": 0.0,
        }


class TestClassificationPrompt:
    """Tests for the LLM classification prompt."""

    def test_lists_taxonomy(self, taxonomy):
        """Types, descriptions and sub-types appear in the prompt."""
        prompt = build_classification_prompt("some text", taxonomy, "scan.pdf")

        assert "- Identity: Proof of identity" in prompt
        assert "- Passport" in prompt
        assert "- Driver Licence: State issued" in prompt
        assert "- Invoice" in prompt
        assert "Document Filename: scan.pdf" in prompt
        assert '"documentType"' in prompt

    def test_unknown_file_name(self, taxonomy):
        """A missing file name is shown as Unknown."""
        assert "Document Filename: Unknown" in build_classification_prompt("x", taxonomy)

    def test_truncates_text(self, taxonomy):
        """Long text is cut and marked."""
        prompt = build_classification_prompt("a" * 50, taxonomy, max_chars=10)

        assert "a" * 10 + TRUNCATION_MARKER in prompt
        assert "a" * 11 not in prompt

    def test_truncate_text_short(self):
        """Text within the budget carries no marker."""
        assert truncate_text("abc", 10) == "abc"


class TestParseClassification:
    """Tests for parsing the LLM classification reply."""

    def test_full_reply(self):
        """All reply fields are carried over."""
        result = parse_classification_response(
            json.dumps(
                {
                    "documentType": "Identity",
                    "subType": "Passport",
                    "confidence": 0.75,
                    "reasoning": "Has MRZ",
                }
            )
        )

        assert (result.type, result.sub_type, result.confidence) == ("Identity", "Passport", 0.75)
        assert result.reasoning == "Has MRZ"

    def test_defaults(self):
        """Missing sub-type and confidence fall back to defaults."""
        result = parse_classification_response('{"type": "Invoice", "subType": null}')

        assert result.type == "Invoice"
        assert result.sub_type == ""
        assert result.confidence == 0.9

    def test_confidence_clamped(self):
        """Out-of-range confidence is clamped to 0..1."""
        assert parse_classification_response('{"type": "X", "confidence": 7}').confidence == 1.0

    @pytest.mark.parametrize("raw", [None, "", "not json", "[1, 2]", '{"reasoning": "?"}'])
    def test_bad_reply(self, raw):
        """Unusable replies raise ProviderResponseError."""
        with pytest.raises(ProviderResponseError):
            parse_classification_response(raw)


class TestTfnPrompt:
    """Tests for the LLM TFN prompt and reply."""

    def test_placeholder_replaced(self):
        """The default prompt embeds the document text."""
        prompt = build_tfn_prompt("TFN 123 456 782")

        assert "TFN 123 456 782" in prompt
        assert "{document_text}" not in prompt

    def test_custom_prompt_without_placeholder(self):
        """A custom prompt without a placeholder gets the text appended."""
        prompt = build_tfn_prompt("body", "Any TFN here?")

        assert prompt == "Any TFN here?\n\nDocument Text:\nbody"

    def test_custom_prompt_with_placeholder(self):
        """A custom prompt with a placeholder has it substituted."""
        assert build_tfn_prompt("body", "Check: {document_text}") == "Check: body"

    @pytest.mark.parametrize(
        "raw,detected",
        [("Yes", True), ("yes, one TFN", True), ("No", False), ("", False), (None, False)],
    )
    def test_parse_reply(self, raw, detected):
        """A reply containing yes means detected."""
        assert parse_tfn_response(raw).detected is detected


class TestLlmProviders:
    """Tests for the chat-model backed providers."""

    def test_classifier_calls_client(self, taxonomy):
        """The classifier sends a JSON-mode request and parses the reply."""
        client = AsyncMock()
        client.complete.return_value = '{"documentType": "Invoice", "confidence": 0.8}'

        result = asyncio.run(
            LlmDocumentClassifier(client, temperature=0.2).classify("Total due", taxonomy)
        )

        assert result.type == "Invoice"
        kwargs = client.complete.await_args.kwargs
        assert kwargs["json_response"] is True
        assert kwargs["temperature"] == 0.2
        assert kwargs["model"] == "gpt-4o"

    def test_classifier_requires_text(self, taxonomy):
        """Empty text is rejected before calling the model."""
        client = AsyncMock()

        with pytest.raises(ProviderError):
            asyncio.run(LlmDocumentClassifier(client).classify("", taxonomy))

        client.complete.assert_not_awaited()

    def test_tfn_scanner(self):
        """The TFN scanner uses its system prompt and low temperature."""
        client = AsyncMock()
        client.complete.return_value = "Yes"

        result = asyncio.run(LlmTfnScanner(client).scan("TFN 123 456 782"))

        assert result.detected is True
        args = client.complete.await_args
        assert args.args[0] == TFN_SYSTEM_PROMPT
        assert args.kwargs["temperature"] == 0.1


class TestTfnCheckDigit:
    """Tests for local TFN validation."""

    @pytest.mark.parametrize("digits", ["123456782", "876543210", "12345677"])
    def test_valid(self, digits):
        """Numbers passing the weighted check are valid."""
        assert is_valid_tfn(digits)

    @pytest.mark.parametrize("digits", ["123456789", "12345", "12345678a", ""])
    def test_invalid(self, digits):
        """Wrong check digit, length or characters are invalid."""
        assert not is_valid_tfn(digits)

    def test_find_tfns(self):
        """Grouped and ungrouped candidates are found, invalid ones dropped."""
        text = "TFN: 123 456 782, spouse 876-543-210, ref 123456789, phone 0412345678"

        assert find_tfns(text) == ["123456782", "876543210"]


class TestLocalProviders:
    """Tests for the network-free providers."""

    def test_protocols(self):
        """Local providers satisfy the provider interfaces."""
        assert isinstance(BlockTextExtractor(), TextExtractor)
        assert isinstance(RegexTfnScanner(), SensitiveScanner)
        assert not isinstance(RegexTfnScanner(), EntityDetector)
        assert not isinstance(RegexTfnScanner(), ChatClient)
        assert not isinstance(RegexTfnScanner(), LanguageDetector)
        assert not isinstance(RegexTfnScanner(), SentimentDetector)

    def test_load_blocks_from_response(self, textract_response):
        """A raw response with a Blocks list is parsed."""
        blocks = load_blocks(textract_response)

        assert len(blocks) == len(textract_response["Blocks"])
        assert blocks[0].text == "Full Name: John Smith"

    def test_load_blocks_from_list(self, identity_form):
        """A list of Block instances passes through."""
        assert load_blocks(identity_form) == identity_form

    @pytest.mark.parametrize("payload", ["text", {"Pages": []}, [{"BlockType": "LINE"}]])
    def test_load_blocks_rejects(self, payload):
        """Anything but a valid block list is unreadable."""
        with pytest.raises(UnreadableDocumentError):
            load_blocks(payload)

    def test_block_text_extractor(self, textract_response):
        """Text and fields come from the block list."""
        extraction = asyncio.run(BlockTextExtractor().extract(textract_response))

        assert extraction.text.splitlines()[0] == "Full Name: John Smith"
        assert len(extraction.fields) == 3

    def test_block_text_extractor_elements(self, identity_form):
        """Configured elements narrow the returned fields."""
        extractor = BlockTextExtractor(elements=[ConfiguredElement(pattern="@")])

        extraction = asyncio.run(extractor.extract(identity_form))

        assert [f.label for f in extraction.fields] == ["Email"]

    def test_block_text_extractor_empty(self):
        """An empty document is unreadable."""
        with pytest.raises(UnreadableDocumentError):
            asyncio.run(BlockTextExtractor().extract([]))

    def test_regex_scanner(self):
        """Valid TFNs are counted."""
        result = asyncio.run(RegexTfnScanner().scan("TFN 123 456 782 and 876543210"))

        assert result.detected is True
        assert result.count == 2

    def test_regex_scanner_none(self):
        """Text without a valid TFN is not flagged."""
        result = asyncio.run(RegexTfnScanner().scan("Invoice 123 456 789"))

        assert result.detected is False
        assert result.count == 0
