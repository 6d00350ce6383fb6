"""Unit tests for ContentValidator length rules."""

from __future__ import annotations

import pytest

from seedflow.models.seed import ContentKind
from seedflow.services.content_validator import (
    MIN_CONTENT_UNITS,
    ContentValidator,
    content_unit,
    measure_content,
    too_short_message,
)
from seedflow.utils.errors import ValidationError, ValidationErrorKind
from tests.conftest import StaticConfigProvider, english_words


class TestMeasureContent:
    def test_words_for_alphabetic_languages(self) -> None:
        assert measure_content("  one two   three ", "en") == 3

    def test_characters_for_logographic_languages(self) -> None:
        assert measure_content(" 光合作用 ", "zh") == 4

    def test_unit_names_follow_measurement(self) -> None:
        assert content_unit("en") == "words"
        assert content_unit(None) == "words"
        assert content_unit("ja") == "characters"


class TestTooShortMessage:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (ContentKind.IMAGE, "No text detected. Use a clearer photo with readable text."),
            (
                ContentKind.AUDIO,
                "No speech detected. Check audio quality or use a different file.",
            ),
            (
                ContentKind.DOCUMENT,
                "No text in this document. Try a text-based PDF or better quality scan.",
            ),
        ],
    )
    def test_empty_messages(self, kind: ContentKind, expected: str) -> None:
        assert too_short_message(kind, 0) == expected

    def test_short_message_includes_count(self) -> None:
        message = too_short_message(ContentKind.IMAGE, 7)
        assert message == "Too little text (7 words found). Capture an image with at least 20 words."

    def test_default_message_for_text(self) -> None:
        assert "at least 20 words" in too_short_message(ContentKind.TEXT, 3)

    def test_short_message_in_characters(self) -> None:
        message = too_short_message(ContentKind.IMAGE, 7, "characters")
        assert message == (
            "Too little text (7 characters found). "
            "Capture an image with at least 20 characters."
        )


class TestContentValidator:
    @pytest.mark.asyncio()
    async def test_nineteen_words_rejected(self) -> None:
        validator = ContentValidator(StaticConfigProvider())

        with pytest.raises(ValidationError) as exc_info:
            await validator.validate(english_words(19), "en", ContentKind.TEXT)

        assert exc_info.value.kind == ValidationErrorKind.TOO_SHORT
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio()
    async def test_twenty_words_accepted(self) -> None:
        validator = ContentValidator(StaticConfigProvider())
        await validator.validate(english_words(MIN_CONTENT_UNITS), "en", ContentKind.TEXT)

    @pytest.mark.asyncio()
    async def test_nineteen_chinese_characters_rejected(self) -> None:
        validator = ContentValidator(StaticConfigProvider())

        with pytest.raises(ValidationError) as exc_info:
            await validator.validate("光" * 19, "zh", ContentKind.TEXT)

        assert exc_info.value.kind == ValidationErrorKind.TOO_SHORT
        assert exc_info.value.user_message == (
            "Too short (19 characters). Please ensure the content has at least 20 characters."
        )

    @pytest.mark.asyncio()
    async def test_twenty_japanese_characters_accepted(self) -> None:
        validator = ContentValidator(StaticConfigProvider())
        await validator.validate("あ" * 20, "ja", ContentKind.TEXT)

    @pytest.mark.asyncio()
    async def test_single_chinese_word_measured_in_characters(self) -> None:
        # 25 characters, one whitespace-delimited "word".
        validator = ContentValidator(StaticConfigProvider())
        await validator.validate("光" * 25, "zh", ContentKind.IMAGE)

    @pytest.mark.asyncio()
    async def test_empty_image_message(self) -> None:
        validator = ContentValidator(StaticConfigProvider())

        with pytest.raises(ValidationError) as exc_info:
            await validator.validate("", "en", ContentKind.IMAGE)

        assert exc_info.value.user_message.startswith("No text detected")

    @pytest.mark.asyncio()
    async def test_word_ceiling(self) -> None:
        validator = ContentValidator(StaticConfigProvider(max_words=100, max_characters=10**6))

        with pytest.raises(ValidationError) as exc_info:
            await validator.validate(english_words(1500), "en", ContentKind.DOCUMENT)

        assert exc_info.value.kind == ValidationErrorKind.TOO_LONG
        assert exc_info.value.user_message == (
            "Your content has 1,500 words. Maximum allowed is 100 words."
        )

    @pytest.mark.asyncio()
    async def test_character_ceiling_checked_before_words(self) -> None:
        validator = ContentValidator(StaticConfigProvider(max_words=10, max_characters=50))
        text = english_words(30)

        with pytest.raises(ValidationError) as exc_info:
            await validator.validate(text, "en", ContentKind.TEXT)

        assert "characters" in exc_info.value.user_message
        assert f"{len(text):,} characters" in exc_info.value.user_message

    @pytest.mark.asyncio()
    async def test_limits_read_on_every_call(self) -> None:
        provider = StaticConfigProvider()
        validator = ContentValidator(provider)

        await validator.validate(english_words(25), "en", ContentKind.TEXT)
        await validator.validate(english_words(25), "en", ContentKind.TEXT)

        assert provider.calls == 2

    @pytest.mark.asyncio()
    async def test_too_short_skips_config_lookup(self) -> None:
        provider = StaticConfigProvider()
        validator = ContentValidator(provider)

        with pytest.raises(ValidationError):
            await validator.validate("too short", "en", ContentKind.TEXT)

        assert provider.calls == 0
