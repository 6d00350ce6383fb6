"""Unit tests for language detection and language-code helpers."""

from __future__ import annotations

import pytest

from seedflow.utils.language import (
    detect_language,
    is_logographic,
    normalize_language_code,
    resolve_language,
)

_ENGLISH = (
    "The mitochondria is the powerhouse of the cell. It produces energy through "
    "cellular respiration, turning nutrients into adenosine triphosphate."
)
_SPANISH = (
    "La fotosíntesis es el proceso mediante el cual las plantas verdes transforman "
    "la energía de la luz solar en energía química almacenada en azúcares."
)


class TestNormalizeLanguageCode:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("eng", "en"),
            ("EN", "en"),
            ("en-US", "en"),
            ("zh_CN", "zh"),
            ("cmn", "zh"),
            ("jpn", "ja"),
            ("pt-BR", "pt"),
            ("und", "en"),
            ("", "en"),
            (None, "en"),
        ],
    )
    def test_normalization(self, code: str | None, expected: str) -> None:
        assert normalize_language_code(code) == expected


class TestIsLogographic:
    @pytest.mark.parametrize("code", ["zh", "ja", "ko", "th", "zh-TW", "jpn"])
    def test_logographic(self, code: str) -> None:
        assert is_logographic(code) is True

    @pytest.mark.parametrize("code", ["en", "es", "ar", "ru", None])
    def test_word_based(self, code: str | None) -> None:
        assert is_logographic(code) is False


class TestDetectLanguage:
    def test_short_text_defaults_to_english(self) -> None:
        assert detect_language("Hola mundo") == "en"

    def test_detects_english(self) -> None:
        assert detect_language(_ENGLISH) == "en"

    def test_detects_spanish(self) -> None:
        assert detect_language(_SPANISH) == "es"

    def test_detects_chinese_base_code(self) -> None:
        text = "光合作用是植物利用光能把二氧化碳和水转化为有机物并释放氧气的过程。" * 4
        assert detect_language(text) == "zh"


class TestResolveLanguage:
    def test_reported_language_wins(self) -> None:
        assert resolve_language("fra", _ENGLISH) == "fr"

    def test_undetermined_falls_back_to_detection(self) -> None:
        assert resolve_language("und", _SPANISH) == "es"

    def test_missing_falls_back_to_detection(self) -> None:
        assert resolve_language(None, _ENGLISH) == "en"
