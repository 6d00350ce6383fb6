"""Language detection and language-code normalization.

Remote extractors usually report the language of the text they return.  When
they do not (or report ``und``), :func:`detect_language` runs locally:

    text < 100 chars ──→ "en"
           │
           ▼
    langdetect n-gram classifier ──→ base ISO-639-1 code
           │ (no confident answer)
           ▼
    script ranges: CJK → "zh", Arabic → "ar", Cyrillic → "ru"
           │
           ▼
          "en"
"""

from __future__ import annotations

import re

import structlog
from langdetect import DetectorFactory, LangDetectException, detect

from seedflow.utils.logging import get_logger

DEFAULT_LANGUAGE = "en"

# Below this many characters the n-gram statistics are too noisy to trust.
MIN_DETECTION_LENGTH = 100

# Languages written without spaces between words; length is measured in
# characters for these rather than whitespace-delimited words.
LOGOGRAPHIC_LANGUAGES = frozenset({"zh", "ja", "ko", "th"})

_CJK_PATTERN = re.compile(r"[一-鿿぀-ゟ゠-ヿ가-힯]")
_ARABIC_PATTERN = re.compile(r"[؀-ۿݐ-ݿ]")
_CYRILLIC_PATTERN = re.compile(r"[Ѐ-ӿ]")

_ISO3_TO_ISO1: dict[str, str] = {
    "eng": "en",
    "spa": "es",
    "fra": "fr",
    "deu": "de",
    "ita": "it",
    "por": "pt",
    "rus": "ru",
    "jpn": "ja",
    "kor": "ko",
    "ara": "ar",
    "arb": "ar",
    "hin": "hi",
    "ben": "bn",
    "cmn": "zh",
    "yue": "zh",
    "tur": "tr",
    "ind": "id",
    "fas": "fa",
    "pol": "pl",
    "ukr": "uk",
    "ron": "ro",
    "tha": "th",
    "vie": "vi",
    "heb": "he",
    "ell": "el",
    "nld": "nl",
    "swe": "sv",
    "ces": "cs",
    "dan": "da",
    "fin": "fi",
    "hun": "hu",
    "nor": "no",
    "cat": "ca",
    "hrv": "hr",
    "slk": "sk",
    "bul": "bg",
    "urd": "ur",
}

# langdetect is non-deterministic unless seeded.
DetectorFactory.seed = 0

_logger: structlog.BoundLogger = get_logger(__name__)


def normalize_language_code(code: str | None) -> str:
    """Normalize any ISO-639-3, ISO-639-1 or BCP-47 code to a base code.

    >>> normalize_language_code("eng")
    'en'
    >>> normalize_language_code("zh-CN")
    'zh'
    >>> normalize_language_code(None)
    'en'
    """
    if not code:
        return DEFAULT_LANGUAGE

    normalized = code.strip().lower().replace("_", "-")
    if not normalized or normalized == "und":
        return DEFAULT_LANGUAGE
    if normalized in _ISO3_TO_ISO1:
        return _ISO3_TO_ISO1[normalized]

    base = normalized.split("-")[0]
    return _ISO3_TO_ISO1.get(base, base) or DEFAULT_LANGUAGE


def normalize_for_prompt(code: str | None) -> str:
    """Return the base language code used in generation prompts."""
    return normalize_language_code(code)


def is_logographic(language: str | None) -> bool:
    """Return ``True`` when *language* is measured in characters, not words."""
    return normalize_language_code(language) in LOGOGRAPHIC_LANGUAGES


def detect_language(text: str) -> str:
    """Detect the base language code of *text*.

    Parameters
    ----------
    text:
        The extracted text.

    Returns
    -------
    str
        A base ISO-639-1 code.  Falls back to ``"en"`` for short or
        undetectable input.
    """
    sample = text.strip()
    if len(sample) < MIN_DETECTION_LENGTH:
        return DEFAULT_LANGUAGE

    try:
        detected = detect(sample)
    except LangDetectException as exc:
        _logger.debug("language_detect_failed", error=str(exc))
        detected = None

    if detected:
        return normalize_language_code(detected)

    if _CJK_PATTERN.search(sample):
        return "zh"
    if _ARABIC_PATTERN.search(sample):
        return "ar"
    if _CYRILLIC_PATTERN.search(sample):
        return "ru"

    return DEFAULT_LANGUAGE


def resolve_language(reported: str | None, text: str) -> str:
    """Prefer the remote-reported language; detect locally when missing."""
    if reported and reported.strip().lower() not in ("", "und"):
        return normalize_language_code(reported)
    return detect_language(text)
