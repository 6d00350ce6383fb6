"""Length validation for extracted content.

Content length is measured in the unit that makes sense for its language:

    zh / ja / ko / th  ──→ characters (these scripts don't separate words)
    everything else    ──→ whitespace-delimited words

Three bounds apply, checked in this order:

    1. a fixed minimum of 20 units           → TOO_SHORT
    2. a character ceiling from config       → TOO_LONG
    3. a word ceiling from config            → TOO_LONG

The ceilings come from :class:`IConfigProvider` on every call because they
can change at runtime.  Every rejection carries a message meant to be shown
to the user as-is; the wording of the TOO_SHORT message depends on the kind
of material and on whether anything was found at all.
"""

from __future__ import annotations

from seedflow.interfaces.config_provider import IConfigProvider
from seedflow.models.seed import ContentKind
from seedflow.utils.errors import ValidationError, ValidationErrorKind
from seedflow.utils.language import is_logographic
from seedflow.utils.logging import get_logger

MIN_CONTENT_UNITS = 20

# (nothing found, too little found) per content kind.
_TOO_SHORT_MESSAGES: dict[ContentKind, tuple[str, str]] = {
    ContentKind.IMAGE: (
        "No text detected. Use a clearer photo with readable text.",
        "Too little text ({count} {unit} found). "
        "Capture an image with at least {minimum} {unit}.",
    ),
    ContentKind.AUDIO: (
        "No speech detected. Check audio quality or use a different file.",
        "Too short ({count} {unit}). "
        "Use audio with at least {minimum} {unit} of speech (~30 seconds).",
    ),
    ContentKind.DOCUMENT: (
        "No text in this document. Try a text-based PDF or better quality scan.",
        "Too little text ({count} {unit}). "
        "Upload a document with at least {minimum} {unit} of content.",
    ),
}

_DEFAULT_TOO_SHORT = (
    "No content found. Please ensure the source has at least {minimum} {unit}.",
    "Too short ({count} {unit}). Please ensure the content has at least {minimum} {unit}.",
)


def count_words(text: str) -> int:
    return len(text.split())


def measure_content(text: str, language: str | None) -> int:
    """Return the length of *text* in characters or words depending on *language*."""
    stripped = text.strip()
    if is_logographic(language):
        return len(stripped)
    return count_words(stripped)


def content_unit(language: str | None) -> str:
    """Name of the unit :func:`measure_content` counts in for *language*."""
    return "characters" if is_logographic(language) else "words"


def too_short_message(content_kind: ContentKind, count: int, unit: str = "words") -> str:
    empty_message, short_message = _TOO_SHORT_MESSAGES.get(content_kind, _DEFAULT_TOO_SHORT)
    template = empty_message if count == 0 else short_message
    return template.format(count=count, minimum=MIN_CONTENT_UNITS, unit=unit)


class ContentValidator:
    """Rejects extracted text that is too short or too long.

    Parameters
    ----------
    config_provider:
        Source of the runtime character and word ceilings.
    """

    def __init__(self, config_provider: IConfigProvider) -> None:
        self._config = config_provider
        self._logger = get_logger(__name__)

    async def validate(
        self,
        text: str,
        language: str | None,
        content_kind: ContentKind,
    ) -> None:
        """Validate *text* or raise :class:`ValidationError`.

        Parameters
        ----------
        text:
            The extracted text.
        language:
            Base language code of the text; selects the unit of measure.
        content_kind:
            Selects the wording of the TOO_SHORT message.

        Raises
        ------
        ValidationError
            ``TOO_SHORT`` below the minimum, ``TOO_LONG`` above either ceiling.
        """
        units = measure_content(text, language)
        unit = content_unit(language)
        if units < MIN_CONTENT_UNITS:
            self._logger.info(
                "content_too_short",
                units=units,
                unit=unit,
                minimum=MIN_CONTENT_UNITS,
                language=language,
                content_kind=content_kind.value,
            )
            raise ValidationError(
                ValidationErrorKind.TOO_SHORT,
                user_message=too_short_message(content_kind, units, unit),
                message=f"Content has {units} {unit}, minimum is {MIN_CONTENT_UNITS}",
            )

        limits = await self._config.get_ai_limits()

        characters = len(text.strip())
        if characters > limits.max_characters:
            self._logger.info(
                "content_too_long",
                unit="characters",
                count=characters,
                maximum=limits.max_characters,
            )
            raise ValidationError(
                ValidationErrorKind.TOO_LONG,
                user_message=(
                    f"Your content has {characters:,} characters. "
                    f"Maximum allowed is {limits.max_characters:,} characters."
                ),
            )

        words = count_words(text)
        if words > limits.max_words:
            self._logger.info(
                "content_too_long",
                unit="words",
                count=words,
                maximum=limits.max_words,
            )
            raise ValidationError(
                ValidationErrorKind.TOO_LONG,
                user_message=(
                    f"Your content has {words:,} words. "
                    f"Maximum allowed is {limits.max_words:,} words."
                ),
            )
