"""Models for extraction output, explanation output and content limits."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from seedflow.models.seed import Intent


class ExtractionMetadata(BaseModel):
    """Details reported alongside extracted text.

    ``extras`` carries whatever else the remote backend returned (page
    layout hints, caption track ids) so it can be merged into the seed's
    ``extraction_metadata`` unchanged.
    """

    model_config = ConfigDict(frozen=True)

    language: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source: str = ""
    page_count: int | None = None
    duration_seconds: float | None = None
    video_title: str | None = None
    extras: dict[str, Any] = Field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Flatten into the dict shape persisted on a Seed."""
        record: dict[str, Any] = {
            "language": self.language,
            "confidence": self.confidence,
            "source": self.source,
        }
        if self.page_count is not None:
            record["page_count"] = self.page_count
        if self.duration_seconds is not None:
            record["duration_seconds"] = self.duration_seconds
        if self.video_title:
            record["video_title"] = self.video_title
        record.update(self.extras)
        return record


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)


class ExplanationResult(BaseModel):
    """Generated explanation plus the detected learning intent."""

    model_config = ConfigDict(frozen=True)

    explanation: str
    intent: Intent = Intent.EDUCATIONAL
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    word_count: int = 0
    processing_time: float = 0.0


class AILimits(BaseModel):
    """Upper bounds on content length, supplied at runtime by configuration."""

    model_config = ConfigDict(frozen=True)

    max_words: int = Field(gt=0)
    max_characters: int = Field(gt=0)
