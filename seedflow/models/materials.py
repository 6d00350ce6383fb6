"""Derived study materials generated in the background after ingestion."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True)

    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class QuizQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_index: int = Field(ge=0)
    explanation: str = ""

    @model_validator(mode="after")
    def _answer_in_range(self) -> QuizQuestion:
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index is outside the options list")
        return self
