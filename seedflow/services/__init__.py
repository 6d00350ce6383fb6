"""Domain services: extraction dispatch, validation and generation."""

from seedflow.services.content_extraction_service import ContentExtractionService
from seedflow.services.content_validator import ContentValidator
from seedflow.services.explanation_generator import ExplanationGenerator
from seedflow.services.study_material_generator import StudyMaterialGenerator

__all__ = [
    "ContentExtractionService",
    "ContentValidator",
    "ExplanationGenerator",
    "StudyMaterialGenerator",
]
