"""Content extractors, one per content kind, plus their shared HTTP transport."""

from seedflow.providers.extraction.audio_extractor import AudioExtractor
from seedflow.providers.extraction.document_extractor import DocumentExtractor
from seedflow.providers.extraction.http_extraction_client import HttpExtractionClient
from seedflow.providers.extraction.image_extractor import ImageExtractor
from seedflow.providers.extraction.text_extractor import PlainTextExtractor
from seedflow.providers.extraction.video_caption_extractor import VideoCaptionExtractor

__all__ = [
    "AudioExtractor",
    "DocumentExtractor",
    "HttpExtractionClient",
    "ImageExtractor",
    "PlainTextExtractor",
    "VideoCaptionExtractor",
]
