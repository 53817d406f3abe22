"""Content extraction, summarization and enrichment."""

from .extractor import ArticleExtractor, Extractor, extract_text
from .pipeline import ContentPipeline
from .summarizer import GeminiSummarizer, Summarizer, parse_summary

__all__ = [
    "ArticleExtractor",
    "Extractor",
    "extract_text",
    "ContentPipeline",
    "GeminiSummarizer",
    "Summarizer",
    "parse_summary",
]
