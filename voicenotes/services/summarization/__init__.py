"""
Summarization module - Transcript summarization services.
"""

from .base import SummarizationProvider
from .fallback import SummaryService
from .llm_summarizer import LLMSummaryProvider
from .local_extract import local_extract
from .registry import ProviderRegistry

__all__ = [
    "LLMSummaryProvider",
    "ProviderRegistry",
    "SummarizationProvider",
    "SummaryService",
    "local_extract",
]
