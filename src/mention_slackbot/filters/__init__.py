"""Relevance filters applied to upstream records before dedup."""

from .base import Filter, FilterResult
from .highlight_filter import HighlightMatchFilter
from .noise_filter import MicroblogNoiseFilter

__all__ = ["Filter", "FilterResult", "HighlightMatchFilter", "MicroblogNoiseFilter"]
