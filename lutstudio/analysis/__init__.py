"""
Reference image analysis for LutStudio
"""

from .style_profile import (
    StyleProfile, StyleAnalysisError, StyleAnalyzer,
    normalize_style_name, normalize_palette, parse_style_response
)
from .vision_providers import GeminiStyleProvider

__all__ = [
    'StyleProfile',
    'StyleAnalysisError',
    'StyleAnalyzer',
    'normalize_style_name',
    'normalize_palette',
    'parse_style_response',
    'GeminiStyleProvider',
]
