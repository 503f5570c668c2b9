"""
Vision providers for style analysis
"""

from .gemini_vision import GeminiStyleProvider, is_transient_error

__all__ = ['GeminiStyleProvider', 'is_transient_error']
