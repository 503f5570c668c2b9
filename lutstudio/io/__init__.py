"""
Image file I/O for LutStudio
"""

from .images import load_rgba, save_rgba

__all__ = ['load_rgba', 'save_rgba']
