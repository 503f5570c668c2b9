"""
Command line interface for LutStudio
"""
