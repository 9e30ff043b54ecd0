"""
VOLT Legal: plain-language legal document analysis
"""

__version__ = "1.0.0"
