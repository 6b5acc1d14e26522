"""
Utility helpers for kickwatch.
"""

from kickwatch.utils.text import escape_xml, wrap_text

__all__ = ["escape_xml", "wrap_text"]
