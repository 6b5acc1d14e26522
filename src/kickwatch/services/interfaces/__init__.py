"""
Service interfaces for kickwatch.

Abstract base classes for the button host and status source contracts.
"""

from __future__ import annotations

from .button_host import ButtonHost
from .status_source import StatusSourceInterface

__all__ = ["ButtonHost", "StatusSourceInterface"]
