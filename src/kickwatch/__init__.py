"""
kickwatch - Kick live-status watcher for button decks.

Polls one or more Kick channels, detects offline to live transitions and
renders status thumbnails (single images or collages) onto buttons.
"""

from __future__ import annotations

__version__ = "0.4.0"
__author__ = "kickwatch"
__email__ = "noreply@kickwatch.dev"
__license__ = "MIT"

__all__ = ["__version__", "__author__", "__email__", "__license__"]
