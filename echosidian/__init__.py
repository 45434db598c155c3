"""Echosidian: pull notes from an Echo note queue into an Obsidian vault.

Echosidian polls an Echo server for pending notes, claims them on behalf
of this client, downloads their content, writes each one as a Markdown
file inside your vault and confirms delivery so the server can retire
them.
"""

from __future__ import annotations

from .__version__ import __version__

__all__ = ["__version__"]
