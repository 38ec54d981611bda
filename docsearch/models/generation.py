"""Writing-assistant generation models."""

from __future__ import annotations

from enum import Enum


class AiAction(str, Enum):
    """Preset writing actions; ``CUSTOM`` relies on the caller's prompt."""

    IMPROVE_WRITING = "improve_writing"
    FIX_SPELLING_GRAMMAR = "fix_spelling_grammar"
    MAKE_SHORTER = "make_shorter"
    MAKE_LONGER = "make_longer"
    SIMPLIFY = "simplify"
    CHANGE_TONE = "change_tone"
    SUMMARIZE = "summarize"
    CONTINUE_WRITING = "continue_writing"
    TRANSLATE = "translate"
    CUSTOM = "custom"
