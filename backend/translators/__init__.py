"""
Deterministic Translator Layer

Converts positioned decision-tree layouts to canvas JSON.
Zoom and styling live here, separate from layout math.
"""

from .decision_tree_translator import DecisionTreeTranslator, ViewState

__all__ = ['DecisionTreeTranslator', 'ViewState']
