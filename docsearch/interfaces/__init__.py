"""Abstract contracts for every external collaborator.

Services depend on these interfaces only; concrete adapters live under
``docsearch/providers`` and are wired together in ``docsearch/main.py``.
"""
