"""
Lean Coffee session coordination engine.

Ticket lifecycle, discussion timer, quadratic prioritization voting and
continuation voting over a pluggable record store.
"""

__version__ = "1.0.0"
