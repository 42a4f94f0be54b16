"""
Lean Coffee server.

Exposes the session coordination engine over a JSON HTTP API.
"""

__version__ = "1.0.0"
