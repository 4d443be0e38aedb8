"""
funding_oracle — Stateful model-based test oracle for a reserve funding lifecycle.
"""

__version__ = "0.1.0"
