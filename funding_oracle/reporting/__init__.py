"""
reporting — Where counterexample reports go: SQLite history and Redis pub/sub.
"""

from .store import FailureStore
from .publisher import ReportPublisher
