"""
Analytics package exports.
"""

from memory_core.analytics.service import build_dashboard, retention_histogram, summarize_reviews
from memory_core.analytics.types import DashboardStats

__all__ = [
    "build_dashboard",
    "retention_histogram",
    "summarize_reviews",
    "DashboardStats",
]
