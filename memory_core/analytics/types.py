"""
Types for the study dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from memory_core.schemas import DueCount, TopConfusionRow


@dataclass(frozen=True)
class DashboardStats:
    """
    Read-model assembled for the dashboard view.
    """
    due: DueCount = field(default_factory=DueCount)
    avg_retrievability: Optional[float] = None
    top_confusions: list[TopConfusionRow] = field(default_factory=list)
    due_by_dataset: dict[str, int] = field(default_factory=dict)
