from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PeriodTotals:
    """Summed minutes for one employee over one date range."""

    attendance_minutes: float = 0.0
    break_minutes: float = 0.0
    order_work_minutes: float = 0.0
    internal_work_minutes: float = 0.0
    billable_minutes: float = 0.0
    attendance_days: int = 0

    @property
    def work_minutes(self) -> float:
        return self.order_work_minutes + self.internal_work_minutes

    @property
    def internal_minutes(self) -> float:
        """Worked but not billable."""
        return max(self.work_minutes - self.billable_minutes, 0.0)


@dataclass(frozen=True)
class PerformanceMetrics:
    totals: PeriodTotals
    calculated_work_minutes: float
    attendance_efficiency: float
    work_productivity: float
    idle_minutes: float
    avg_attendance_per_day: float


class PerformanceCalculator(ABC):
    """Calculator interface (Strategy Pattern for efficiency metrics)."""

    @abstractmethod
    def evaluate(self, totals: PeriodTotals) -> PerformanceMetrics:
        raise NotImplementedError
