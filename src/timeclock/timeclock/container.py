from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .breaks.service import BreakTracker
from .database.connection import DatabaseConnection, DBConfig
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import AuthService
from .performance.service import PerformanceAggregator
from .presence.service import PresenceTracker
from .timeline.mysql_span_store import MySQLSpanStore
from .timeline.store import SpanStore
from .work.service import WorkTracker


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    employees_repo: EmployeeRepository
    span_store: SpanStore

    auth_service: AuthService
    presence_tracker: PresenceTracker
    break_tracker: BreakTracker
    work_tracker: WorkTracker
    performance_aggregator: PerformanceAggregator


def assemble(
    *,
    span_store: SpanStore,
    employees_repo: EmployeeRepository,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire the trackers over any store/repository pair."""
    break_tracker = BreakTracker(span_store)
    work_tracker = WorkTracker(span_store, employees_repo)
    presence_tracker = PresenceTracker(span_store, break_tracker)

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        span_store=span_store,
        auth_service=AuthService(employees_repo),
        presence_tracker=presence_tracker,
        break_tracker=break_tracker,
        work_tracker=work_tracker,
        performance_aggregator=PerformanceAggregator(span_store, employees_repo),
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection(DBConfig.from_settings(db_config))
    return assemble(
        span_store=MySQLSpanStore(conn),
        employees_repo=MySQLEmployeeRepository(conn),
        conn=conn,
    )
