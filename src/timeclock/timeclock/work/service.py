from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..accounting import time_accountant
from ..common.datetime_utils import now_local
from ..common.validators import merge_notes, optional_text
from ..core.enums import CategoryKind, OrderStatus
from ..core.exceptions import (
    AlreadyWorking,
    ConflictingTarget,
    InvalidCategory,
    NoActiveSession,
    NotPresent,
    OnBreak,
    OrderNotActive,
    OrderNotFound,
    SpanNotFound,
    StoreConflict,
    ValidationError,
)
from ..employees.repository import EmployeeRepository
from ..timeline.model import Category, WorkSpan
from ..timeline.store import SpanStore, SpanTransaction
from .model import EndSessionRequest, SessionCorrection, StartSessionRequest

logger = logging.getLogger(__name__)


def _closed(span: WorkSpan, ended_at: datetime, note: Optional[str]) -> WorkSpan:
    minutes = time_accountant.duration_minutes(span.started_at, ended_at)
    return replace(
        span,
        ended_at=ended_at,
        duration_minutes=minutes,
        cost=time_accountant.cost(minutes, span.hourly_rate),
        note=merge_notes(span.note, note),
    )


class WorkTracker:
    """Work sessions on a customer order or an internal activity.

    Starting a session on a ``created`` order moves the order to
    ``in_progress`` in the same transaction. Closing a session fixes its
    duration and cost; later reads never recompute them.
    """

    def __init__(self, store: SpanStore, employees: Optional[EmployeeRepository] = None):
        self._store = store
        self._employees = employees

    def _default_rate(self, employee_id: int) -> Optional[float]:
        if self._employees is None:
            return None
        employee = self._employees.get_by_id(employee_id)
        return employee.hourly_rate if employee else None

    @staticmethod
    def _resolve_target(tx: SpanTransaction, request: StartSessionRequest) -> bool:
        """Validate the order or category and return whether the session is billable."""
        if request.is_order_bound:
            order = tx.get_order_for_update(request.order_id)
            if order is None:
                raise OrderNotFound()
            if not order.accepts_work:
                raise OrderNotActive()
            if order.status == OrderStatus.CREATED:
                if tx.set_order_status(order.order_id, expected=OrderStatus.CREATED, new=OrderStatus.IN_PROGRESS):
                    logger.info("Work order %s moved to in_progress", order.order_number)
            return True

        return WorkTracker._work_category(tx, request.category_id).is_billable

    @staticmethod
    def _work_category(tx: SpanTransaction, category_id: int) -> Category:
        category = tx.get_category(category_id)
        if category is None or not category.is_active or category.kind == CategoryKind.BREAK:
            raise InvalidCategory()
        return category

    def start_session(
        self,
        employee_id: int,
        request: StartSessionRequest,
        *,
        now: datetime | None = None,
    ) -> WorkSpan:
        now = now or now_local()
        hourly_rate = request.hourly_rate
        if hourly_rate is None:
            hourly_rate = self._default_rate(employee_id)

        try:
            with self._store.transaction(employee_id) as tx:
                if tx.open_work(employee_id):
                    raise AlreadyWorking()
                if tx.open_attendance(employee_id) is None:
                    raise NotPresent()
                if tx.open_break(employee_id):
                    raise OnBreak()
                is_billable = self._resolve_target(tx, request)

                span = tx.insert_work(
                    employee_id=employee_id,
                    order_id=request.order_id,
                    category_id=request.category_id,
                    task_description=request.task_description,
                    started_at=now,
                    hourly_rate=hourly_rate,
                    is_billable=is_billable,
                    note=request.note,
                    method=request.method,
                )
        except StoreConflict as exc:
            raise AlreadyWorking() from exc

        logger.info(
            "Work session started employee=%s session=%s order=%s category=%s method=%s",
            employee_id,
            span.session_id,
            span.order_id,
            span.category_id,
            span.method.value,
        )
        return span

    def end_session(
        self,
        employee_id: int,
        request: Optional[EndSessionRequest] = None,
        *,
        now: datetime | None = None,
    ) -> WorkSpan:
        request = request or EndSessionRequest()
        now = now or now_local()

        with self._store.transaction(employee_id) as tx:
            current = tx.open_work(employee_id)
            if current is None:
                raise NoActiveSession()

            ended_at = now
            if request.force and tx.open_attendance(employee_id) is None:
                # Dangling session: it cannot have run past the last clock-out.
                last = tx.last_closed_attendance(employee_id)
                if last is not None and last.ended_at < now:
                    ended_at = max(last.ended_at, current.started_at)

            span = tx.save_work(_closed(current, ended_at, request.note))

        logger.info(
            "Work session ended employee=%s session=%s minutes=%.2f cost=%s force=%s",
            employee_id,
            span.session_id,
            span.duration_minutes,
            span.cost,
            request.force,
        )
        return span

    # -- queries ----------------------------------------------------------

    def active_session(self, employee_id: int) -> Optional[WorkSpan]:
        return self._store.find_open_work(employee_id)

    def all_active_sessions(self) -> Sequence[WorkSpan]:
        return self._store.list_open_work()

    # -- administrative corrections --------------------------------------

    def correct_session(self, session_id: int, correction: SessionCorrection) -> WorkSpan:
        existing = self._store.find_work(session_id)
        if existing is None:
            raise SpanNotFound()

        with self._store.transaction(existing.employee_id) as tx:
            current = tx.get_work(session_id)
            if current is None:
                raise SpanNotFound()
            if correction.ended_at is not None and current.is_open:
                raise ValidationError("An open session is closed by ending it, not by correction")

            started_at = correction.started_at or current.started_at
            ended_at = correction.ended_at or current.ended_at
            if ended_at is not None and ended_at < started_at:
                raise ValidationError("Session end must not be before its start")
            hourly_rate = correction.hourly_rate if correction.hourly_rate is not None else current.hourly_rate

            category_id, is_billable = current.category_id, current.is_billable
            if correction.category_id is not None:
                if current.is_order_bound:
                    raise ConflictingTarget()
                category_id = correction.category_id
                is_billable = self._work_category(tx, category_id).is_billable

            minutes = cost = None
            if ended_at is not None:
                minutes = time_accountant.duration_minutes(started_at, ended_at)
                cost = time_accountant.cost(minutes, hourly_rate)

            span = tx.save_work(
                replace(
                    current,
                    started_at=started_at,
                    ended_at=ended_at,
                    category_id=category_id,
                    is_billable=is_billable,
                    hourly_rate=hourly_rate,
                    task_description=optional_text(correction.task_description) or current.task_description,
                    note=optional_text(correction.note) or current.note,
                    duration_minutes=minutes,
                    cost=cost,
                )
            )

        logger.info("Work session corrected session=%s employee=%s", session_id, span.employee_id)
        return span

    def delete_session(self, session_id: int) -> None:
        existing = self._store.find_work(session_id)
        if existing is None:
            raise SpanNotFound()

        with self._store.transaction(existing.employee_id) as tx:
            if not tx.delete_work(session_id):
                raise SpanNotFound()

        logger.info("Work session deleted session=%s employee=%s", session_id, existing.employee_id)
