from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..accounting import time_accountant
from ..common.datetime_utils import now_local
from ..common.validators import merge_notes, optional_text
from ..core.constants import AUTO_END_BREAK_NOTE
from ..core.enums import CategoryKind
from ..core.exceptions import (
    AlreadyOnBreak,
    AlreadyWorking,
    InvalidCategory,
    NoActiveBreak,
    NotPresent,
    SpanNotFound,
    StoreConflict,
    ValidationError,
)
from ..timeline.model import BreakSpan
from ..timeline.store import SpanStore, SpanTransaction
from .model import BreakCorrection, EndBreakRequest, StartBreakRequest

logger = logging.getLogger(__name__)


def _check_break_category(tx: SpanTransaction, category_id: int) -> None:
    category = tx.get_category(category_id)
    if category is None or not category.is_active or category.kind != CategoryKind.BREAK:
        raise InvalidCategory()


class BreakTracker:
    """Break start/end inside an open attendance span.

    A break and a work session are never open together. Starting a break
    does not end a running session; the caller ends it first.
    """

    def __init__(self, store: SpanStore):
        self._store = store

    def start_break(
        self,
        employee_id: int,
        request: StartBreakRequest,
        *,
        now: datetime | None = None,
    ) -> BreakSpan:
        now = now or now_local()

        try:
            with self._store.transaction(employee_id) as tx:
                attendance = tx.open_attendance(employee_id)
                if attendance is None:
                    raise NotPresent()
                if tx.open_break(employee_id):
                    raise AlreadyOnBreak()
                if tx.open_work(employee_id):
                    raise AlreadyWorking("End the active work session before starting a break")
                _check_break_category(tx, request.category_id)

                span = tx.insert_break(
                    employee_id=employee_id,
                    attendance_id=attendance.attendance_id,
                    category_id=request.category_id,
                    started_at=now,
                    note=request.note,
                )
        except StoreConflict as exc:
            raise AlreadyOnBreak() from exc

        logger.info(
            "Break started employee=%s break=%s category=%s", employee_id, span.break_id, span.category_id
        )
        return span

    def end_break(
        self,
        employee_id: int,
        request: Optional[EndBreakRequest] = None,
        *,
        now: datetime | None = None,
    ) -> BreakSpan:
        request = request or EndBreakRequest()
        now = now or now_local()

        with self._store.transaction(employee_id) as tx:
            span = self._close(tx, employee_id, now, request.note)
            if span is None:
                raise NoActiveBreak()

        logger.info(
            "Break ended employee=%s break=%s minutes=%.2f", employee_id, span.break_id, span.duration_minutes
        )
        return span

    def auto_end(self, employee_id: int, *, now: datetime | None = None) -> Optional[BreakSpan]:
        """Close the open break as part of clock-out.

        Best-effort: errors are logged and swallowed so that clock-out always
        completes. Returns the closed span, or None when nothing was closed.
        """
        now = now or now_local()
        try:
            with self._store.transaction(employee_id) as tx:
                span = self._close(tx, employee_id, now, AUTO_END_BREAK_NOTE)
        except Exception:
            logger.warning("Auto-ending break failed for employee=%s", employee_id, exc_info=True)
            return None

        if span is not None:
            logger.info(
                "Break auto-ended employee=%s break=%s minutes=%.2f",
                employee_id,
                span.break_id,
                span.duration_minutes,
            )
        return span

    @staticmethod
    def _close(tx: SpanTransaction, employee_id: int, now: datetime, note: Optional[str]) -> Optional[BreakSpan]:
        current = tx.open_break(employee_id)
        if current is None:
            return None
        return tx.save_break(
            replace(
                current,
                ended_at=now,
                duration_minutes=time_accountant.duration_minutes(current.started_at, now),
                note=merge_notes(current.note, note),
            )
        )

    # -- queries ----------------------------------------------------------

    def active_break(self, employee_id: int) -> Optional[BreakSpan]:
        return self._store.find_open_break(employee_id)

    def all_active_breaks(self) -> Sequence[BreakSpan]:
        return self._store.list_open_breaks()

    # -- administrative corrections --------------------------------------

    def correct_break(self, break_id: int, correction: BreakCorrection) -> BreakSpan:
        existing = self._store.find_break(break_id)
        if existing is None:
            raise SpanNotFound()

        with self._store.transaction(existing.employee_id) as tx:
            current = tx.get_break(break_id)
            if current is None:
                raise SpanNotFound()
            if correction.ended_at is not None and current.is_open:
                raise ValidationError("An open break is closed by ending it, not by correction")
            if correction.category_id is not None:
                _check_break_category(tx, correction.category_id)

            started_at = correction.started_at or current.started_at
            ended_at = correction.ended_at or current.ended_at
            if ended_at is not None and ended_at < started_at:
                raise ValidationError("Break end must not be before its start")

            span = tx.save_break(
                replace(
                    current,
                    started_at=started_at,
                    ended_at=ended_at,
                    category_id=correction.category_id or current.category_id,
                    note=optional_text(correction.note) or current.note,
                    duration_minutes=(
                        time_accountant.duration_minutes(started_at, ended_at) if ended_at is not None else None
                    ),
                )
            )

        logger.info("Break corrected break=%s employee=%s", break_id, span.employee_id)
        return span

    def delete_break(self, break_id: int) -> None:
        existing = self._store.find_break(break_id)
        if existing is None:
            raise SpanNotFound()

        with self._store.transaction(existing.employee_id) as tx:
            if not tx.delete_break(break_id):
                raise SpanNotFound()

        logger.info("Break deleted break=%s employee=%s", break_id, existing.employee_id)
