"""
Timed check-in.

Given a course id and a time of day ("0800"), wait until that time today
(Beijing time, fixed UTC+8) plus a small margin, then look up the course's
schedules again and check in to the newest one.

The schedule id is resolved only after the wait, because the session may
not exist yet when the command is started.

Flow:

    compute deadline -> (past? skip) -> sleep -> query schedules
                     -> pick schedule -> check in

Rules:
- a deadline already in the past is skipped, never fired late
- no retry and no re-arming after a failure
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from iclass.errors import IClassError, QueryError, ValidationError
from iclass.model import Schedule

logger = logging.getLogger(__name__)


BEIJING = timezone(timedelta(hours=8))
MARGIN_SECONDS = 5

SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"
CANCELLED = "cancelled"


@dataclass
class Deadline:
    target: datetime
    remaining: int  # seconds to wait, margin included


@dataclass
class CheckinOutcome:
    state: str
    deadline: Deadline
    schedule: Optional[Schedule] = None
    error: Optional[IClassError] = None

    @property
    def ok(self) -> bool:
        return self.state in (SUCCEEDED, SKIPPED, CANCELLED)


def now_beijing() -> datetime:
    return datetime.now(timezone.utc).astimezone(BEIJING)


def parse_time_of_day(text: str) -> tuple[int, int]:
    """
    Parse 'HHMM' (exactly four digits) into (hour, minute).
    """
    raw = (text or "").strip()
    if not re.fullmatch(r"[0-9]{4}", raw):
        raise ValidationError(f"Invalid time '{text}': expected HHMM, e.g. 0800")

    hour, minute = int(raw[:2]), int(raw[2:])
    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid time '{text}': hour must be 00-23 and minute 00-59")
    return hour, minute


def compute_deadline(text: str, now: Optional[datetime] = None) -> Deadline:
    """
    Target = today (UTC+8) at HH:MM:00. remaining = whole seconds until then + margin.
    """
    hour, minute = parse_time_of_day(text)
    current = (now or now_beijing()).astimezone(BEIJING)
    target = current.replace(hour=hour, minute=minute, second=0, microsecond=0)

    # int() truncates toward zero, like counting whole seconds
    remaining = int((target - current).total_seconds()) + MARGIN_SECONDS
    return Deadline(target=target, remaining=remaining)


def last_schedule(schedules: Sequence[Schedule]) -> Schedule:
    """
    Default pick: the server lists schedules oldest first, so the last one
    is the session that is current at the deadline.
    """
    if not schedules:
        raise QueryError("No matching schedule at deadline")
    return schedules[-1]


def timed_checkin(
    session,
    course_id: str,
    time_text: str,
    user_id: str,
    *,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
    pick: Callable[[Sequence[Schedule]], Schedule] = last_schedule,
    echo: Callable[[str], None] = print,
) -> CheckinOutcome:
    """
    Run one timed check-in for `course_id` at `time_text` (HHMM).

    Raises ValidationError for a malformed time. Every remote failure is
    returned as a FAILED outcome instead of raised.
    """
    deadline = compute_deadline(time_text, now=now)
    logger.debug("Deadline %s, remaining %ss", deadline.target.isoformat(), deadline.remaining)

    if deadline.remaining <= 0:
        echo(f"Time {deadline.target:%H:%M} has already passed today, nothing to do.")
        return CheckinOutcome(SKIPPED, deadline)

    echo(f"Waiting for {deadline.remaining} seconds (until {deadline.target:%H:%M} +{MARGIN_SECONDS}s)")
    try:
        sleep(deadline.remaining)
    except KeyboardInterrupt:
        echo("Cancelled while waiting, no check-in was attempted.")
        return CheckinOutcome(CANCELLED, deadline)

    try:
        schedules = session.query_schedules(course_id, user_id)
        schedule = pick(schedules)
    except IClassError as exc:
        return CheckinOutcome(FAILED, deadline, error=exc)

    logger.info("Resolved schedule %s (%s) for course %s", schedule.id, schedule.time, course_id)
    try:
        session.checkin(schedule.id, user_id)
    except IClassError as exc:
        return CheckinOutcome(FAILED, deadline, schedule=schedule, error=exc)

    return CheckinOutcome(SUCCEEDED, deadline, schedule=schedule)
