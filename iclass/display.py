"""
Plain text tables for courses and schedules (rendered with rich).
"""

from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from iclass.model import Course, Schedule


def _console(console: Optional[Console]) -> Console:
    # a fresh Console picks up the current sys.stdout (matters for redirected output)
    return console if console is not None else Console(highlight=False)


def course_table(courses: Sequence[Course]) -> Table:
    table = Table(box=box.SIMPLE, show_lines=False)
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Teacher")
    for c in courses:
        table.add_row(c.id, c.name, c.teacher)
    return table


def schedule_table(schedules: Sequence[Schedule]) -> Table:
    table = Table(box=box.SIMPLE, show_lines=False)
    table.add_column("ID", no_wrap=True)
    table.add_column("Time")
    table.add_column("State")
    for s in schedules:
        table.add_row(s.id, s.time, s.state)
    return table


def print_courses(courses: Sequence[Course], console: Optional[Console] = None) -> None:
    out = _console(console)
    if not courses:
        out.print("No courses.")
        return
    out.print(course_table(courses))


def print_schedules(schedules: Sequence[Schedule], console: Optional[Console] = None) -> None:
    out = _console(console)
    if not schedules:
        out.print("No schedules.")
        return
    out.print(schedule_table(schedules))
