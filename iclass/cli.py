"""
CLI (Command Line Interface).

    iclass login   [-u USERNAME] [-p PASSWORD]
    iclass list    [-r COURSE_ID]
    iclass query   [-t TERM] [-c COURSE_ID]
    iclass checkin [-s SCHEDULE_ID] [-c COURSE_ID -t HHMM]

Every run follows the same lifecycle:
- load buaa-iclass-config.json (missing/broken file -> empty config)
- run exactly one command, which may change the config in memory
- save the session cookies and write the config back, once

A command that fails reports the error and still reaches the save step.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from iclass import timing
from iclass.display import print_courses, print_schedules
from iclass.errors import IClassError
from iclass.model import Config
from iclass.session import COOKIE_FILENAME, Session
from iclass.storage import CONFIG_FILENAME, apply_partial, load_config, remove_course, save_config

logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return (Path(__file__).resolve().parent / "VERSION").read_text(encoding="utf-8").strip()
    except OSError:
        return "0.1.0"


def _error(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)


def _cmd_login(args: argparse.Namespace, config: Config, session: Session) -> int:
    """
    Merge the given credentials, log in to SSO, then to iClass to get the user id.
    """
    apply_partial(config, username=args.username, password=args.password)
    code = 0

    try:
        session.sso_login(config.username, config.password)
        print("SSO login successful")
    except IClassError as exc:
        _error(str(exc))
        code = 1

    # the iClass step can still work on cookies from an earlier SSO login
    try:
        user_id = session.iclass_login()
    except IClassError as exc:
        _error(str(exc))
        return 1

    apply_partial(config, user_id=user_id)
    print(f"iClass login successful (user id: {user_id})")
    return code


def _cmd_list(args: argparse.Namespace, config: Config) -> int:
    """
    Show the cached course list, or remove a course from it by id.
    """
    if args.remove is None:
        print_courses(config.courses)
        return 0

    cid = args.remove.strip()
    removed = remove_course(config, cid)
    if not removed:
        print(f"Not in list: {cid}")
        return 0

    print(f"Removed: {cid} (courses left: {len(config.courses)})")
    return 0


def _cmd_query(args: argparse.Namespace, config: Config, session: Session) -> int:
    """
    --term replaces the cached course list, --course only prints schedules.
    """
    if args.term is None and args.course is None:
        print("Please provide --term and/or --course.")
        return 1

    code = 0
    if args.term is not None:
        try:
            courses = session.query_courses(args.term, config.user_id)
        except IClassError as exc:
            _error(str(exc))
            code = 1
        else:
            print_courses(courses)
            config.courses = courses
            print(f"Saved {len(courses)} courses for term {args.term}")

    if args.course is not None:
        try:
            schedules = session.query_schedules(args.course, config.user_id)
        except IClassError as exc:
            _error(str(exc))
            code = 1
        else:
            print_schedules(schedules)

    return code


def _cmd_checkin(args: argparse.Namespace, config: Config, session: Session) -> int:
    """
    Check in directly by schedule id, and/or at a given time by course id.
    """
    code = 0

    if args.schedule is not None:
        try:
            session.checkin(args.schedule, config.user_id)
            print("Checkin successful")
        except IClassError as exc:
            _error(str(exc))
            code = 1

    if args.course is not None and args.time is not None:
        try:
            outcome = timing.timed_checkin(session, args.course, args.time, config.user_id)
        except IClassError as exc:
            _error(str(exc))
            return 1

        if outcome.state == timing.SUCCEEDED:
            print(f"Checkin successful (schedule {outcome.schedule.id})")
        elif outcome.state == timing.FAILED:
            _error(str(outcome.error))
        if not outcome.ok:
            code = 1
    elif args.course is not None or args.time is not None:
        missing = "--time" if args.time is None else "--course"
        print(f"Timed checkin needs both --course and --time (missing {missing}); nothing done.")
        code = 1
    elif args.schedule is None:
        print("Please provide --schedule, or --course together with --time.")
        code = 1

    return code


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="iclass", description="A CLI for BUAA iClass")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument("--config", type=str, default=CONFIG_FILENAME, help="Config file path")
    parser.add_argument("--cookies", type=str, default=COOKIE_FILENAME, help="Cookie store path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_login = sub.add_parser("login", help="Login to iClass (credentials are saved in the config)")
    p_login.add_argument("-u", "--username", type=str, help="SSO username")
    p_login.add_argument("-p", "--password", type=str, help="SSO password")

    p_list = sub.add_parser("list", help="List and manage saved courses")
    p_list.add_argument("-r", "--remove", type=str, help="Remove course by ID (some courses may be invalid)")

    p_query = sub.add_parser("query", help="Query courses and schedules")
    p_query.add_argument("-t", "--term", type=str, help="Term ID, e.g. 202420251 (autumn 2024); result is saved")
    p_query.add_argument("-c", "--course", type=str, help="Course ID whose schedules to show")

    p_checkin = sub.add_parser("checkin", help="Checkin to a schedule, now or at a given time")
    p_checkin.add_argument("-s", "--schedule", type=str, help="Checkin by schedule ID directly")
    p_checkin.add_argument("-c", "--course", type=str, help="Course ID for timed checkin (needs --time)")
    p_checkin.add_argument("-t", "--time", type=str, help="Time of day HHMM, e.g. 0800 means 8:00")

    return parser


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def dispatch(args: argparse.Namespace, config: Config, session: Session) -> int:
    if args.command == "login":
        return _cmd_login(args, config, session)
    if args.command == "list":
        return _cmd_list(args, config)
    if args.command == "query":
        return _cmd_query(args, config, session)
    if args.command == "checkin":
        return _cmd_checkin(args, config, session)
    return 2


def main(argv: list[str] | None = None, session_factory: Callable[[str], Session] = Session) -> None:
    """
    CLI entry point. Parses args, runs one command, persists state
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    loaded = load_config(args.config)
    logger.debug("Config %s: %s", args.config, loaded.status)
    config = loaded.config
    session = session_factory(args.cookies)

    code = dispatch(args, config, session)

    try:
        session.save()
    finally:
        save_config(config, args.config)
    raise SystemExit(code)
