"""
Session: authenticated access to BUAA SSO and the iClass API.

- SSO login (form login page, hidden 'execution' token parsed with BeautifulSoup)
- iClass login (resolves the numeric user id used by every other call)
- course / schedule queries and the check-in call

The cookie jar is kept in buaa-iclass-cookie.json: loaded on construction,
written by save(). Nothing else in the project looks inside it.

Network errors are translated into the matching IClassError subclass.
There is no retry.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, List, Optional, Type
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from iclass.errors import AuthError, CheckinError, IClassError, QueryError
from iclass.model import Course, Schedule

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Paths & URLs
# ---------------------------------------------------------------------------

COOKIE_FILENAME = "buaa-iclass-cookie.json"

SSO_LOGIN_URL = "https://sso.buaa.edu.cn/login"
ICLASS_SERVICE_URL = "https://iclass.buaa.edu.cn:8346/"
ICLASS_API = "https://iclass.buaa.edu.cn:8347/app"
ICLASS_LOGIN_URL = ICLASS_API + "/user/login.action"
COURSES_URL = ICLASS_API + "/choosecourse/get_myall_course.action"
SCHEDULES_URL = ICLASS_API + "/my/get_my_course_sign_detail.action"
CHECKIN_URL = "http://iclass.buaa.edu.cn:8081/app/course/stu_scan_sign.action"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
TIMEOUT = 30


def default_cookie_path() -> Path:
    return Path.cwd() / COOKIE_FILENAME


def _execution_token(html: str) -> Optional[str]:
    """
    Return the hidden 'execution' value of the SSO login form, or None if
    the page has no login form (already logged in).
    """
    soup = BeautifulSoup(html, "html.parser")
    field = soup.select_one("input[name='execution']")
    if field is None:
        return None
    value = field.get("value")
    return str(value) if value else None


class Session:
    def __init__(self, cookie_path: str | Path | None = None, http: Optional[requests.Session] = None) -> None:
        self.cookie_path = Path(cookie_path) if cookie_path is not None else default_cookie_path()
        self.http = http if http is not None else requests.Session()
        self.http.headers.update({"User-Agent": USER_AGENT})
        self._load_cookies()

    # -----------------------------------------------------------------------
    # Cookie persistence
    # -----------------------------------------------------------------------

    def _load_cookies(self) -> None:
        if not self.cookie_path.exists():
            return
        try:
            items = json.loads(self.cookie_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.debug("Ignoring unreadable cookie store %s: %s", self.cookie_path, exc)
            return
        if not isinstance(items, list):
            return
        for item in items:
            if not isinstance(item, dict) or "name" not in item:
                continue
            self.http.cookies.set(
                item["name"],
                item.get("value", ""),
                domain=item.get("domain", ""),
                path=item.get("path", "/"),
            )

    def save(self) -> None:
        """
        Write the cookie jar to the cookie store (overwrite).
        """
        items = [
            {"name": c.name, "value": c.value, "domain": c.domain, "path": c.path}
            for c in self.http.cookies
        ]
        self.cookie_path.parent.mkdir(parents=True, exist_ok=True)
        self.cookie_path.write_text(json.dumps(items, indent=2), encoding="utf-8")

    # -----------------------------------------------------------------------
    # HTTP helpers
    # -----------------------------------------------------------------------

    def _api(
        self,
        method: str,
        url: str,
        params: dict[str, Any],
        error: Type[IClassError],
        what: str,
    ) -> dict[str, Any]:
        """
        Call an iClass JSON endpoint and return the decoded body.

        Raises `error` on transport failure, non-JSON body or STATUS != "0".
        """
        try:
            resp = self.http.request(method, url, params=params, timeout=TIMEOUT)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise error(f"{what}: {exc}") from exc
        except ValueError as exc:
            raise error(f"{what}: response is not JSON") from exc

        if not isinstance(data, dict):
            raise error(f"{what}: unexpected response")
        if str(data.get("STATUS")) != "0":
            msg = data.get("ERRMSG") or data.get("ERRCODE") or "unknown error"
            raise error(f"{what}: {msg}")
        return data

    # -----------------------------------------------------------------------
    # Authentication
    # -----------------------------------------------------------------------

    def sso_login(self, username: str, password: str) -> None:
        try:
            page = self.http.get(SSO_LOGIN_URL, timeout=TIMEOUT)
            page.raise_for_status()
        except requests.RequestException as exc:
            raise AuthError(f"SSO login page unavailable: {exc}") from exc

        execution = _execution_token(page.text)
        if execution is None:
            logger.debug("SSO session still valid, skipping form login")
            return

        form = {
            "username": username,
            "password": password,
            "submit": "登录",
            "type": "username_password",
            "execution": execution,
            "_eventId": "submit",
        }
        try:
            resp = self.http.post(SSO_LOGIN_URL, data=form, timeout=TIMEOUT)
        except requests.RequestException as exc:
            raise AuthError(f"SSO login failed: {exc}") from exc

        # a rejected login renders the form again
        if resp.status_code >= 400 or _execution_token(resp.text) is not None:
            raise AuthError("SSO login rejected (check username/password)")

    def iclass_login(self) -> str:
        """
        Log in to iClass through SSO and return the iClass user id.
        """
        try:
            resp = self.http.get(SSO_LOGIN_URL, params={"service": ICLASS_SERVICE_URL}, timeout=TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise AuthError(f"iClass login failed: {exc}") from exc

        login_name = parse_qs(urlparse(resp.url).query).get("loginName", [""])[0]
        if not login_name:
            raise AuthError("iClass login failed: not logged in to SSO")

        params = {
            "password": "",
            "phone": login_name,
            "userLevel": "1",
            "verificationType": "2",
            "verificationUrl": "",
        }
        data = self._api("GET", ICLASS_LOGIN_URL, params, AuthError, "iClass login failed")
        result = data.get("result") or {}
        user_id = str(result.get("id", "")) if isinstance(result, dict) else ""
        if not user_id:
            raise AuthError("iClass login failed: no user id in response")
        return user_id

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def query_courses(self, term: str, user_id: str) -> List[Course]:
        params = {"user_type": "1", "id": user_id, "xq_code": term}
        data = self._api("GET", COURSES_URL, params, QueryError, "Query course failed")
        return [
            Course(
                id=str(item.get("course_id", "")),
                name=str(item.get("course_name", "") or ""),
                teacher=str(item.get("teacher_name", "") or ""),
            )
            for item in data.get("result") or []
            if isinstance(item, dict)
        ]

    def query_schedules(self, course_id: str, user_id: str) -> List[Schedule]:
        """
        Return the schedules of a course in the order the server sends them
        (the last one is the most recent session).
        """
        params = {"id": user_id, "courseId": course_id}
        data = self._api("GET", SCHEDULES_URL, params, QueryError, "Query schedule failed")
        return [
            Schedule(
                id=str(item.get("courseSchedId", "")),
                time=str(item.get("teachTime", "") or ""),
                state=str(item.get("signStatus", "") or ""),
            )
            for item in data.get("result") or []
            if isinstance(item, dict)
        ]

    def checkin(self, schedule_id: str, user_id: str) -> None:
        params = {
            "courseSchedId": schedule_id,
            "timestamp": str(int(time.time() * 1000)),
            "id": user_id,
        }
        self._api("POST", CHECKIN_URL, params, CheckinError, "Checkin failed")
