"""
Central data model definitions used across the project.

Course and Schedule mirror the fields the iClass API returns that we
actually show or act on. Config is the single document stored in
buaa-iclass-config.json.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, List


@dataclass
class Course:
    """
    One course the user is enrolled in for a term.
    """

    id: str
    name: str = ""
    teacher: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Course":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name", "") or ""),
            teacher=str(data.get("teacher", "") or ""),
        )


@dataclass
class Schedule:
    """
    One concrete session of a course. Never persisted.
    """

    id: str
    time: str = ""
    state: str = ""


@dataclass
class Config:
    """
    Local state: credentials, resolved user id and the cached course list.
    """

    username: str = ""
    password: str = ""
    user_id: str = ""
    courses: List[Course] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Build a Config from parsed JSON.

        Raises ValueError/TypeError when the document has the wrong shape,
        so the caller can treat it as a corrupt file.
        """
        if not isinstance(data, dict):
            raise TypeError("config root must be an object")

        courses_raw = data.get("courses", [])
        if not isinstance(courses_raw, list):
            raise TypeError("'courses' must be a list")

        courses: list[Course] = []
        for c in courses_raw:
            if not isinstance(c, dict) or "id" not in c:
                raise ValueError(f"invalid course entry: {c!r}")
            courses.append(Course.from_dict(c))

        return cls(
            username=str(data.get("username") or ""),
            password=str(data.get("password") or ""),
            user_id=str(data.get("user_id") or ""),
            courses=courses,
        )
