"""
Unit tests for the config document.

Storage contract:
- Missing/invalid file -> default Config (status tells which)
- Partial updates only touch supplied fields
- Removing a course drops every entry with that id
- Saving overwrites the whole document
"""

import json
import tempfile
import unittest
from pathlib import Path

from iclass.model import Config, Course
from iclass.storage import CORRUPT, LOADED, MISSING, apply_partial, load_config, remove_course, save_config


class TestLoad(unittest.TestCase):
    def test_load_missing_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            result = load_config(Path(d) / "missing.json")
            self.assertEqual(result.status, MISSING)
            self.assertEqual(result.config, Config())
            self.assertFalse(result.from_disk)

    def test_load_broken_json_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text("{not json", encoding="utf-8")
            result = load_config(p)
            self.assertEqual(result.status, CORRUPT)
            self.assertEqual(result.config, Config())

    def test_load_empty_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text("", encoding="utf-8")
            self.assertEqual(load_config(p).status, CORRUPT)

    def test_load_wrong_shape_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            for payload in ([1, 2], {"courses": "nope"}, {"courses": [{"name": "no id"}]}):
                p.write_text(json.dumps(payload), encoding="utf-8")
                result = load_config(p)
                self.assertEqual(result.status, CORRUPT, msg=payload)
                self.assertEqual(result.config, Config())

    def test_null_fields_load_as_empty_strings(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            payload = {"username": None, "password": None, "user_id": None, "courses": [{"id": "A", "name": None}]}
            p.write_text(json.dumps(payload), encoding="utf-8")
            result = load_config(p)
            self.assertEqual(result.status, LOADED)
            self.assertEqual(result.config, Config("", "", "", [Course("A", "", "")]))

    def test_save_and_load_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "nested" / "config.json"
            config = Config("alice", "secret", "42", [Course("A", "Math", "Li")])
            save_config(config, p)

            result = load_config(p)
            self.assertEqual(result.status, LOADED)
            self.assertEqual(result.config, config)

            data = json.loads(p.read_text(encoding="utf-8"))
            self.assertEqual(sorted(data), ["courses", "password", "user_id", "username"])
            self.assertEqual(data["courses"], [{"id": "A", "name": "Math", "teacher": "Li"}])

    def test_save_overwrites_longer_previous_content(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            save_config(Config(courses=[Course(str(i), "x" * 50) for i in range(20)]), p)
            save_config(Config(username="bob"), p)
            self.assertEqual(load_config(p).config, Config(username="bob"))


class TestMutations(unittest.TestCase):
    def test_apply_partial_keeps_absent_fields(self) -> None:
        config = Config(username="alice", password="old", user_id="42")
        apply_partial(config, username=None, password="new")
        self.assertEqual(config.username, "alice")
        self.assertEqual(config.password, "new")
        self.assertEqual(config.user_id, "42")

    def test_apply_partial_allows_empty_string(self) -> None:
        config = Config(username="alice")
        apply_partial(config, username="")
        self.assertEqual(config.username, "")

    def test_remove_course_drops_all_matches_and_keeps_order(self) -> None:
        config = Config(courses=[Course("A"), Course("B"), Course("A"), Course("C")])
        removed = remove_course(config, "A")
        self.assertEqual(removed, 2)
        self.assertEqual([c.id for c in config.courses], ["B", "C"])

    def test_remove_unknown_course_is_noop(self) -> None:
        config = Config(courses=[Course("B")])
        self.assertEqual(remove_course(config, "A"), 0)
        self.assertEqual(config.courses, [Course("B")])


if __name__ == "__main__":
    unittest.main()
