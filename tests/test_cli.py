"""
Tests for CLI entry points.

Every test points --store at a temporary file so real user data is never
touched, and clears the environment so no local config leaks in.
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from helpers import compact, make_course, make_envelope

from coursefilter.cli import main
from coursefilter.storage import JsonStore, Setting


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.store_path = self.dir / "storage.json"
        patcher = mock.patch.dict(os.environ, {"COURSEFILTER_CATALOG_YEAR": "2024"}, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def run_cli(self, *args: str) -> tuple[int, str]:
        buf = io.StringIO()
        with redirect_stdout(buf):
            with self.assertRaises(SystemExit) as ctx:
                main(["--store", str(self.store_path), *args])
        return ctx.exception.code, buf.getvalue()

    def test_toggle_writes_store(self) -> None:
        code, _ = self.run_cli("toggle", "prefix", "CS")
        self.assertEqual(code, 0)
        store = JsonStore(self.store_path)
        self.assertEqual(store.get_set(Setting.PREFIXES), frozenset({"CS"}))
        self.assertTrue(store.get_flag(Setting.DIRTY))

    def test_toggle_rejects_unknown_period(self) -> None:
        code, _ = self.run_cli("toggle", "period", "VII")
        self.assertNotEqual(code, 0)
        self.assertFalse(self.store_path.exists())

    def test_toggle_requires_value(self) -> None:
        code, _ = self.run_cli("toggle", "prefix", " ")
        self.assertNotEqual(code, 0)

    def test_clear(self) -> None:
        self.run_cli("toggle", "period", "II")
        code, _ = self.run_cli("clear")
        self.assertEqual(code, 0)
        self.assertEqual(JsonStore(self.store_path).get_set(Setting.PERIODS), frozenset())

    def test_period(self) -> None:
        code, out = self.run_cli("period", "2024-08-30", "2024-11-30")
        self.assertEqual(code, 0)
        self.assertIn("I-II", out)

    def test_filter_file(self) -> None:
        self.run_cli("toggle", "prefix", "MS")
        self.run_cli("toggle", "prefix", "MS")  # now excluded

        src = self.dir / "response.json"
        out = self.dir / "out" / "filtered.json"
        envelope = make_envelope([make_course("CS-E4580", "2024-09-02"), make_course("MS-C1620", "2024-09-02")])
        src.write_text(compact(envelope), encoding="utf-8")

        code, _ = self.run_cli("filter", str(src), "--out", str(out), "--chunk-size", "7")
        self.assertEqual(code, 0)
        result = json.loads(out.read_text(encoding="utf-8"))
        courses = result["actions"][0]["returnValue"]["returnValue"]["courses"]
        self.assertEqual([c["hed__Course__r"]["CourseCode__c"] for c in courses], ["CS-E4580"])

    def test_filter_missing_file(self) -> None:
        code, _ = self.run_cli("filter", str(self.dir / "nope.json"))
        self.assertEqual(code, 1)

    def test_show(self) -> None:
        JsonStore(self.store_path).set_course_periods({"CS-E4580": "I"})
        code, out = self.run_cli("show")
        self.assertEqual(code, 0)
        self.assertIn("CS-E4580", out)

    def test_bad_config(self) -> None:
        code, _ = self.run_cli("--config", str(self.dir / "missing.yaml"), "show")
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
