"""Tests for shared utilities."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mapcompose.utils import clean_filename, ensure_directory, load_yaml_file, setup_logging, timer


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_console_only(self, restore_root_logger) -> None:
        assert setup_logging(verbose=False) is None
        assert logging.getLogger().level == logging.INFO

    def test_verbose(self, restore_root_logger) -> None:
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_file_logging(self, restore_root_logger, tmp_path: Path) -> None:
        log_file = setup_logging(verbose=False, job_name="East Lansing", enable_file_logging=True,
                                 logs_dir=tmp_path / "logs")

        assert log_file is not None
        assert log_file.parent == tmp_path / "logs"
        assert log_file.name.startswith("East_Lansing_")
        logging.getLogger("mapcompose.test").info("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello from the test" in log_file.read_text(encoding="utf-8")


class TestTimer:
    def test_returns_result_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        @timer
        def add(a: int, b: int) -> int:
            return a + b

        with caplog.at_level(logging.INFO):
            assert add(2, 3) == 5
        assert "add completed in" in caplog.text
        assert add.__name__ == "add"


class TestFilesystem:
    def test_ensure_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        assert ensure_directory(target) == target
        assert target.is_dir()

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("East Lansing", "East_Lansing"),
            ("roads: major/minor", "roads_major_minor"),
            ("  spaced  ", "spaced"),
        ],
    )
    def test_clean_filename(self, name: str, expected: str) -> None:
        assert clean_filename(name) == expected


class TestLoadYaml:
    def test_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "job.yml"
        path.write_text("name: test\nstates: [MI]\n")
        assert load_yaml_file(path) == {"name": "test", "states": ["MI"]}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "nope.yml")
