"""
Tests for the command-line interface.
"""

import logging

import pytest

from parmove.main import EXIT_FATAL, build_parser, apply_cli_overrides, main
from parmove.config.settings import Config
from parmove.utils.logging_config import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the user's settings and log files out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    yield home
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "root"
    path.mkdir()
    (path / "photo.JPG").write_bytes(b"jpg")
    (path / "notes.txt").write_bytes(b"txt")
    (path / "unknown.xyz").write_bytes(b"xyz")
    return path


def run(*args):
    return main([*args, "--no-progress", "--no-log-file"])


class TestArguments:
    """Tests for option parsing and layering."""

    def test_defaults(self):
        args = build_parser().parse_args([])
        config = apply_cli_overrides(Config(), args)

        assert str(args.directory) == "."
        assert config.sorting.mode == "copy"
        assert config.notifications.enabled is False
        assert config.index.enabled is False

    def test_overrides(self, tmp_path):
        args = build_parser().parse_args([
            "src", "-o", "out", "-m", "-n", "-i", "-j", "3", "-d", "1",
            "-b", "txt,log", "--skip-unmatched", "--log-level", "DEBUG",
        ])
        config = apply_cli_overrides(Config(), args)

        assert str(config.sorting.output_directory) == "out"
        assert config.sorting.mode == "move"
        assert config.sorting.threads == 3
        assert config.sorting.max_depth == 1
        assert config.sorting.blacklist == ["txt,log"]
        assert config.sorting.treat_unmatched_as == "skip"
        assert config.sorting.treat_no_extension_as == "other"
        assert config.notifications.enabled is True
        assert config.index.enabled is True
        assert config.logging.level == "DEBUG"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "parmove" in capsys.readouterr().out


class TestMain:
    """Tests for main() exit codes and output."""

    def test_success(self, root, tmp_path, capsys):
        out = tmp_path / "out"

        code = run(str(root), "-o", str(out))

        assert code == 0
        assert (out / "Images" / "photo.JPG").exists()
        assert (root / "photo.JPG").exists()
        stdout = capsys.readouterr().out
        assert "Files processed: 3" in stdout
        assert "Total files found: 3" in stdout

    def test_move_with_blacklist(self, root, tmp_path, capsys):
        out = tmp_path / "out"

        code = run(str(root), "-o", str(out), "--move", "--blacklist", "txt")

        assert code == 0
        assert not (root / "photo.JPG").exists()
        assert (root / "notes.txt").exists()
        assert "Files skipped: 1 (blacklisted: 1)" in capsys.readouterr().out

    def test_blacklist_file(self, root, tmp_path):
        out = tmp_path / "out"
        blacklist = tmp_path / "blacklist.txt"
        blacklist.write_text("# skip these\nxyz\n")

        code = run(str(root), "-o", str(out), "--blacklist-file", str(blacklist))

        assert code == 0
        assert not (out / "Other").exists()

    def test_empty_directory(self, tmp_path, capsys):
        empty = tmp_path / "empty"
        empty.mkdir()

        code = run(str(empty), "-o", str(tmp_path / "out"))

        assert code == 0
        assert "No files found to process." in capsys.readouterr().out

    def test_item_failures_exit_one(self, root, tmp_path, capsys):
        """Test a run with failed items exits 1 and lists them on stderr."""
        out = tmp_path / "out"
        out.mkdir()
        (out / "Documents").write_text("blocking file")

        code = run(str(root), "-o", str(out))

        captured = capsys.readouterr()
        assert code == 1
        assert "Errors encountered during processing" in captured.err
        assert "Files failed: 1" in captured.out
        assert (out / "Images" / "photo.JPG").exists()

    def test_missing_root(self, tmp_path):
        assert run(str(tmp_path / "missing"), "-o", str(tmp_path / "out")) == EXIT_FATAL

    def test_invalid_thread_count(self, root, tmp_path, capsys):
        code = run(str(root), "-o", str(tmp_path / "out"), "--threads", "0")

        assert code == EXIT_FATAL
        assert "Thread count" in capsys.readouterr().err
        assert not (tmp_path / "out").exists()

    def test_negative_depth(self, root, tmp_path):
        assert run(str(root), "-o", str(tmp_path / "out"), "-d", "-1") == EXIT_FATAL

    def test_malformed_category_file(self, root, tmp_path):
        """Test a bad category file aborts before any file is touched."""
        categories = tmp_path / "categories.toml"
        categories.write_text("Code = [\"py\", 1]\n")

        code = run(str(root), "-o", str(tmp_path / "out"), "--move", "-c", str(categories))

        assert code == EXIT_FATAL
        assert (root / "photo.JPG").exists()
        assert not (tmp_path / "out").exists()

    def test_category_file(self, root, tmp_path):
        categories = tmp_path / "categories.toml"
        categories.write_text('[categories]\nPictures = ["jpg"]\n')
        out = tmp_path / "out"

        assert run(str(root), "-o", str(out), "-c", str(categories)) == 0
        assert (out / "Pictures" / "photo.JPG").exists()

    def test_settings_file(self, root, tmp_path, isolated_home):
        """Test the default settings file in the home directory is used."""
        out = tmp_path / "from-settings"
        settings_dir = isolated_home / ".parmove"
        settings_dir.mkdir()
        (settings_dir / "config.yaml").write_text(
            f"sorting:\n  output_directory: {out}\n  mode: move\n"
        )

        assert run(str(root)) == 0
        assert (out / "Documents" / "notes.txt").exists()
        assert not (root / "notes.txt").exists()

    def test_malformed_settings(self, root, tmp_path, capsys):
        settings = tmp_path / "settings.yaml"
        settings.write_text("sorting: [broken\n")

        code = run(str(root), "--settings", str(settings))

        assert code == EXIT_FATAL
        assert "Error in configuration" in capsys.readouterr().err

    def test_index_option(self, root, tmp_path):
        out = tmp_path / "out"

        assert run(str(root), "-o", str(out), "--index") == 0
        assert (out / "index.html").exists()

    def test_log_file_written(self, root, tmp_path, isolated_home):
        """Test the rotating JSON log lands in the home log directory."""
        code = main([str(root), "-o", str(tmp_path / "out"), "--no-progress"])

        log_file = isolated_home / ".parmove" / "logs" / "parmove.log"
        assert code == 0
        assert log_file.exists()
        assert '"correlation_id"' in log_file.read_text(encoding="utf-8")
