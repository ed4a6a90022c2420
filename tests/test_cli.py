"""
Tests for the command line interface.
"""
import json
import os
import pytest
from twinscan.cli import CLIApplication


class TestCLI:
    def test_text_output(self, temp_dir, test_files, capsys):
        result = CLIApplication().run(["-i", str(temp_dir)])

        out = capsys.readouterr().out
        assert result.stats.groups == 3
        assert f"Scanning directory: {temp_dir}" in out
        assert "Found 3 group(s) of duplicate files (7 total)" in out
        assert "EXACT" in out
        assert "FUZZY" in out
        assert "Scanned 9 entries, 9 matched filters" in out

    def test_json_output(self, temp_dir, test_files, capsys):
        CLIApplication().run(["-i", str(temp_dir), "--json"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["scanPath"] == str(temp_dir)
        assert payload["stats"]["totalDuplicates"] == 7
        assert {g["matchType"] for g in payload["groups"]} == {"exact", "fuzzy_name"}
        exact_hashes = [g["hash"] for g in payload["groups"] if g["matchType"] == "exact"]
        assert all(len(h) == 12 for h in exact_hashes)

    def test_filters_and_limits_reach_request(self, temp_dir):
        app = CLIApplication()
        args = app.parse_args(["-i", str(temp_dir), "-t", "PDF", "-n", "inv", "-s", "Total",
                               "--max-depth", "2", "--max-files", "50", "--timeout", "1500",
                               "--max-hash-size", "1MB", "--partial-hash", "xxhash", "--workers", "2"])

        request = app.create_request(args)

        assert request.root_dir == str(temp_dir)
        assert request.type_filter == ".pdf"
        assert request.name_filter == "inv"
        assert request.snippet_filter == "Total"
        assert request.max_depth == 2
        assert request.max_files == 50
        assert request.timeout_ms == 1500
        assert request.max_hash_size == 1024 * 1024
        assert request.partial_hash == "xxhash"
        assert request.hash_workers == 2

    def test_query_fills_missing_fields(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        app = CLIApplication()
        args = app.parse_args(["--query", "duplicates under ./ named report that are pdf files",
                               "-n", "invoice"])

        request = app.create_request(args)

        assert request.root_dir == str(temp_dir)
        assert request.type_filter == ".pdf"
        assert request.name_filter == "invoice"

    def test_allowed_root_rejects_escape(self, temp_dir, capsys):
        inside = temp_dir / "inside"
        inside.mkdir()

        with pytest.raises(SystemExit) as exc_info:
            CLIApplication().run(["-i", str(temp_dir), "--allowed-root", str(inside)])

        assert exc_info.value.code == 1
        assert "outside allowed sandbox roots" in capsys.readouterr().err

    def test_allowed_root_resolves_relative_input(self, temp_dir, test_files, capsys):
        result = CLIApplication().run(["-i", "subdir", "--allowed-root", str(temp_dir), "-q"])

        assert result.root_dir == str(temp_dir / "subdir")
        assert result.stats.matched == 1
        assert capsys.readouterr().out == ""

    def test_missing_directory_exits_with_error(self, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            CLIApplication().run(["-i", str(temp_dir / "missing")])

        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_invalid_size_exits_with_error(self, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            CLIApplication().run(["-i", str(temp_dir), "--max-hash-size", "huge"])

        assert exc_info.value.code == 1
        assert "Invalid size format" in capsys.readouterr().err

    def test_sigint_handler_cancels_then_interrupts(self):
        app = CLIApplication()
        app.quiet = True

        app._on_sigint(2, None)
        assert app.token.is_cancelled()

        with pytest.raises(KeyboardInterrupt):
            app._on_sigint(2, None)


@pytest.fixture
def undecodable_tree(temp_dir):
    """Two identical files, one whose name is not valid UTF-8."""
    if os.name != "posix":
        pytest.skip("Byte file names are POSIX-only")
    try:
        with open(os.path.join(os.fsencode(str(temp_dir)), b"bad\xff.txt"), "wb") as f:
            f.write(b"same content")
    except OSError:
        pytest.skip("Filesystem rejects non-UTF-8 file names")
    (temp_dir / "good.txt").write_bytes(b"same content")
    return temp_dir


class TestUndecodableFileNames:
    def test_text_output_escapes_name(self, undecodable_tree, capsys):
        result = CLIApplication().run(["-i", str(undecodable_tree)])

        out = capsys.readouterr().out
        assert result.stats.groups == 1
        assert "bad\\udcff.txt" in out
        assert "good.txt" in out

    def test_json_output_stays_parseable(self, undecodable_tree, capsys):
        CLIApplication().run(["-i", str(undecodable_tree), "--json"])

        payload = json.loads(capsys.readouterr().out)
        names = {f["name"] for g in payload["groups"] for f in g["files"]}
        assert names == {"bad\udcff.txt", "good.txt"}
