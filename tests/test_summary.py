"""Tests for wrapped_summary.py::main()."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest

from export_errors import AmbiguousProvider, InvalidJson

MODULE = "wrapped_summary"


class TestMainErrorHandling:
    """Verify main() exits with code 1 on archive errors."""

    def test_missing_file_exits_1(self, capsys):
        with patch(
            f"{MODULE}.build_wrapped_stats",
            side_effect=FileNotFoundError("not found"),
        ):
            with pytest.raises(SystemExit) as exc_info:
                from wrapped_summary import main

                main(["nonexistent.zip"])
            assert exc_info.value.code == 1
        assert "nonexistent.zip" in capsys.readouterr().err

    def test_parse_error_exits_1(self, capsys):
        with patch(
            f"{MODULE}.build_wrapped_stats",
            side_effect=InvalidJson("Failed to parse conversations.json."),
        ):
            with pytest.raises(SystemExit) as exc_info:
                from wrapped_summary import main

                main(["corrupt.zip"])
            assert exc_info.value.code == 1
        assert "Failed to parse" in capsys.readouterr().err

    def test_parse_error_logged_with_traceback(self, caplog):
        with patch(
            f"{MODULE}.build_wrapped_stats",
            side_effect=InvalidJson("Failed to parse conversations.json."),
        ):
            with caplog.at_level(logging.DEBUG, logger=MODULE):
                with pytest.raises(SystemExit):
                    from wrapped_summary import main

                    main(["corrupt.zip", "--verbose"])

        records = [r for r in caplog.records if r.name == MODULE]
        assert records
        assert "corrupt.zip" in records[0].getMessage()
        assert records[0].exc_info is not None

    def test_ambiguous_provider_suggests_flag(self, capsys):
        with patch(
            f"{MODULE}.build_wrapped_stats",
            side_effect=AmbiguousProvider("Could not determine provider."),
        ):
            with pytest.raises(SystemExit) as exc_info:
                from wrapped_summary import main

                main(["export.zip"])
            assert exc_info.value.code == 1
        assert "--provider" in capsys.readouterr().err

    def test_real_missing_file(self, tmp_path):
        from wrapped_summary import main

        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path / "missing.zip")])
        assert exc_info.value.code == 1


class TestMainSuccess:
    def test_prints_report(self, tmp_path, claude_zip, capsys):
        from wrapped_summary import main

        archive = tmp_path / "export.zip"
        archive.write_bytes(claude_zip)
        main([str(archive)])

        out = capsys.readouterr().out
        assert "Your Claude Wrapped" in out
        assert "Messages: 5" in out

    def test_provider_flag_passed_through(self):
        from wrapped_summary import main

        with patch(f"{MODULE}.build_wrapped_stats", return_value={}) as build:
            with patch(f"{MODULE}.print_summary_report"):
                main(["export.zip", "--provider", "chatgpt"])
        build.assert_called_once_with("export.zip", provider_override="chatgpt")

    def test_writes_output_file(self, tmp_path, chat_gpt_zip):
        from wrapped_summary import main

        archive = tmp_path / "export.zip"
        archive.write_bytes(chat_gpt_zip)
        output = tmp_path / "out" / "stats.json"
        main([str(archive), "--output", str(output)])

        saved = json.loads(output.read_text(encoding="utf-8"))
        assert saved["provider"] == "chatgpt"
        assert saved["image_usage"]["total_images"] == 2

    def test_rejects_unknown_provider(self):
        from wrapped_summary import main

        with pytest.raises(SystemExit) as exc_info:
            main(["export.zip", "--provider", "bard"])
        assert exc_info.value.code == 2
