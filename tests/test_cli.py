"""Tests for the command line front end (everything but ``run``)."""

import json

from chunkpomo.__main__ import main


class TestCommands:

    def test_status_when_idle(self, qapp, capsys):
        assert main(["status"]) == 0
        out = capsys.readouterr().out
        assert "No active session." in out
        assert "Next: Work" in out

    def test_chunk_and_task(self, qapp, capsys):
        assert main(["chunk", "--duration", "50"]) == 0
        assert "Started chunk" in capsys.readouterr().out

        assert main(["task", "Write report", "--estimate", "3", "--priority", "high"]) == 0
        task_id = capsys.readouterr().out.strip()
        assert task_id.startswith("task_")

        assert main(["status"]) == 0
        assert "0/3 pomodoros" in capsys.readouterr().out

    def test_second_chunk_fails(self, qapp, capsys):
        main(["chunk"])
        capsys.readouterr()
        assert main(["chunk"]) == 1
        assert "still active" in capsys.readouterr().err

    def test_pause_without_session_fails(self, qapp, capsys):
        assert main(["pause"]) == 1
        assert "No running session" in capsys.readouterr().err

    def test_stats(self, qapp, capsys):
        assert main(["stats"]) == 0
        out = capsys.readouterr().out
        assert "Sessions:       0" in out
        assert "Storage:" in out

    def test_export_import(self, qapp, capsys, tmp_path):
        main(["task", "Loose end"])
        target = tmp_path / "backup.json"
        assert main(["export", str(target)]) == 0
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["pomodoro_tasks"][0]["title"] == "Loose end"

        assert main(["import", str(target)]) == 0
        assert "Import complete." in capsys.readouterr().out

    def test_import_rejects_bad_file(self, qapp, capsys, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")
        assert main(["import", str(bad)]) == 1
        assert "JSON object" in capsys.readouterr().err

    def test_import_with_bad_settings_uses_defaults(self, qapp, capsys, tmp_path):
        backup = tmp_path / "backup.json"
        backup.write_text(json.dumps({
            "pomodoro_settings": {"workDuration": "30", "longBreakInterval": 0},
        }), encoding="utf-8")
        assert main(["import", str(backup)]) == 0
        assert "Import complete." in capsys.readouterr().out
        assert main(["status"]) == 0
        assert "Next: Work" in capsys.readouterr().out
