"""End-to-end tests of the playday-sync click command."""

from __future__ import annotations

import json

from click.testing import CliRunner

from playday_sync.cli import main


def _deliveries(tmp_path):
    path = tmp_path / "deliveries.json"
    path.write_text(json.dumps([
        {"test": "test"},
        {"Название": "Arena", "Бонус_1": "500", "record_id": "123"},
    ], ensure_ascii=False), encoding="utf-8")
    return path


class TestCli:
    def test_webhook_replay_writes_report(self, db_conn, tmp_path):
        conn, dsn = db_conn
        reports_dir = tmp_path / "reports"

        result = CliRunner().invoke(main, [
            "--mode", "webhook_replay",
            "--db-dsn", dsn,
            "--deliveries-path", str(_deliveries(tmp_path)),
            "--rejects-path", str(tmp_path / "rejects.csv"),
            "--reports-dir", str(reports_dir),
            "--run-id", "test-replay",
        ])
        assert result.exit_code == 0, f"CLI failed:\n{result.output}"

        report = json.loads((reports_dir / "test-replay.json").read_text())
        assert report["mode"] == "webhook_replay"
        assert report["counters"]["locations_created"] == 1
        assert report["counters"]["probes_acknowledged"] == 1
        assert conn.execute("SELECT COUNT(*) FROM locations").fetchone()[0] == 1

    def test_dsn_from_named_env_var(self, db_conn, tmp_path):
        conn, dsn = db_conn
        result = CliRunner().invoke(
            main,
            [
                "--mode", "webhook_replay",
                "--db-dsn-env", "TEST_PLAYDAY_DSN",
                "--deliveries-path", str(_deliveries(tmp_path)),
                "--rejects-path", str(tmp_path / "rejects.csv"),
                "--reports-dir", str(tmp_path / "reports"),
                "--dry-run",
            ],
            env={"TEST_PLAYDAY_DSN": dsn},
        )
        assert result.exit_code == 0, f"CLI failed:\n{result.output}"
        assert conn.execute("SELECT COUNT(*) FROM locations").fetchone()[0] == 0

    def test_fetch_content_to_file(self, db_conn, tmp_path):
        _conn, dsn = db_conn
        runner = CliRunner()
        runner.invoke(main, [
            "--mode", "webhook_replay",
            "--db-dsn", dsn,
            "--deliveries-path", str(_deliveries(tmp_path)),
            "--rejects-path", str(tmp_path / "rejects.csv"),
            "--reports-dir", str(tmp_path / "reports"),
        ])
        out = tmp_path / "records.json"
        result = runner.invoke(main, [
            "--mode", "fetch_content",
            "--db-dsn", dsn,
            "--output-path", str(out),
            "--reports-dir", str(tmp_path / "reports"),
        ])
        assert result.exit_code == 0, f"CLI failed:\n{result.output}"
        records = json.loads(out.read_text(encoding="utf-8"))["records"]
        assert records[0]["title"] == "Arena"
        assert records[0]["bonus1"] == 500

    def test_missing_dsn_fails(self, tmp_path):
        result = CliRunner().invoke(
            main,
            ["--mode", "fetch_content", "--reports-dir", str(tmp_path)],
            env={"PLAYDAY_DB_DSN": None},
        )
        assert result.exit_code == 1

    def test_replay_requires_deliveries_path(self, tmp_path):
        result = CliRunner().invoke(main, [
            "--mode", "webhook_replay",
            "--db-dsn", "host=unused",
            "--reports-dir", str(tmp_path),
        ])
        assert result.exit_code == 1
