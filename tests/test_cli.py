"""Tests for CLI exit codes."""

from __future__ import annotations

from typer.testing import CliRunner

from news_digest import cli


runner = CliRunner()

BASE_ARGS = ["run", "--no-progress", "--no-log-file", "--no-email", "--no-publish"]


def _isolate(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "load_dotenv", lambda *args, **kwargs: False)
    for name in ("OPENROUTER_API_KEY", "SMTP_HOST", "SMTP_USER", "SMTP_PASS", "EMAIL_FROM", "EMAIL_TO"):
        monkeypatch.delenv(name, raising=False)


def test_missing_api_key_exits_with_error(monkeypatch, tmp_path):
    _isolate(monkeypatch, tmp_path)

    result = runner.invoke(cli.app, BASE_ARGS)

    assert result.exit_code == 1
    assert "OPENROUTER_API_KEY" in result.output


def test_no_articles_exits_cleanly(monkeypatch, tmp_path):
    _isolate(monkeypatch, tmp_path)
    calls = []

    def fake_run_pipeline(cfg, show_progress=True, console=None):  # noqa: ANN001
        calls.append(cfg)
        return None

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)

    result = runner.invoke(cli.app, BASE_ARGS + ["--api-key", "sk-test", "--batch-size", "1"])

    assert result.exit_code == 0
    assert "No articles found" in result.output
    assert calls[0].provider.api_key == "sk-test"
    assert calls[0].pipeline.batch_size == 1
    assert calls[0].mail.enabled is False
    assert calls[0].publish.enabled is False


def test_pipeline_failure_exits_with_error(monkeypatch, tmp_path):
    _isolate(monkeypatch, tmp_path)

    def failing_run_pipeline(cfg, show_progress=True, console=None):  # noqa: ANN001
        raise RuntimeError("summarization exploded")

    monkeypatch.setattr(cli, "run_pipeline", failing_run_pipeline)

    result = runner.invoke(cli.app, BASE_ARGS + ["--api-key", "sk-test"])

    assert result.exit_code == 1


def test_config_file_values_are_used(monkeypatch, tmp_path):
    _isolate(monkeypatch, tmp_path)
    config_path = tmp_path / "config.yaml"
    config_path.write_text("store:\n  max_entries: 5\n", encoding="utf-8")
    calls = []

    def fake_run_pipeline(cfg, show_progress=True, console=None):  # noqa: ANN001
        calls.append(cfg)
        return None

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)

    result = runner.invoke(cli.app, BASE_ARGS + ["--config", str(config_path), "--api-key", "sk-test"])

    assert result.exit_code == 0
    assert calls[0].store.max_entries == 5
