"""
Tests for the server launcher.
"""

import pytest

from leaderboard.service import start_server


@pytest.fixture
def captured_run(monkeypatch):
    """Replace uvicorn.run and isolate every LB_* variable the launcher writes."""
    for env_name in start_server.FLAG_ENV.values():
        monkeypatch.setenv(env_name, "")
        monkeypatch.delenv(env_name)

    calls = []
    monkeypatch.setattr(start_server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


class TestMain:

    def test_defaults_come_from_config(self, captured_run):
        assert start_server.main([]) == 0

        [(app, kwargs)] = captured_run
        assert app == "leaderboard.service.app:app"
        assert kwargs == {"host": "127.0.0.1", "port": 8080, "log_level": "info"}

    def test_environment_respected(self, monkeypatch, captured_run):
        monkeypatch.setenv("LB_HTTP_PORT", "9200")
        monkeypatch.setenv("LB_LOG_LEVEL", "warning")

        start_server.main([])

        [(_, kwargs)] = captured_run
        assert kwargs["port"] == 9200
        assert kwargs["log_level"] == "warning"

    def test_flags_override_environment(self, monkeypatch, captured_run, tmp_path):
        monkeypatch.setenv("LB_HTTP_PORT", "9200")

        start_server.main([
            "--port", "9300",
            "--host", "0.0.0.0",
            "--log-level", "debug",
            "--cache", str(tmp_path / "cache.json"),
        ])

        [(_, kwargs)] = captured_run
        assert kwargs == {"host": "0.0.0.0", "port": 9300, "log_level": "debug"}
        assert start_server.os.environ["LB_CACHE_PATH"] == str(tmp_path / "cache.json")

    def test_invalid_setting_exits_without_serving(self, monkeypatch, captured_run):
        monkeypatch.setenv("LB_HTTP_PORT", "not-a-port")

        assert start_server.main([]) == 2
        assert captured_run == []
