"""
Tests for environment-based settings.
"""

from cronstore.env import setting_from_env


class TestSettingFromEnv:
    """Test collecting prefixed variables."""

    def test_prefixed_variables(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CRONTEST_HOST", "db.internal")
        monkeypatch.setenv("CRONTEST_JOBS_TABLE", "jobs")
        monkeypatch.setenv("UNRELATED", "x")

        setting = setting_from_env(prefix="CRONTEST_")

        assert setting == {"host": "db.internal", "jobs_table": "jobs"}

    def test_dotenv_file(self, monkeypatch, tmp_path):
        # Registered so monkeypatch removes what load_dotenv adds
        monkeypatch.setenv("CRONTEST_PORT", "x")
        monkeypatch.delenv("CRONTEST_PORT")
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("CRONTEST_PORT=6432\n")

        assert setting_from_env(prefix="CRONTEST_") == {"port": "6432"}

    def test_process_environment_wins_over_dotenv(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CRONTEST_SCHEMA", "from-process")
        env_file = tmp_path / "custom.env"
        env_file.write_text("CRONTEST_SCHEMA=from-file\n")

        assert setting_from_env(prefix="CRONTEST_", env_path=env_file) == {"schema": "from-process"}

    def test_missing_dotenv_is_fine(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        assert setting_from_env(prefix="CRONTEST_NOTHING_") == {}

    def test_setting_feeds_a_connection(self, monkeypatch, tmp_path, registry):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CRONTEST_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("CRONTEST_LOCKS_TABLE", "leases")

        with registry.connection("sqlite", setting_from_env(prefix="CRONTEST_")) as conn:
            assert conn.lock("k", 1) is True
            assert conn.config.locks_table == "leases"
