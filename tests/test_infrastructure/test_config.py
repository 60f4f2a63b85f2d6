"""Tests for configuration."""

from gemclaw.groups.types import ContainerConfig, RegisteredGroup
from gemclaw.infrastructure import config
from gemclaw.infrastructure.config import TimeoutConfig, read_env_file, recommended_scheduler_concurrency, safe_parse_int


class TestReadEnvFile:
    def test_reads_env_values(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("KEY1=value1\nKEY2=value2\n")
        monkeypatch.chdir(tmp_path)

        result = read_env_file(["KEY1", "KEY2"])
        assert result == {"KEY1": "value1", "KEY2": "value2"}

    def test_strips_quotes(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text('KEY1="quoted"\nKEY2=\'single\'\n')
        monkeypatch.chdir(tmp_path)

        result = read_env_file(["KEY1", "KEY2"])
        assert result["KEY1"] == "quoted"
        assert result["KEY2"] == "single"

    def test_skips_comments(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("# comment\nKEY1=value1\n")
        monkeypatch.chdir(tmp_path)

        result = read_env_file(["KEY1"])
        assert result == {"KEY1": "value1"}

    def test_only_requested_keys(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("KEY1=value1\nKEY2=value2\n")
        monkeypatch.chdir(tmp_path)

        result = read_env_file(["KEY1"])
        assert "KEY2" not in result

    def test_missing_file_returns_empty(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = read_env_file(["KEY1"])
        assert result == {}

    def test_empty_values_skipped(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("KEY1=\n")
        monkeypatch.chdir(tmp_path)

        result = read_env_file(["KEY1"])
        assert "KEY1" not in result


class TestSafeParseInt:
    def test_parses(self):
        assert safe_parse_int("42", 1) == 42

    def test_garbage_falls_back(self):
        assert safe_parse_int("lots", 7) == 7

    def test_missing_falls_back(self):
        assert safe_parse_int(None, 7) == 7
        assert safe_parse_int("  ", 7) == 7


class TestSchedulerSettings:
    def test_defaults_are_sane(self):
        assert config.SCHEDULER_CONCURRENCY >= 1
        assert config.SCHEDULER_POLL_INTERVAL > 0
        assert config.TASK_RESULT_SUMMARY_LENGTH == 200

    def test_recommended_concurrency_clamped(self, monkeypatch):
        monkeypatch.setattr(config.os, "cpu_count", lambda: 64)
        assert recommended_scheduler_concurrency() == config.MAX_CONCURRENT_CONTAINERS

        monkeypatch.setattr(config.os, "cpu_count", lambda: 1)
        assert recommended_scheduler_concurrency() == 1

        monkeypatch.setattr(config.os, "cpu_count", lambda: None)
        assert recommended_scheduler_concurrency() == 1


class TestTimeoutConfig:
    def test_defaults(self):
        config = TimeoutConfig()
        assert config.container_timeout > 0
        assert config.fast_path_timeout > 0

    def test_hard_timeout_at_least_container_timeout(self):
        config = TimeoutConfig(container_timeout=3600000)
        assert config.get_hard_timeout() == 3600000

    def test_hard_timeout_floor(self):
        assert TimeoutConfig(container_timeout=1).get_hard_timeout() == 1000

    def test_group_override(self):
        group = RegisteredGroup(
            name="G", folder="g", trigger="@x", added_at="2024-01-01",
            container_config=ContainerConfig(timeout=5000),
        )
        derived = TimeoutConfig(container_timeout=60000, fast_path_timeout=9).for_group(group)
        assert derived.container_timeout == 5000
        assert derived.fast_path_timeout == 9

    def test_group_without_override(self):
        group = RegisteredGroup(name="G", folder="g", trigger="@x", added_at="2024-01-01")
        assert TimeoutConfig(container_timeout=60000).for_group(group).container_timeout == 60000
