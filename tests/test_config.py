"""
Tests for layered configuration.
"""

import pytest

from hostdeploy.config import DEFAULT_APP_BASE_DIR, DeployConfig, load_config
from hostdeploy.state import create_deployment_dir, get_home, set_home


class TestConfig:

    def test_defaults(self):
        config = load_config(environ={})
        assert config.base_dir == DEFAULT_APP_BASE_DIR
        assert config.grace_period == 5.0
        assert config.health_mode == "single"
        assert config.log_lines == 50
        assert config.health_url is None

    def test_yaml_then_env(self, tmp_path):
        config_file = tmp_path / "hostdeploy.yml"
        config_file.write_text("base_dir: /srv/apps\ngrace_period: 2\nlog_lines: 20\n")

        config = load_config(environ={
            "HOSTDEPLOY_CONFIG": str(config_file),
            "HOSTDEPLOY_LOG_LINES": "100",
        })

        assert config.base_dir == "/srv/apps"
        assert config.grace_period == 2.0
        assert config.log_lines == 100

    def test_unknown_key(self, tmp_path):
        config_file = tmp_path / "bad.yml"
        config_file.write_text("colour: blue\n")
        with pytest.raises(ValueError, match="Unknown config key"):
            load_config(str(config_file), environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.yml"), environ={})

    def test_non_mapping_file(self, tmp_path):
        config_file = tmp_path / "list.yml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(config_file), environ={})

    def test_invalid_health_mode(self):
        with pytest.raises(ValueError, match="Invalid health mode"):
            DeployConfig(health_mode="eventually")

    def test_poll_timeout_must_cover_grace(self):
        with pytest.raises(ValueError):
            DeployConfig(health_mode="poll", grace_period=10, health_timeout=5)
        # single mode ignores the timeout
        assert DeployConfig(grace_period=60).grace_period == 60

    def test_override_skips_none(self):
        config = DeployConfig().override(base_dir="/srv", grace_period=None, log_lines="7")
        assert config.base_dir == "/srv"
        assert config.grace_period == 5.0
        assert config.log_lines == 7

    def test_home_from_yaml(self, tmp_path):
        config_file = tmp_path / "hostdeploy.yml"
        config_file.write_text(f"home: {tmp_path / 'runs'}\n")

        config = load_config(str(config_file), environ={})

        assert config.home == str(tmp_path / "runs")

    def test_home_from_environment(self, tmp_path):
        config = load_config(environ={"HOSTDEPLOY_HOME": str(tmp_path / "runs")})
        assert config.home == str(tmp_path / "runs")

    def test_home_routes_run_directories(self, tmp_path, hostdeploy_home):
        set_home(str(tmp_path / "runs"))

        run_dir = create_deployment_dir("d-20240101-000000-abcd")

        assert get_home() == (tmp_path / "runs").resolve()
        assert run_dir.parent == (tmp_path / "runs").resolve()
        assert not hostdeploy_home.exists()
