"""Tests for config loading with precedence: flags > env > file > defaults."""

from __future__ import annotations

from pathlib import Path

from agentpress.core.config import PressConfig


class TestPressConfigDefaults:
    def test_defaults(self, tmp_path):
        config = PressConfig.load(config_path=tmp_path / "nonexistent.toml", env={})
        assert config.hub_url == "http://localhost:8787"
        assert config.output == "text"
        assert config.timeout == 15.0
        assert config.identity_path is None
        assert config.invite_code == ""

    def test_public_base_url_falls_back(self):
        config = PressConfig(hub_url="http://hub", web_url="", public_url="")
        assert config.public_base_url == "http://hub"
        config.web_url = "http://web/"
        assert config.public_base_url == "http://web"
        config.public_url = "https://press.example/"
        assert config.public_base_url == "https://press.example"


class TestPressConfigFile:
    def test_load_from_toml(self, tmp_path):
        config_file = tmp_path / "cli.toml"
        config_file.write_text(
            'hub_url = "http://remote:9000/"\noutput = "json"\ntimeout = 3.5\ncontent_dir = "/tmp/posts"\n'
        )
        config = PressConfig.load(config_path=config_file, env={})
        assert config.hub_url == "http://remote:9000"
        assert config.output == "json"
        assert config.timeout == 3.5
        assert config.content_dir == Path("/tmp/posts")

    def test_invalid_output_in_toml_ignored(self, tmp_path):
        config_file = tmp_path / "cli.toml"
        config_file.write_text('output = "csv"\n')
        config = PressConfig.load(config_path=config_file, env={})
        assert config.output == "text"


class TestPressConfigEnv:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "cli.toml"
        config_file.write_text('hub_url = "http://file:1"\n')
        config = PressConfig.load(config_path=config_file, env={"AGENTPRESS_HUB_URL": "http://env:2"})
        assert config.hub_url == "http://env:2"

    def test_timeout_in_milliseconds(self, tmp_path):
        config = PressConfig.load(config_path=tmp_path / "x.toml", env={"AGENTPRESS_HTTP_TIMEOUT_MS": "2500"})
        assert config.timeout == 2.5

    def test_bad_timeout_ignored(self, tmp_path):
        config = PressConfig.load(config_path=tmp_path / "x.toml", env={"AGENTPRESS_HTTP_TIMEOUT_MS": "soon"})
        assert config.timeout == 15.0

    def test_invite_code_first_variable_wins(self, tmp_path):
        env = {"REGISTRATION_INVITE_CODE": "late", "AGENTPRESS_INVITE_CODE": "early"}
        config = PressConfig.load(config_path=tmp_path / "x.toml", env=env)
        assert config.invite_code == "early"

    def test_identity_override_resolved(self, tmp_path):
        env = {"AGENTPRESS_IDENTITY_PATH": str(tmp_path / "alt" / "id.json")}
        config = PressConfig.load(config_path=tmp_path / "x.toml", env=env)
        assert config.identity_path == (tmp_path / "alt" / "id.json").resolve()


class TestPressConfigFlags:
    def test_flags_override_env(self, tmp_path):
        env = {"AGENTPRESS_HUB_URL": "http://env:2", "AGENTPRESS_PROFILE": "work", "AGENTPRESS_OUTPUT": "text"}
        config = PressConfig.load(
            config_path=tmp_path / "x.toml",
            env=env,
            hub_url="http://flag:3",
            profile=" personal ",
            output="json",
            log_level="DEBUG",
        )
        assert config.hub_url == "http://flag:3"
        assert config.profile == "personal"
        assert config.output == "json"
        assert config.log_level == "DEBUG"

    def test_unknown_output_flag_ignored(self, tmp_path):
        config = PressConfig.load(config_path=tmp_path / "x.toml", env={}, output="yaml")
        assert config.output == "text"
