import json

from retsclient import config
from retsclient.protocol import RETSConfig


class TestConfig:
    def test_config_section_inherits(self):
        cfg = {
            "default": {"rets_url": "https://a.example.com/login", "rets_user": "a"},
            "other": {"inherits": "default", "rets_user": "b"},
        }
        section = config.config_section(cfg, "other")
        assert section["rets_url"] == "https://a.example.com/login"
        assert section["rets_user"] == "b"

    def test_read_json(self, tmp_path):
        fn = tmp_path / "rets.conf"
        fn.write_text(json.dumps({"default": {"rets_url": "https://x.example.com/"}}))
        assert config.read_config(str(fn)) == {
            "default": {"rets_url": "https://x.example.com/"}
        }

    def test_read_missing_file(self, tmp_path):
        assert config.read_config(str(tmp_path / "missing.conf")) == {}

    def test_get_config_from_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("RETS_URL", raising=False)
        fn = tmp_path / "rets.json"
        fn.write_text(
            json.dumps(
                {
                    "default": {
                        "rets_url": "https://x.example.com/login",
                        "rets_user": "user",
                        "rets_pass": "pass",
                        "rets_user_agent": "MyApp/1.0",
                    },
                    "test": {"inherits": "default", "rets_version": "RETS/1.8"},
                }
            )
        )
        conf = config.get_config(
            config_file=str(fn), config_section_name="test", environment=False
        )
        assert conf == RETSConfig(
            url="https://x.example.com/login",
            username="user",
            password="pass",
            user_agent="MyApp/1.0",
            rets_version="RETS/1.8",
        )

    def test_parameters_take_precedence(self, monkeypatch):
        monkeypatch.setenv("RETS_URL", "https://env.example.com/login")
        conf = config.get_config(url="https://param.example.com/login")
        assert conf.url == "https://param.example.com/login"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("RETS_URL", "https://env.example.com/login")
        monkeypatch.setenv("RETS_VERSION", "RETS/1.8")
        monkeypatch.setenv("RETS_CONFIG_SECTION", "ignored")
        conf = config.get_config(check_config_file=False)
        assert conf.url == "https://env.example.com/login"
        assert conf.rets_version == "RETS/1.8"
