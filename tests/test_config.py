"""Tests for configuration loading, env overlay, and boolean parsing"""

from __future__ import annotations

import pytest

from vault_manifests.config.expansion import expand_env_vars
from vault_manifests.config.flags import parse_bool
from vault_manifests.config.loader import _read_config_file, load_config
from vault_manifests.config.schema import (
    DirectoryBackendSettings,
    EnvBackendSettings,
    FileBackendSettings,
    VaultBackendSettings,
)
from vault_manifests.errors import ConfigurationError

# ── parse_bool ───────────────────────────────────────────────────────────


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "t", "T", "TRUE", "true", "True"])
    def test_true_spellings(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "f", "F", "FALSE", "false", "False"])
    def test_false_spellings(self, value):
        assert parse_bool(value, default=True) is False

    @pytest.mark.parametrize("value", ["yes", "on", "tRuE", " true", "false ", "", None, 1])
    def test_unparsable_returns_default(self, value):
        assert parse_bool(value) is False
        assert parse_bool(value, default=True) is True

    def test_bool_passthrough(self):
        assert parse_bool(True) is True
        assert parse_bool(False, default=True) is False


# ── expand_env_vars ──────────────────────────────────────────────────────


class TestExpandEnvVars:
    def test_expands_nested(self):
        data = {"a": "${HOST}:8200", "b": ["${HOST}", 3], "c": {"d": "${MISSING}"}}
        result = expand_env_vars(data, {"HOST": "vault"})
        assert result == {"a": "vault:8200", "b": ["vault", 3], "c": {"d": "${MISSING}"}}

    def test_uses_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("VM_TEST_VAR", "x")
        assert expand_env_vars("${VM_TEST_VAR}") == "x"


# ── _read_config_file ────────────────────────────────────────────────────


class TestReadConfigFile:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("backend:\n  type: env\n")
        assert _read_config_file(str(path)) == {"backend": {"type": "env"}}

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"verbose": true}')
        assert _read_config_file(str(path)) == {"verbose": True}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert _read_config_file(str(path)) == {}

    def test_unsupported_extension_raises(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[backend]\ntype = env\n")
        with pytest.raises(ConfigurationError, match="Unsupported config file extension"):
            _read_config_file(str(path))

    def test_non_dict_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            _read_config_file(str(path))

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("backend: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Error reading configuration file"):
            _read_config_file(str(path))


# ── load_config ──────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults(self):
        config = load_config(environ={})
        assert isinstance(config.backend, EnvBackendSettings)
        assert config.path_validation is None
        assert config.secret_dir is None
        assert config.verbose is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_config(str(tmp_path / "absent.yaml"), environ={})

    def test_file_with_env_expansion(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "backend:\n"
            "  type: vault\n"
            "  address: ${ADDR}\n"
            "  token: ${TOKEN}\n"
            "path_validation: ^secret/\n"
        )
        config = load_config(str(path), environ={"ADDR": "http://vault:8200", "TOKEN": "t"})
        assert isinstance(config.backend, VaultBackendSettings)
        assert config.backend.address == "http://vault:8200"
        assert config.backend.token == "t"
        assert config.path_validation == "^secret/"

    def test_environment_selects_vault(self):
        config = load_config(
            environ={
                "AVP_TYPE": "vault",
                "VAULT_ADDR": "https://vault.example.com",
                "VAULT_TOKEN": "root",
                "AVP_KV_VERSION": "1",
            }
        )
        assert isinstance(config.backend, VaultBackendSettings)
        assert config.backend.kv_version == 1
        assert config.backend.auth_type == "token"

    def test_environment_approle(self):
        config = load_config(
            environ={
                "AVP_TYPE": "vault",
                "VAULT_ADDR": "https://vault.example.com",
                "AVP_AUTH_TYPE": "approle",
                "AVP_ROLE_ID": "role",
                "AVP_SECRET_ID": "sid",
                "AVP_MOUNT_PATH": "custom-approle",
            }
        )
        assert config.backend.role_id == "role"
        assert config.backend.auth_mount_path == "custom-approle"

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("backend:\n  type: directory\nsecret_dir: from-file\n")
        config = load_config(str(path), environ={"AVP_SECRET_DIR": "from-env"})
        assert isinstance(config.backend, DirectoryBackendSettings)
        assert config.secret_dir == "from-env"

    def test_secrets_file_env(self):
        config = load_config(environ={"AVP_TYPE": "file", "AVP_SECRETS_FILE": "/run/s.enc"})
        assert isinstance(config.backend, FileBackendSettings)
        assert config.backend.path == "/run/s.enc"

    def test_path_validation_and_verbose_from_env(self):
        config = load_config(
            environ={"AVP_PATH_VALIDATION": "^secret/data/", "AVP_VERBOSE": "true"}
        )
        assert config.path_validation == "^secret/data/"
        assert config.verbose is True

    def test_unparsable_verbose_keeps_default(self):
        assert load_config(environ={"AVP_VERBOSE": "sure"}).verbose is False

    def test_blank_path_validation_is_none(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("path_validation: '   '\n")
        assert load_config(str(path), environ={}).path_validation is None

    def test_invalid_kv_version(self):
        with pytest.raises(ConfigurationError, match="AVP_KV_VERSION"):
            load_config(environ={"AVP_TYPE": "vault", "AVP_KV_VERSION": "two"})

    def test_vault_without_token_reports_error(self):
        with pytest.raises(ConfigurationError, match="validation failed") as exc_info:
            load_config(environ={"AVP_TYPE": "vault", "VAULT_ADDR": "http://v:8200"})
        assert "token auth requires" in str(exc_info.value)

    def test_unknown_backend_type(self):
        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(environ={"AVP_TYPE": "magic"})


# ── envfile configs ──────────────────────────────────────────────────────


class TestEnvfileConfig:
    def test_envfile_selects_vault(self, tmp_path):
        path = tmp_path / "avp.env"
        path.write_text(
            "AVP_TYPE=vault\n"
            "VAULT_ADDR=https://vault.example.com\n"
            "# comment lines are ignored\n"
            "VAULT_TOKEN='root'\n"
            "AVP_KV_VERSION=1\n"
        )
        config = load_config(str(path), environ={})
        assert isinstance(config.backend, VaultBackendSettings)
        assert config.backend.address == "https://vault.example.com"
        assert config.backend.token == "root"
        assert config.backend.kv_version == 1

    def test_environment_overrides_envfile(self, tmp_path):
        path = tmp_path / "config.dotenv"
        path.write_text("AVP_TYPE=directory\nAVP_SECRET_DIR=from-file\n")
        config = load_config(str(path), environ={"AVP_SECRET_DIR": "from-env"})
        assert isinstance(config.backend, DirectoryBackendSettings)
        assert config.secret_dir == "from-env"

    def test_envfile_path_validation_and_verbose(self, tmp_path):
        path = tmp_path / "avp.env"
        path.write_text("AVP_PATH_VALIDATION=^secret/\nAVP_VERBOSE=true\nEMPTY_KEY\n")
        config = load_config(str(path), environ={})
        assert isinstance(config.backend, EnvBackendSettings)
        assert config.path_validation == "^secret/"
        assert config.verbose is True

    def test_envfile_validation_errors(self, tmp_path):
        path = tmp_path / "avp.env"
        path.write_text("AVP_TYPE=vault\nVAULT_ADDR=http://v:8200\n")
        with pytest.raises(ConfigurationError, match="token auth requires"):
            load_config(str(path), environ={})
