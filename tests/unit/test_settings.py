"""Tests for hourgen/lib/settings.py and hourgen/lib/env.py."""

import pytest
from pydantic import ValidationError

from hourgen.lib.env import expand_env_vars, expand_options, load_env_file
from hourgen.lib.errors import ConfigurationError
from hourgen.lib.settings import GeneratorSettings, parse_storage_options

ENV_NAMES = (
    "HOURGEN_PATH",
    "HOURGEN_SCHEMA",
    "HOURGEN_QUICK",
    "HOURGEN_LOG_FORMAT",
    "HOURGEN_DRY_RUN",
    "HOURGEN_DATETIME_OVERRIDE",
    "HOURGEN_STORAGE_OPTIONS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    # No stray .env in the working directory
    monkeypatch.chdir(tmp_path)


class TestGeneratorSettings:
    """Tests for GeneratorSettings.resolve()."""

    def test_defaults(self):
        settings = GeneratorSettings.resolve()
        assert settings.path_prefix == "file:///tmp"
        assert settings.quick is False
        assert settings.datetime_override is None
        assert settings.schema_path is None
        assert settings.storage_options == {}
        assert settings.log_format == "human"

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("HOURGEN_PATH", "s3://bucket/raw")
        monkeypatch.setenv("HOURGEN_QUICK", "yes")
        monkeypatch.setenv("HOURGEN_LOG_FORMAT", "JSON")

        settings = GeneratorSettings.resolve()
        assert settings.path_prefix == "s3://bucket/raw"
        assert settings.quick is True
        assert settings.log_format == "json"

    def test_cli_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv("HOURGEN_PATH", "s3://bucket/raw")
        settings = GeneratorSettings.resolve(path_prefix="/data/out")
        assert settings.path_prefix == "/data/out"

    def test_datetime_is_not_validated_here(self):
        """Malformed overrides are rejected when the run resolves its target."""
        assert GeneratorSettings.resolve(datetime_override="abc").datetime_override == "abc"

    def test_unknown_log_format(self):
        with pytest.raises(ConfigurationError) as exc_info:
            GeneratorSettings.resolve(log_format="xml")
        assert exc_info.value.field == "log_format"

    def test_environment_read_without_resolve(self, monkeypatch):
        monkeypatch.setenv("HOURGEN_PATH", "hdfs://namenode:8020/data")
        monkeypatch.setenv("HOURGEN_DRY_RUN", "true")

        settings = GeneratorSettings(quick=True)
        assert settings.path_prefix == "hdfs://namenode:8020/data"
        assert settings.dry_run is True
        assert settings.quick is True

    def test_reads_dotenv_in_working_directory(self, tmp_path):
        (tmp_path / ".env").write_text("HOURGEN_PATH=/from/dotenv\nHOURGEN_LOG_FORMAT=json\n")

        settings = GeneratorSettings.resolve()
        assert settings.path_prefix == "/from/dotenv"
        assert settings.log_format == "json"

    def test_blank_environment_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("HOURGEN_PATH", "")
        assert GeneratorSettings.resolve().path_prefix == "file:///tmp"

    def test_storage_options_from_cli(self, monkeypatch):
        monkeypatch.setenv("HG_KEY", "secret")
        settings = GeneratorSettings.resolve(storage_options=["key=${HG_KEY}", "anon=false"])
        assert settings.storage_options == {"key": "secret", "anon": "false"}

    def test_invalid_environment_flag(self, monkeypatch):
        monkeypatch.setenv("HOURGEN_QUICK", "sometimes")
        with pytest.raises(ConfigurationError) as exc_info:
            GeneratorSettings.resolve()
        assert exc_info.value.field == "quick"
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_settings_are_frozen(self):
        settings = GeneratorSettings.resolve()
        with pytest.raises(ValidationError):
            settings.quick = True


class TestParseStorageOptions:
    def test_pairs(self):
        assert parse_storage_options(["endpoint_url=http://x:9000", "anon=true"]) == {
            "endpoint_url": "http://x:9000",
            "anon": "true",
        }

    def test_value_may_contain_equals(self):
        assert parse_storage_options(["token=a=b"]) == {"token": "a=b"}

    def test_expands_environment(self, monkeypatch):
        monkeypatch.setenv("S3_ENDPOINT", "http://localhost:9000")
        assert parse_storage_options(["endpoint_url=${S3_ENDPOINT}"]) == {"endpoint_url": "http://localhost:9000"}

    @pytest.mark.parametrize("pair", ["novalue", "=value"])
    def test_malformed(self, pair):
        with pytest.raises(ConfigurationError):
            parse_storage_options([pair])

    def test_none(self):
        assert parse_storage_options(None) == {}


class TestEnv:
    """Tests for env helpers."""

    def test_expand_both_syntaxes(self, monkeypatch):
        monkeypatch.setenv("HG_A", "one")
        monkeypatch.setenv("HG_B", "two")
        assert expand_env_vars("${HG_A}/$HG_B") == "one/two"

    def test_missing_left_alone(self, monkeypatch):
        monkeypatch.delenv("HG_MISSING", raising=False)
        assert expand_env_vars("${HG_MISSING}") == "${HG_MISSING}"

    def test_missing_strict(self, monkeypatch):
        monkeypatch.delenv("HG_MISSING", raising=False)
        with pytest.raises(KeyError):
            expand_env_vars("${HG_MISSING}", strict=True)

    def test_expand_nested_options(self, monkeypatch):
        monkeypatch.setenv("HG_KEY", "secret")
        assert expand_options({"client_kwargs": {"key": "$HG_KEY"}, "n": 1}) == {
            "client_kwargs": {"key": "secret"},
            "n": 1,
        }

    def test_load_env_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HG_FROM_FILE", "")
        monkeypatch.delenv("HG_FROM_FILE")
        env_file = tmp_path / ".env"
        env_file.write_text("HG_FROM_FILE=loaded\n")

        assert load_env_file(env_file) is True
        assert expand_env_vars("$HG_FROM_FILE") == "loaded"
