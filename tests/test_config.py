"""Tests for configuration loading."""

from pathlib import Path

import pytest

from church_recon.config import (
    DEFAULT_CONTRIBUTION_KEYWORDS,
    Config,
    ConfigValidationError,
    LLMConfig,
    create_default_config,
    load_config,
)

ENV_VARS = [
    "CHURCH_RECON_SIMILARITY_THRESHOLD",
    "CHURCH_RECON_DAY_TOLERANCE",
    "CHURCH_RECON_STATE_DB",
    "CHURCH_RECON_LLM_ENABLED",
    "OLLAMA_URL",
    "OLLAMA_MODEL",
    "OLLAMA_TIMEOUT",
    "OLLAMA_AUTH_HEADER",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of config tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        """
reconciliation:
  similarity_threshold: 70
  day_tolerance: 5
  ignore_keywords: ["IRMAO", "IRMA"]
ingestion:
  pdf_line_tolerance: 2.5
  sample_size: 50
llm:
  enabled: true
  model: "llama3"
state_db_path: "/var/lib/church-recon/state.db"
max_workers: 3
""",
        encoding="utf-8",
    )
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test a missing file yields the default configuration."""
        config = load_config(tmp_path / "missing.yaml")

        assert config.reconciliation.similarity_threshold == 80.0
        assert config.reconciliation.day_tolerance == 3
        assert config.reconciliation.ignore_keywords == []
        assert config.reconciliation.contribution_keywords == DEFAULT_CONTRIBUTION_KEYWORDS
        assert config.ingestion.pdf_line_tolerance == 1.0
        assert config.ingestion.sample_size == 100
        assert config.llm.enabled is False
        assert config.state_db_path == Path("data/state.db")
        assert config.max_workers == 1

    def test_yaml_values(self, config_file):
        """Test values are read from YAML."""
        config = load_config(config_file)

        assert config.reconciliation.similarity_threshold == 70.0
        assert config.reconciliation.day_tolerance == 5
        assert config.reconciliation.ignore_keywords == ["IRMAO", "IRMA"]
        assert config.ingestion.pdf_line_tolerance == 2.5
        assert config.ingestion.sample_size == 50
        assert config.llm.enabled is True
        assert config.llm.model == "llama3"
        assert config.state_db_path == Path("/var/lib/church-recon/state.db")
        assert config.max_workers == 3

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file yields defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path).reconciliation.similarity_threshold == 80.0

    def test_env_overrides(self, config_file, monkeypatch):
        """Test environment variables win over YAML."""
        monkeypatch.setenv("CHURCH_RECON_SIMILARITY_THRESHOLD", "90")
        monkeypatch.setenv("CHURCH_RECON_DAY_TOLERANCE", "1")
        monkeypatch.setenv("CHURCH_RECON_STATE_DB", "/tmp/other.db")
        monkeypatch.setenv("OLLAMA_URL", "http://gpu-box:11434")
        monkeypatch.setenv("OLLAMA_MODEL", "mistral")
        monkeypatch.setenv("OLLAMA_TIMEOUT", "120")
        monkeypatch.setenv("OLLAMA_AUTH_HEADER", "Bearer token")

        config = load_config(config_file)

        assert config.reconciliation.similarity_threshold == 90.0
        assert config.reconciliation.day_tolerance == 1
        assert config.state_db_path == Path("/tmp/other.db")
        assert config.llm.ollama_url == "http://gpu-box:11434"
        assert config.llm.model == "mistral"
        assert config.llm.timeout_seconds == 120
        assert config.llm.auth_header == "Bearer token"

    def test_invalid_env_values_are_ignored(self, config_file, monkeypatch):
        """Test non-numeric overrides keep the configured value."""
        monkeypatch.setenv("CHURCH_RECON_SIMILARITY_THRESHOLD", "high")
        monkeypatch.setenv("CHURCH_RECON_DAY_TOLERANCE", "2.5")

        config = load_config(config_file)
        assert config.reconciliation.similarity_threshold == 70.0
        assert config.reconciliation.day_tolerance == 5

    def test_llm_env_switch(self, config_file, monkeypatch):
        """Test CHURCH_RECON_LLM_ENABLED overrides the YAML flag."""
        monkeypatch.setenv("CHURCH_RECON_LLM_ENABLED", "false")
        assert load_config(config_file).llm.enabled is False

        monkeypatch.setenv("CHURCH_RECON_LLM_ENABLED", "TRUE")
        assert load_config(config_file).llm.enabled is True

    def test_validate_on_load(self, tmp_path):
        """Test inconsistent files raise when validation is requested."""
        path = tmp_path / "config.yaml"
        path.write_text("reconciliation:\n  similarity_threshold: 120\n", encoding="utf-8")

        assert load_config(path).reconciliation.similarity_threshold == 120.0
        with pytest.raises(ConfigValidationError, match="similarity_threshold"):
            load_config(path, validate=True)


class TestValidate:
    """Tests for Config.validate()."""

    def test_defaults_are_valid(self):
        """Test the default configuration has no errors."""
        assert Config().validate() == []

    def test_errors(self):
        """Test every inconsistent value is reported."""
        config = Config()
        config.reconciliation.similarity_threshold = -1
        config.reconciliation.day_tolerance = -2
        config.ingestion.pdf_line_tolerance = 0
        config.ingestion.sample_size = 0
        config.llm.enabled = True
        config.llm.ollama_url = ""
        config.max_workers = 0

        errors = config.validate()
        assert len(errors) == 7
        assert "reconciliation.day_tolerance must be >= 0" in errors

    def test_zero_day_tolerance_is_valid(self):
        """Test same-day matching is allowed."""
        config = Config()
        config.reconciliation.day_tolerance = 0
        assert config.validate() == []


class TestDefaultConfigFile:
    """Tests for create_default_config()."""

    def test_round_trip(self, tmp_path):
        """Test the generated file loads back to the defaults."""
        path = tmp_path / "nested" / "config.yaml"
        create_default_config(path)

        config = load_config(path, validate=True)
        assert config.reconciliation.similarity_threshold == 80.0
        assert config.reconciliation.contribution_keywords == DEFAULT_CONTRIBUTION_KEYWORDS
        assert config.llm.auth_header is None
        assert config.max_workers == 1


class TestLLMConfig:
    """Tests for LLMConfig."""

    @pytest.mark.parametrize(
        "url,remote",
        [
            ("http://localhost:11434", False),
            ("http://127.0.0.1:11434", False),
            ("http://host.docker.internal:11434", False),
            ("https://llm.example.org", True),
        ],
    )
    def test_is_remote(self, url, remote):
        """Test remote detection."""
        assert LLMConfig(ollama_url=url).is_remote() is remote
