"""
Configuration management (SSOT).

This module defines ALL configuration for the church-recon engine.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- similarity_threshold is on the 0-100 scale used by the matching engine
- day_tolerance is measured in whole days
- ignore_keywords only affect description cleaning, never amounts or dates
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_CONTRIBUTION_KEYWORDS = [
    "DÍZIMO",
    "DÍZIMOS",
    "OFERTA",
    "OFERTAS",
    "COLETA",
    "COLETAS",
    "MISSÃO",
    "MISSÕES",
    "VOTOS",
    "CAMPANHA",
]


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class ReconciliationConfig:
    """Reconciliation settings."""

    # Minimum name similarity (0-100) for an automatic match
    similarity_threshold: float = 80.0
    # Maximum distance between list date and bank date (days)
    day_tolerance: int = 3
    # Words removed from descriptions before comparing names
    ignore_keywords: list[str] = field(default_factory=list)
    # Words that mark a contributor-list column as the contribution type
    contribution_keywords: list[str] = field(
        default_factory=lambda: list(DEFAULT_CONTRIBUTION_KEYWORDS)
    )


@dataclass
class IngestionConfig:
    """Statement ingestion settings."""

    # Vertical rounding granularity (PDF points) when rebuilding lines
    pdf_line_tolerance: float = 1.0
    # Rows examined by the column resolvers
    sample_size: int = 100


@dataclass
class LLMConfig:
    """Local LLM (Ollama) configuration for name suggestions.

    - enabled: Master switch (default OFF)
    - ollama_url: Can be localhost, LAN IP, or remote URL
    - auth_header: Optional auth header for proxied deployments
    - max_concurrent: Concurrency limiter for queue management
    """

    enabled: bool = False
    ollama_url: str = "http://localhost:11434"
    # Format: "Bearer <token>" or "Header-Name: value"
    auth_header: str | None = None
    model: str = "qwen2.5:3b-instruct-q4_K_M"
    # Request timeout (seconds)
    timeout_seconds: int = 30
    # Maximum concurrent LLM requests (semaphore)
    max_concurrent: int = 2

    def is_remote(self) -> bool:
        """Check if Ollama URL is remote (not localhost)."""
        url_lower = self.ollama_url.lower()
        return not any(
            local in url_lower
            for local in ["localhost", "127.0.0.1", "::1", "host.docker.internal"]
        )


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/state.db"))
    # Worker threads for background reconciliation runs
    max_workers: int = 1

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        threshold = self.reconciliation.similarity_threshold
        if not 0 <= threshold <= 100:
            errors.append("reconciliation.similarity_threshold must be between 0 and 100")
        if self.reconciliation.day_tolerance < 0:
            errors.append("reconciliation.day_tolerance must be >= 0")

        if self.ingestion.pdf_line_tolerance <= 0:
            errors.append("ingestion.pdf_line_tolerance must be > 0")
        if self.ingestion.sample_size <= 0:
            errors.append("ingestion.sample_size must be > 0")

        if self.llm.enabled and not self.llm.ollama_url:
            errors.append("llm.ollama_url is required when LLM is enabled")

        if self.max_workers < 1:
            errors.append("max_workers must be >= 1")

        return errors


def _env_number(name: str, default, cast):
    """Read a numeric override from the environment, keeping default on bad input."""
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def load_config(config_path: Path, validate: bool = False) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - CHURCH_RECON_SIMILARITY_THRESHOLD
    - CHURCH_RECON_DAY_TOLERANCE
    - CHURCH_RECON_STATE_DB
    - CHURCH_RECON_LLM_ENABLED (true/false)
    - OLLAMA_URL
    - OLLAMA_MODEL
    - OLLAMA_TIMEOUT (request timeout in seconds)
    - OLLAMA_AUTH_HEADER

    Raises:
        ConfigValidationError: If validate is True and the result is inconsistent.
    """
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Reconciliation config
    recon_data = data.get("reconciliation", {}) or {}
    reconciliation = ReconciliationConfig(
        similarity_threshold=_env_number(
            "CHURCH_RECON_SIMILARITY_THRESHOLD",
            float(recon_data.get("similarity_threshold", 80.0)),
            float,
        ),
        day_tolerance=_env_number(
            "CHURCH_RECON_DAY_TOLERANCE", int(recon_data.get("day_tolerance", 3)), int
        ),
        ignore_keywords=list(recon_data.get("ignore_keywords") or []),
        contribution_keywords=list(
            recon_data.get("contribution_keywords") or DEFAULT_CONTRIBUTION_KEYWORDS
        ),
    )

    # Ingestion config
    ingestion_data = data.get("ingestion", {}) or {}
    ingestion = IngestionConfig(
        pdf_line_tolerance=float(ingestion_data.get("pdf_line_tolerance", 1.0)),
        sample_size=int(ingestion_data.get("sample_size", 100)),
    )

    # LLM config
    llm_data = data.get("llm", {}) or {}
    llm_enabled_env = os.environ.get("CHURCH_RECON_LLM_ENABLED", "").lower()
    llm_enabled = bool(llm_data.get("enabled", False))
    if llm_enabled_env == "true":
        llm_enabled = True
    elif llm_enabled_env == "false":
        llm_enabled = False

    llm = LLMConfig(
        enabled=llm_enabled,
        ollama_url=os.environ.get(
            "OLLAMA_URL", llm_data.get("ollama_url", "http://localhost:11434")
        ),
        auth_header=os.environ.get("OLLAMA_AUTH_HEADER", llm_data.get("auth_header")),
        model=os.environ.get("OLLAMA_MODEL", llm_data.get("model", "qwen2.5:3b-instruct-q4_K_M")),
        timeout_seconds=_env_number(
            "OLLAMA_TIMEOUT", int(llm_data.get("timeout_seconds", 30)), int
        ),
        max_concurrent=int(llm_data.get("max_concurrent", 2)),
    )

    # State DB
    state_db = os.environ.get("CHURCH_RECON_STATE_DB", data.get("state_db_path", "data/state.db"))

    config = Config(
        reconciliation=reconciliation,
        ingestion=ingestion,
        llm=llm,
        state_db_path=Path(state_db),
        max_workers=int(data.get("max_workers", 1)),
    )

    if validate:
        errors = config.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# church-recon configuration
#
# Environment variables override these values (see church_recon.config).

# Matching settings
reconciliation:
  similarity_threshold: 80                 # Minimum name similarity (0-100) for automatic matches
  day_tolerance: 3                         # Max days between list date and bank date
  ignore_keywords: []                      # Extra words stripped from bank descriptions
  contribution_keywords:                   # Marks the contribution-type column in lists
    - "DÍZIMO"
    - "DÍZIMOS"
    - "OFERTA"
    - "OFERTAS"
    - "COLETA"
    - "COLETAS"
    - "MISSÃO"
    - "MISSÕES"
    - "VOTOS"
    - "CAMPANHA"

# Statement ingestion
ingestion:
  pdf_line_tolerance: 1.0                  # Vertical rounding (points) when rebuilding PDF lines
  sample_size: 100                         # Rows sampled for column discovery

# Local LLM settings (Ollama), used only for name suggestions
llm:
  enabled: false
  ollama_url: "http://localhost:11434"
  auth_header: null
  model: "qwen2.5:3b-instruct-q4_K_M"
  timeout_seconds: 30
  max_concurrent: 2

# Learned associations and run history
state_db_path: "data/state.db"

# Background reconciliation workers
max_workers: 1
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write(default_config)
