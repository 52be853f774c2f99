"""
Configuration management (SSOT).

All configuration keys for gl_reconcile are defined here; no other module
should invent config keys.

Key invariants:
- The target account allow-list is the only filter applied to ledger rows
- An explicit GL encoding disables auto-detection
- Diagnostic error detail is only exposed outside production
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_TARGET_ACCOUNT_CODES: tuple[str, ...] = (
    "511",
    "512",
    "513",
    "514",
    "541",
    "515",
    "727",
    "737",
    "740",
    "745",
)

ENVIRONMENTS = ("development", "production")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class IngestionConfig:
    """CSV ingestion settings.

    - target_account_codes: ledger rows outside this list are skipped
    - gl_encoding: explicit encoding for GL extracts; None means auto-detect
    - forecast_encoding: explicit encoding for forecast files; None means
      BOM-aware UTF-8 with auto-detect fallback
    """

    target_account_codes: tuple[str, ...] = DEFAULT_TARGET_ACCOUNT_CODES
    gl_encoding: str | None = None
    forecast_encoding: str | None = None


@dataclass
class ReconciliationConfig:
    """Reconciliation settings."""

    # Per-period run guard expiry; a crashed run frees its period after this
    lock_ttl_seconds: int = 300


@dataclass
class Config:
    """Application configuration (SSOT)."""

    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/state.db"))
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if self.environment not in ENVIRONMENTS:
            errors.append(f"environment must be one of {', '.join(ENVIRONMENTS)}")

        if not self.ingestion.target_account_codes:
            errors.append("ingestion.target_account_codes must not be empty")

        for label, encoding in (
            ("ingestion.gl_encoding", self.ingestion.gl_encoding),
            ("ingestion.forecast_encoding", self.ingestion.forecast_encoding),
        ):
            if encoding is None:
                continue
            try:
                "".encode(encoding)
            except LookupError:
                errors.append(f"{label}: unknown encoding '{encoding}'")

        if self.reconciliation.lock_ttl_seconds <= 0:
            errors.append("reconciliation.lock_ttl_seconds must be positive")

        return errors


def _parse_account_codes(value: str | list | tuple | None) -> tuple[str, ...]:
    if value is None:
        return DEFAULT_TARGET_ACCOUNT_CODES
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(v) for v in value]
    return tuple(code.strip() for code in items if code.strip())


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - GL_RECONCILE_DB (state database path)
    - GL_RECONCILE_ENV (development/production)
    - GL_RECONCILE_ACCOUNT_CODES (comma-separated allow-list)
    - GL_RECONCILE_GL_ENCODING (explicit GL extract encoding)
    - GL_RECONCILE_LOCK_TTL (run guard expiry in seconds)
    """
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e
    else:
        data = {}

    ingestion_data = data.get("ingestion") or {}
    codes_env = os.environ.get("GL_RECONCILE_ACCOUNT_CODES")
    ingestion = IngestionConfig(
        target_account_codes=_parse_account_codes(
            codes_env if codes_env else ingestion_data.get("target_account_codes")
        ),
        gl_encoding=os.environ.get("GL_RECONCILE_GL_ENCODING", ingestion_data.get("gl_encoding")),
        forecast_encoding=ingestion_data.get("forecast_encoding"),
    )

    recon_data = data.get("reconciliation") or {}
    lock_ttl = recon_data.get("lock_ttl_seconds", 300)
    lock_ttl_env = os.environ.get("GL_RECONCILE_LOCK_TTL", "")
    if lock_ttl_env:
        try:
            lock_ttl = int(lock_ttl_env)
        except ValueError:
            logger.warning("Ignoring non-integer GL_RECONCILE_LOCK_TTL=%r", lock_ttl_env)

    reconciliation = ReconciliationConfig(lock_ttl_seconds=int(lock_ttl))

    state_db = os.environ.get("GL_RECONCILE_DB", data.get("state_db_path", "data/state.db"))
    environment = os.environ.get("GL_RECONCILE_ENV", data.get("environment", "development"))

    return Config(
        ingestion=ingestion,
        reconciliation=reconciliation,
        state_db_path=Path(state_db),
        environment=str(environment).lower(),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Forecast / GL reconciliation configuration

# development exposes diagnostic detail in error output; production omits it
environment: "development"

# State database path
state_db_path: "data/state.db"

ingestion:
  # Ledger rows whose account code is not listed here are skipped
  target_account_codes: ["511", "512", "513", "514", "541", "515", "727", "737", "740", "745"]
  gl_encoding: null          # e.g. "shift_jis"; null = auto-detect
  forecast_encoding: null    # null = BOM-aware UTF-8, auto-detect fallback

reconciliation:
  lock_ttl_seconds: 300      # A stale per-period run lock expires after this
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write(default_config)
