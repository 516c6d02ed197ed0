"""Config loading for SecureCoda.

Reads `.securecoda/config.yaml` (or `~/.securecoda/config.yaml`).
Raises SystemExit on parse errors or missing `version` field.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. SECURECODA_CONFIG environment variable (if set)
  3. `.securecoda/config.yaml` (working directory — for development)
  4. `~/.securecoda/config.yaml` (home directory — for production deployments)

Environment variable overrides (applied after the file):
  PORT                  — server.port
  CODA_API_TOKEN        — source.api_token
  USE_DEMO_DATA         — source.use_demo_data ("true"/"false")
  SCAN_INTERVAL_MINUTES — scan.interval_minutes
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, Optional

import yaml

from securecoda.constants import (
    CODA_BASE_URL,
    CODA_DOC_LIMIT,
    CODA_ROW_LIMIT,
    CODA_TIMEOUT_S,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SCAN_INTERVAL_MINUTES,
    DEFAULT_STALE_AFTER_MINUTES,
    MAX_SCAN_INTERVAL_MINUTES,
)
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_CONFIG_PATHS = [
    ".securecoda/config.yaml",
    os.path.expanduser("~/.securecoda/config.yaml"),
]

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class ServerConfig:
    """HTTP binding configuration."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


@dataclass
class SourceConfig:
    """Document source configuration.

    api_token:     Coda API token. When absent the service runs in demo mode.
    use_demo_data: Force demo mode even when a token is configured.
    """

    base_url: str = CODA_BASE_URL
    api_token: Optional[str] = None
    use_demo_data: bool = False
    doc_limit: int = CODA_DOC_LIMIT
    row_limit: int = CODA_ROW_LIMIT
    timeout_s: float = CODA_TIMEOUT_S


@dataclass
class ScanConfig:
    """Scan scheduling and rule thresholds (all durations in minutes)."""

    interval_minutes: int = DEFAULT_SCAN_INTERVAL_MINUTES
    stale_after_minutes: int = DEFAULT_STALE_AFTER_MINUTES


@dataclass
class Config:
    """Root configuration object populated from .securecoda/config.yaml.

    All fields have safe defaults — SecureCoda can start without any config file
    (and without a Coda token, in which case it serves demo data).
    """

    version: int = SUPPORTED_CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @property
    def demo_mode(self) -> bool:
        """True when demo data is forced or no Coda API token is configured."""
        return self.source.use_demo_data or not self.source.api_token

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On a non-positive or non-integer scan interval / threshold,
                          or a scan interval above 59 minutes.
        """
        # ── Server ────────────────────────────────────────────────────────────
        server_raw = raw.get("server") or {}
        server = ServerConfig(
            host=server_raw.get("host", DEFAULT_HOST),
            port=server_raw.get("port", DEFAULT_PORT),
            cors_origins=list(server_raw.get("cors_origins", DEFAULT_CORS_ORIGINS)),
        )

        # ── Source ────────────────────────────────────────────────────────────
        source_raw = raw.get("source") or {}
        source = SourceConfig(
            base_url=source_raw.get("base_url", CODA_BASE_URL),
            api_token=source_raw.get("api_token"),
            use_demo_data=bool(source_raw.get("use_demo_data", False)),
            doc_limit=source_raw.get("doc_limit", CODA_DOC_LIMIT),
            row_limit=source_raw.get("row_limit", CODA_ROW_LIMIT),
            timeout_s=source_raw.get("timeout_s", CODA_TIMEOUT_S),
        )

        # ── Scan ──────────────────────────────────────────────────────────────
        scan_raw = raw.get("scan") or {}
        scan = ScanConfig(
            interval_minutes=_positive_int(
                scan_raw.get("interval_minutes", DEFAULT_SCAN_INTERVAL_MINUTES),
                "scan.interval_minutes",
                maximum=MAX_SCAN_INTERVAL_MINUTES,
            ),
            stale_after_minutes=_positive_int(
                scan_raw.get("stale_after_minutes", DEFAULT_STALE_AFTER_MINUTES),
                "scan.stale_after_minutes",
            ),
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            server=server,
            source=source,
            scan=scan,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate SecureCoda configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).

    Environment overrides are applied in both cases, after the file is parsed.

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, or an invalid numeric value (file or env var).
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("SECURECODA_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "SecureCoda refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.server.host == "0.0.0.0":
        logger.warning(
            "SECURITY WARNING: SecureCoda is configured to bind on 0.0.0.0 (all interfaces). "
            "The alert API has no authentication — anyone who can reach the port can "
            "remediate alerts and delete rows."
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        demo_mode=config.demo_mode,
        scan_interval_minutes=config.scan.interval_minutes,
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Raises:
        SystemExit(1): If PORT or SCAN_INTERVAL_MINUTES is set but not a valid
                       positive integer, or SCAN_INTERVAL_MINUTES exceeds 59.
    """
    env_port = os.environ.get("PORT")
    if env_port is not None:
        config.server.port = _positive_int(env_port, "PORT environment variable")

    env_token = os.environ.get("CODA_API_TOKEN")
    if env_token:
        config.source.api_token = env_token

    env_demo = os.environ.get("USE_DEMO_DATA")
    if env_demo is not None:
        config.source.use_demo_data = env_demo.strip().lower() == "true"

    env_interval = os.environ.get("SCAN_INTERVAL_MINUTES")
    if env_interval is not None:
        config.scan.interval_minutes = _positive_int(
            env_interval,
            "SCAN_INTERVAL_MINUTES environment variable",
            maximum=MAX_SCAN_INTERVAL_MINUTES,
        )


def _positive_int(value: Any, name: str, maximum: Optional[int] = None) -> int:
    """Coerce ``value`` to a positive int (at most ``maximum``) or exit with a config error."""
    try:
        result = int(value)
    except (TypeError, ValueError):
        _fail(f"CONFIG ERROR: {name} is not a valid integer: '{value}'")
    if result < 1:
        _fail(f"CONFIG ERROR: {name} must be at least 1 (got {result})")
    if maximum is not None and result > maximum:
        _fail(f"CONFIG ERROR: {name} must be at most {maximum} (got {result})")
    return result


def _fail(msg: str) -> NoReturn:
    print(msg, file=sys.stderr)
    raise SystemExit(1)
