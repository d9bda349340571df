"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads a YAML settings file and builds the per-module configuration
dataclasses from its sections.

Invariants enforced
-------------------
* Unknown sections are rejected; unknown keys inside a section fail in the
  dataclass constructor.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the loaded
  data for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` / ``TypeError`` from the config classes.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from settlement_kernel.logging_config import get_logger
from settlement_modules.invoices.config import InvoiceConfig
from settlement_modules.payments.config import PaymentConfig
from settlement_modules.statements.config import StatementConfig
from settlement_modules.verification.config import VerificationConfig

logger = get_logger("config.loader")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

_SECTIONS = {
    "verification": VerificationConfig,
    "invoices": InvoiceConfig,
    "payments": PaymentConfig,
    "statements": StatementConfig,
}


@dataclass
class SettlementConfig:
    """All module configurations, plus the checksum of their source."""

    verification: VerificationConfig = field(default_factory=VerificationConfig)
    invoices: InvoiceConfig = field(default_factory=InvoiceConfig)
    payments: PaymentConfig = field(default_factory=PaymentConfig)
    statements: StatementConfig = field(default_factory=StatementConfig)
    checksum: str = ""


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settlement_config(data: dict[str, Any]) -> SettlementConfig:
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {unknown}")

    sections = {
        name: config_cls.from_dict(data.get(name) or {})
        for name, config_cls in _SECTIONS.items()
    }
    return SettlementConfig(checksum=compute_checksum(data), **sections)


def load_settlement_config(path: Path | str | None = None) -> SettlementConfig:
    """
    Load settlement configuration from ``path`` (default: the packaged
    ``defaults.yaml``).
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(config_path)
    config = parse_settlement_config(data)
    logger.info("settlement_config_loaded", extra={
        "path": str(config_path),
        "checksum": config.checksum,
        "sections": sorted(data.keys()),
    })
    return config
