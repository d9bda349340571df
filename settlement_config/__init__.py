"""
settlement_config -- YAML-backed settings for the settlement modules.

``load_settlement_config()`` reads the packaged ``defaults.yaml`` (or a
given file) and returns a ``SettlementConfig`` holding one configuration
object per module.  Services also accept their module config directly and
fall back to ``with_defaults()`` when given none.
"""

from settlement_config.loader import (
    DEFAULT_CONFIG_PATH,
    SettlementConfig,
    compute_checksum,
    load_settlement_config,
    load_yaml_file,
    parse_settlement_config,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SettlementConfig",
    "compute_checksum",
    "load_settlement_config",
    "load_yaml_file",
    "parse_settlement_config",
]
