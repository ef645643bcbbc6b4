"""Configuration file handling — load/save koki.yaml."""

import os
import sys

import yaml


def _migrate_config(cfg: dict) -> bool:
    """Migrate legacy camelCase config keys. Returns True if migration happened."""
    migrated = False

    # apiVersion → api_version
    if "apiVersion" in cfg:
        cfg["api_version"] = cfg.pop("apiVersion")
        migrated = True

    # excludeKinds → exclude
    if "excludeKinds" in cfg:
        cfg["exclude"] = cfg.pop("excludeKinds")
        migrated = True

    return migrated


def load_config(path: str) -> dict:
    """Load koki.yaml or return the default config."""
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    else:
        cfg = {}

    if _migrate_config(cfg):
        print("Config migrated to current key names in memory", file=sys.stderr)

    cfg.setdefault("api_version", "v1")
    cfg.setdefault("exclude", [])
    cfg.setdefault("strict", False)
    return cfg


def save_config(path: str, config: dict) -> None:
    """Write koki.yaml."""
    header = "# koki shorthand conversion settings\n\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
