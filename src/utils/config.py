from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from utils.settings import Settings


def _deep_merge(a: dict[str, Any], b: dict[str, Any]) -> dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _interpolate_env(obj: Any) -> Any:
    if isinstance(obj, str):

        def repl(m: re.Match) -> str:
            return os.environ.get(m.group(1), "")

        return re.sub(r"\$\{([A-Z0-9_]+)\}", repl, obj)
    if isinstance(obj, list):
        return [_interpolate_env(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _interpolate_env(v) for k, v in obj.items()}
    return obj


def _blank_to_none(obj: Any) -> Any:
    # An unset ${VAR} interpolates to "", which should mean "not configured".
    if isinstance(obj, dict):
        return {k: _blank_to_none(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_blank_to_none(x) for x in obj]
    if obj == "":
        return None
    return obj


def load_settings() -> Settings:
    # Load .env first so YAML interpolation can see env vars.
    load_dotenv(override=False)

    env = os.environ.get("CRAG_ENV", "dev")
    config_dir = Path(os.environ.get("CRAG_CONFIG_DIR", "configs"))

    base_path = config_dir / "base.yaml"
    env_path = config_dir / f"{env}.yaml"

    if not base_path.exists():
        raise FileNotFoundError(f"Missing config file: {base_path}")

    base = yaml.safe_load(base_path.read_text(encoding="utf-8")) or {}
    override = yaml.safe_load(env_path.read_text(encoding="utf-8")) if env_path.exists() else {}

    merged = _deep_merge(base, override or {})
    merged = _blank_to_none(_interpolate_env(merged))
    return Settings.model_validate(merged)
