# ==============================
# Config Loader (only env reader)
# ==============================
"""
Config loader for toolkit/.

Rules:
- This is the ONLY place allowed to read os.environ and .env.
- This is the ONLY place allowed to read secrets/secrets.yaml.
- Everything else receives a validated Settings object.

Precedence:
env > .env > secrets/secrets.yaml > configs/*.yaml > defaults

The platform's conventional variables (STACKONE_API_KEY, STACKONE_ACCOUNT_ID,
STACKONE_BASE_URL) are honoured beneath the TOOLKIT__ overrides.

Testability:
- All functions accept injected paths and env dict.
- No hardcoded absolute paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from toolkit.config.schema import Settings

ENV_PREFIX = "TOOLKIT__"

_SECTIONS = ("toolset", "auth", "discovery", "http", "logging")

_LEGACY_ENV = {
    "STACKONE_API_KEY": ("secrets", "api_key"),
    "STACKONE_ACCOUNT_ID": ("toolset", "account_id"),
    "STACKONE_BASE_URL": ("toolset", "base_url"),
}


# ==============================
# YAML Helpers
# ==============================


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return {}
    data = yaml.safe_load(raw)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge dictionaries: override wins.
    """
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


# ==============================
# .env Loader
# ==============================


def _read_dotenv(dotenv_path: Path) -> Dict[str, str]:
    """
    Minimal .env parser (KEY=VALUE).
    - Ignores comments and blank lines.
    - Strips surrounding quotes.
    """
    if not dotenv_path.exists():
        return {}
    envs: Dict[str, str] = {}
    for line in dotenv_path.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        key, val = s.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            envs[key] = val
    return envs


def _coerce(v: str) -> Any:
    vs = v.strip()
    if vs.lower() in {"true", "false"}:
        return vs.lower() == "true"
    if vs.isdigit() or (vs.startswith("-") and vs[1:].isdigit()):
        return int(vs)
    if "." in vs:
        try:
            return float(vs)
        except ValueError:
            pass
    return vs


def _set_path(cfg: Dict[str, Any], path: Tuple[str, ...], value: Any) -> None:
    cur: Dict[str, Any] = cfg
    for i, seg in enumerate(path):
        if i == len(path) - 1:
            cur[seg] = value
        else:
            nxt = cur.get(seg)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[seg] = nxt
            cur = nxt


def _apply_legacy_env(cfg: Dict[str, Any], env: Dict[str, str]) -> Dict[str, Any]:
    out = dict(cfg)
    for var, path in _LEGACY_ENV.items():
        value = env.get(var)
        if value:
            _set_path(out, path, value)
    return out


def _apply_env_overrides(cfg: Dict[str, Any], env: Dict[str, str]) -> Dict[str, Any]:
    """
    Apply environment overrides with TOOLKIT__ style nesting.

Example:
  TOOLKIT__TOOLSET__BASE_URL=https://api.example.com
  TOOLKIT__DISCOVERY__MIN_SCORE=0.5
  TOOLKIT__SECRETS__API_KEY=...

Rules:
- Split by '__' after prefix TOOLKIT__
- Lowercase keys for dict insertion
- Coerce booleans/ints/floats when obvious
    """
    out = dict(cfg)
    for k, v in env.items():
        if not k.startswith(ENV_PREFIX):
            continue
        path = k[len(ENV_PREFIX) :].split("__")
        if not path or any(not p for p in path):
            continue
        _set_path(out, tuple(seg.lower() for seg in path), _coerce(v))
    return out


# ==============================
# Public Loader API
# ==============================


def load_settings(
    *,
    repo_root: Optional[str] = None,
    configs_dir: Optional[str] = None,
    secrets_file: Optional[str] = None,
    dotenv_file: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> Tuple[Settings, Dict[str, Any]]:
    """
    Load and validate Settings.

Returns:
- (Settings, merged_raw_dict)

Inputs:
- repo_root: defaults to current working directory
- configs_dir: defaults to <repo_root>/configs (one YAML file per section)
- secrets_file: defaults to <repo_root>/secrets/secrets.yaml
- dotenv_file: defaults to <repo_root>/.env
- env: injected env vars (defaults to os.environ)
    """
    env_vars = dict(env) if env is not None else dict(os.environ)

    root = Path(repo_root or os.getcwd()).expanduser().resolve()
    cfg_dir = root / (configs_dir or "configs")

    merged: Dict[str, Any] = {}
    for section in _SECTIONS:
        merged = _deep_merge(merged, {section: _read_yaml(cfg_dir / f"{section}.yaml")})

    sec_path = Path(secrets_file) if secrets_file else (root / "secrets" / "secrets.yaml")
    merged = _deep_merge(merged, {"secrets": _read_yaml(sec_path)})

    # .env should not override real env; real env wins
    dotenv_path = Path(dotenv_file) if dotenv_file else (root / ".env")
    effective_env = dict(env_vars)
    for k, v in _read_dotenv(dotenv_path).items():
        effective_env.setdefault(k, v)

    merged = _apply_legacy_env(merged, effective_env)
    merged = _apply_env_overrides(merged, effective_env)

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return settings, merged
