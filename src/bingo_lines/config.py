from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml


ENV_PREFIX = "BINGO_LINES_"

INT_KEYS = {
    "num_cards",
    "min_num",
    "max_num",
    "max_attempts",
    "max_card_retries",
    "parallelism",
    "seed.value",
}
FLOAT_KEYS = {"build_timeout_sec", "early_stop_variance"}
BOOL_KEYS = {"parallel", "strict"}
PATH_KEYS = ("out_cards", "out_report", "log_file", "summary_csv")

# Keys that change the generated cards; output and logging keys are excluded.
CONTRACT_KEYS = {
    "num_cards",
    "min_num",
    "max_num",
    "max_attempts",
    "max_card_retries",
    "early_stop_variance",
    "seed.engine",
    "seed.value",
}

DEFAULTS: Dict[str, Any] = {
    "seed": {"engine": "py_random"},
    "max_attempts": 10,
    "max_card_retries": 1000,
    "parallel": False,
    "parallelism": 1,
    "strict": False,
    "log_level": "INFO",
    "log_format": "text",
    "out_cards": "cards.json",
    "out_report": "report.json",
}


def _read_config_file(config_path: Path | None) -> Dict[str, Any]:
    if not config_path:
        return {}
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Top-level YAML config must be a mapping")
        return data
    if suffix == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Top-level JSON config must be a mapping")
        return data
    raise ValueError(f"Unsupported config extension: {suffix}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _convert(cfg_key: str, raw: str) -> Any:
    if cfg_key in INT_KEYS:
        try:
            return int(raw)
        except ValueError:
            return raw
    if cfg_key in FLOAT_KEYS:
        try:
            return float(raw)
        except ValueError:
            return raw
    if cfg_key in BOOL_KEYS:
        return _parse_bool(raw)
    return raw


def _collect_env_vars(env: Mapping[str, str]) -> Dict[str, Any]:
    """Map ENV variables with BINGO_LINES_ prefix to config keys.

    BINGO_LINES_SEED_VALUE maps to the nested ``seed.value``; every other
    variable maps to its lower-cased suffix. Unknown suffixes are ignored.
    """
    known = INT_KEYS | FLOAT_KEYS | BOOL_KEYS | set(PATH_KEYS) | {"log_level", "log_format", "seed.engine"}
    result: Dict[str, Any] = {}
    for env_key, raw in env.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        cfg_key = env_key[len(ENV_PREFIX):].lower()
        if cfg_key.startswith("seed_"):
            cfg_key = "seed." + cfg_key[len("seed_"):]
        if cfg_key not in known:
            continue
        result[cfg_key] = _convert(cfg_key, raw)
    return result


def _set_nested(config: Dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cursor = config
    for part in parts[:-1]:
        if part not in cursor or not isinstance(cursor[part], dict):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[parts[-1]] = value


def _apply_overrides(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = json.loads(json.dumps(base))  # deep copy via JSON
    for key, value in overrides.items():
        if "." in key:
            _set_nested(merged, key, value)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            for sub_key, sub_value in value.items():
                _set_nested(merged, f"{key}.{sub_key}", sub_value)
        else:
            merged[key] = value
    return merged


def canonical_json_dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=True, sort_keys=True, separators=(",", ":"))


def compute_params_hash(resolved: Mapping[str, Any]) -> str:
    def extract(path: str, source: Mapping[str, Any]) -> Any:
        cur: Any = source
        for part in path.split("."):
            if not isinstance(cur, Mapping) or part not in cur:
                return None
            cur = cur[part]
        return cur

    contract: Dict[str, Any] = {}
    for item in CONTRACT_KEYS:
        value = extract(item, resolved)
        if value is not None:
            contract[item] = value

    digest = hashlib.sha256(canonical_json_dumps(contract).encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def resolve_paths(
    resolved: Dict[str, Any],
    config_file: Path | None,
    cli_overrides: Mapping[str, Any],
) -> Dict[str, Any]:
    """Normalize paths per policy.

    - Paths from config file: resolve relative to config directory
    - Paths from CLI: resolve relative to CWD
    """
    cwd = Path.cwd()
    cfg_dir = config_file.parent if config_file else None

    def normalize(path_value: str | None, is_cli: bool) -> str | None:
        if path_value is None or path_value == "":
            return None
        p = Path(path_value)
        if p.is_absolute():
            return str(p)
        base = cwd if is_cli else (cfg_dir or cwd)
        return str((base / p).resolve())

    result = dict(resolved)
    cli_keys = {k for k in cli_overrides.keys() if k in PATH_KEYS}

    for key in PATH_KEYS:
        value = resolved.get(key)
        if value is None:
            continue
        result[key] = normalize(str(value), key in cli_keys)

    return result


def resolve_parameters(
    *,
    config_path_str: str | None,
    cli_overrides: Mapping[str, Any],
    env: Mapping[str, str] | None = None,
) -> Tuple[Dict[str, Any], str, Path | None]:
    """Resolve parameters with precedence CLI > ENV > config > defaults.

    Returns (resolved_params, params_hash, config_path)
    """
    config_path = Path(config_path_str).resolve() if config_path_str else None
    file_cfg = _read_config_file(config_path) if config_path else {}
    env_map = _collect_env_vars(os.environ if env is None else env)

    merged = _apply_overrides(DEFAULTS, file_cfg)
    merged = _apply_overrides(merged, env_map)
    merged = _apply_overrides(merged, cli_overrides)

    merged = resolve_paths(merged, config_path, cli_overrides)

    params_hash = compute_params_hash(merged)
    return merged, params_hash, config_path
