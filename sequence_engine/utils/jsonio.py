# sequence_engine/utils/jsonio.py
from __future__ import annotations
import json
import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

PathLike = Union[str, Path]

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "configs" / "default.json"


def load_json(path: PathLike) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge 'override' into 'base' (returns a new dict).
    """
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_update(out[k], v)
        else:
            out[k] = v
    return out


def override_config(cfg: dict, overrides: dict) -> dict:
    """
    Dot-path override utility, e.g. {"rules.required_sequences": 1, "room.max_players": 6}.
    """
    out = copy.deepcopy(cfg)

    def set_by_path(d: dict, path: str, value: Any) -> None:
        keys = path.split(".")
        for k in keys[:-1]:
            if k not in d or not isinstance(d[k], dict):
                d[k] = {}
            d = d[k]
        d[keys[-1]] = value

    for k, v in (overrides or {}).items():
        set_by_path(out, k, v)
    return out


def load_config(path: Optional[PathLike] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Defaults <- optional JSON file <- dot-path overrides."""
    cfg = load_json(DEFAULT_CONFIG_PATH)
    if path is not None:
        cfg = deep_update(cfg, load_json(path))
    return override_config(cfg, overrides or {})
