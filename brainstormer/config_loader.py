import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv


DEFAULT_CONFIG: Dict[str, Any] = {
    "openai_model": "gpt-4o-mini",
    "openai_base_url": "https://api.openai.com/v1/chat/completions",
    "temperature": 0.7,
    "timeout_s": 60,
    "max_retries": 3,
    "backoff_base_s": 0.75,
    "show_api_bars": True,
    "local_only": False,
    "data_paths": {
        "root": ".",
        "logs": "logs",
    },
}

_TRUTHY = {"1", "true", "yes", "on"}


def load_env(path: Optional[Path] = None) -> bool:
    """Load a .env file into os.environ without overriding existing values."""
    if path is not None:
        return load_dotenv(path, override=False)
    return load_dotenv(find_dotenv(usecwd=True), override=False)


def _merge(base: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in loaded.items():
        # an empty YAML key loads as None; keep the default
        if value is None and key in out:
            continue
        if isinstance(out.get(key), dict):
            if isinstance(value, dict):
                out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def _apply_env(cfg: Dict[str, Any]) -> Dict[str, Any]:
    model = os.environ.get("OPENAI_MODEL", "").strip()
    if model:
        cfg["openai_model"] = model
    base_url = os.environ.get("OPENAI_API_BASE_URL", "").strip()
    if base_url:
        cfg["openai_base_url"] = base_url
    if os.environ.get("BRAINSTORM_LOCAL_ONLY", "").strip().lower() in _TRUTHY:
        cfg["local_only"] = True
    home = os.environ.get("BRAINSTORM_HOME", "").strip()
    if home:
        cfg["data_paths"]["root"] = home
    return cfg


def load_config(path: Path = Path("config/local.yaml")) -> Dict[str, Any]:
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                cfg = _merge(cfg, loaded)
        except (OSError, yaml.YAMLError):
            cfg = copy.deepcopy(DEFAULT_CONFIG)
    return _apply_env(cfg)


def data_root(cfg: Dict[str, Any]) -> Path:
    return Path(cfg.get("data_paths", {}).get("root") or ".").expanduser().resolve()


def logs_dir(cfg: Dict[str, Any]) -> Path:
    p = Path(cfg.get("data_paths", {}).get("logs") or "logs").expanduser()
    if not p.is_absolute():
        p = data_root(cfg) / p
    return p


def ensure_dirs(cfg: Dict[str, Any]) -> None:
    for p in (data_root(cfg) / "sessions", logs_dir(cfg)):
        p.mkdir(parents=True, exist_ok=True)


def env_key_set() -> bool:
    return bool(os.environ.get("OPENAI_API_KEY", "").strip())
