"""Configuration management for wpactrl.

Loads connection settings from ~/.config/wpactrl/config.cfg, optionally
layered over a ``.env`` file, with environment variable overrides.

Example config.cfg:

    [wpactrl]
    cli_path = /tmp
    ctrl_path = /var/run/wpa_supplicant/wlan0
    buffer_size = 10240
"""

import configparser
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

# Default location for user configuration.
CONFIG_PATH = Path.home() / ".config" / "wpactrl" / "config.cfg"

ENV_OVERRIDES = {
    "cli_path": "WPACTRL_CLI_PATH",
    "ctrl_path": "WPACTRL_CTRL_PATH",
    "buffer_size": "WPACTRL_BUFFER_SIZE",
}


@dataclass
class CtrlConfig:
    cli_path: Optional[Path] = None
    ctrl_path: Optional[Path] = None
    buffer_size: Optional[int] = None


def load_raw_config(
    path: Path = CONFIG_PATH, env_path: Optional[Path] = None
) -> Dict[str, str]:
    """
    Load configuration values from the standard config path.

    Values from ``env_path`` (a dotenv file) are loaded first and
    overridden by the config file. Keys are returned lowercase.
    """
    data: Dict[str, str] = {}

    if env_path is not None and Path(env_path).exists():
        data.update(
            {k.lower(): v for k, v in dotenv_values(env_path).items() if v is not None}
        )

    cfg = configparser.ConfigParser()
    if path.exists():
        cfg.read(path)
        if "DEFAULT" in cfg:
            data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})
        if "wpactrl" in cfg:
            data.update({k.lower(): v for k, v in cfg["wpactrl"].items()})

    return data


def _get_path(raw: Dict[str, str], key: str) -> Optional[Path]:
    value = os.environ.get(ENV_OVERRIDES[key]) or raw.get(key, "")
    value = str(value).strip()
    if not value:
        return None
    return Path(value).expanduser()


def get_ctrl_config(raw: Optional[Dict[str, str]] = None) -> CtrlConfig:
    """
    Build a CtrlConfig from raw configuration values.

    Missing values stay None so the builder falls back to its defaults.
    Raises ValueError if buffer_size is not a positive integer.
    """
    raw = raw if raw is not None else load_raw_config()

    buffer_size = None
    size_value = os.environ.get(ENV_OVERRIDES["buffer_size"]) or raw.get("buffer_size", "")
    if str(size_value).strip() != "":
        try:
            buffer_size = int(str(size_value).strip())
        except ValueError:
            raise ValueError(f"Invalid buffer_size {size_value!r}: expected an integer")
        if buffer_size <= 0:
            raise ValueError(f"Invalid buffer_size {buffer_size}: must be positive")

    return CtrlConfig(
        cli_path=_get_path(raw, "cli_path"),
        ctrl_path=_get_path(raw, "ctrl_path"),
        buffer_size=buffer_size,
    )
