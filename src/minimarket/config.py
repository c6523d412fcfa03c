from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


HOME_ENV = "MINIMARKET_HOME"


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    data_dir: Path
    receipts_dir: Path
    logs_dir: Path


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "Minimarket") -> AppPaths:
    override = os.environ.get(HOME_ENV, "").strip()
    if override:
        base = Path(override).expanduser()
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    data = base / "data"
    receipts = data / "facturas"
    logs = base / "logs"

    for d in (base, data, receipts, logs):
        d.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, data_dir=data, receipts_dir=receipts, logs_dir=logs)
