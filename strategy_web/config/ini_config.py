########## ini_config.py

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

INI_DEFAULT_NAME = "StrategicPlanning.ini"


@dataclass(frozen=True)
class AppSettings:
    local_store_path: Path
    exchange_dir: Path
    autosave_delay_seconds: float

    # None when the INI has no [sqlserver] section
    sqlserver_table: Optional[str]

    flask_host: str
    flask_port: int
    flask_debug: bool

    log_level: str


class IniConfig:
    """
    Adapter around ConfigParser and filesystem resolution.
    Keeps INI handling out of your app/service code.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv("APP_INI") or "").strip()
        # If APP_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _cfg_path(self, section: str, key: str, default: str) -> Path:
        """
        Reads a filesystem path from INI and resolves it.
        Relative paths are taken relative to the INI file's folder.
        """
        raw = (self._cfg.get(section, key, fallback="") or "").strip() or default
        raw = os.path.expandvars(os.path.expanduser(raw))
        p = Path(raw)
        if not p.is_absolute():
            p = self._ini_path.resolve().parent / p
        return p.resolve()

    def load_settings(self) -> AppSettings:
        # Storage
        local_store_path = self._cfg_path("storage", "local_store_path", "data/local_store.json")

        # File exchange
        exchange_dir = self._cfg_path("files", "exchange_dir", "data/exchange")
        autosave_delay_seconds = self._cfg.getfloat("files", "autosave_delay_seconds", fallback=2.0)

        # Remote (optional)
        sqlserver_table = None
        if self._cfg.has_section("sqlserver"):
            sqlserver_table = (
                self._cfg.get("sqlserver", "table_name", fallback="dbo.StrategicData") or ""
            ).strip() or "dbo.StrategicData"

        # Flask
        flask_host = (self._cfg.get("flask", "host", fallback="127.0.0.1") or "").strip() or "127.0.0.1"
        flask_port = self._cfg.getint("flask", "port", fallback=5000)
        flask_debug = self._cfg.getboolean("flask", "debug", fallback=True)

        # Logging
        log_level = (self._cfg.get("logging", "level", fallback="INFO") or "").strip().upper() or "INFO"

        # Validate
        if autosave_delay_seconds < 0:
            raise ValueError(f"files.autosave_delay_seconds must be >= 0, got {autosave_delay_seconds}")

        exchange_dir.mkdir(parents=True, exist_ok=True)

        return AppSettings(
            local_store_path=local_store_path,
            exchange_dir=exchange_dir,
            autosave_delay_seconds=autosave_delay_seconds,
            sqlserver_table=sqlserver_table,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
            log_level=log_level,
        )
