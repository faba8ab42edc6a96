from __future__ import annotations

import json
import logging
from configparser import ConfigParser
from dataclasses import dataclass
from typing import Any, Callable, Optional

from strategy_web.domain.errors import InvalidDocumentError
from strategy_web.domain.models import StrategicData

logger = logging.getLogger(__name__)

# The whole analysis lives in one row.
SINGLETON_ROW_ID = 1


@dataclass(frozen=True)
class RemoteResult:
    success: bool
    data: Optional[StrategicData] = None
    error: str = ""


def _pyodbc_connect(conn_str: str):
    # pyodbc needs the ODBC driver manager at import time
    import pyodbc

    return pyodbc.connect(conn_str)


@dataclass(frozen=True)
class SqlServerConnection:
    """Connection settings from the [sqlserver] INI section."""
    database: str
    driver: str = "ODBC Driver 17 for SQL Server"
    server: str = "localhost"
    username: str = ""
    password: str = ""
    trust_cert: bool = True

    @classmethod
    def from_ini(cls, ini_path: str) -> "SqlServerConnection":
        cfg = ConfigParser()
        if not cfg.read(ini_path, encoding="utf-8-sig"):
            raise FileNotFoundError(f"INI not found or unreadable: {ini_path}")
        if "sqlserver" not in cfg:
            raise KeyError("Missing [sqlserver] section in INI")

        s = cfg["sqlserver"]

        def opt(key: str, default: str = "") -> str:
            return (s.get(key, default) or "").strip()

        database = opt("database")
        if not database:
            raise ValueError("sqlserver.database is empty in INI")

        return cls(
            database=database,
            driver=opt("driver", cls.driver),
            server=opt("server", cls.server),
            username=opt("username"),
            password=opt("password"),
            trust_cert=opt("trust_cert", "yes").lower() in ("yes", "true", "1"),
        )

    def connection_string(self) -> str:
        # Windows auth unless a SQL login is configured
        auth = [f"UID={self.username}", f"PWD={self.password}"] if self.username else ["Trusted_Connection=yes"]
        parts = [f"DRIVER={{{self.driver}}}", f"SERVER={self.server}", f"DATABASE={self.database}", *auth]
        if self.trust_cert:
            parts.append("TrustServerCertificate=yes")
        return ";".join(parts) + ";"


class SqlServerStrategicStore:
    """
    Remote persistence for the aggregate. One table, one row (id = 1), the
    full StrategicData document stored as JSON text.
    """

    def __init__(
        self,
        ini_path: str,
        table_name: str = "dbo.StrategicData",
        connector: Optional[Callable[[str], Any]] = None,
    ):
        self.ini_path = ini_path
        self.table_name = table_name
        self.settings = SqlServerConnection.from_ini(ini_path)
        self._connector = connector or _pyodbc_connect

    def connection_string(self) -> str:
        return self.settings.connection_string()

    def _connect(self):
        return self._connector(self.connection_string())

    def save_remote(self, data: StrategicData) -> RemoteResult:
        q = f"""
        MERGE {self.table_name} AS target
        USING (SELECT ? AS id, ? AS document) AS source
            ON target.id = source.id
        WHEN MATCHED THEN
            UPDATE SET document = source.document, updated_at = SYSUTCDATETIME()
        WHEN NOT MATCHED THEN
            INSERT (id, document, updated_at)
            VALUES (source.id, source.document, SYSUTCDATETIME());
        """
        document = json.dumps(data.to_dict(), ensure_ascii=False)

        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute(q, SINGLETON_ROW_ID, document)
                conn.commit()
        except Exception as e:
            logger.exception("Failed to save analysis to %s", self.table_name)
            return RemoteResult(success=False, error=f"Error saving data: {e}")

        logger.info("Saved analysis to %s (row %d)", self.table_name, SINGLETON_ROW_ID)
        return RemoteResult(success=True)

    def load_remote(self) -> RemoteResult:
        q = f"""
        SELECT document
        FROM {self.table_name}
        WHERE id = ?
        """

        try:
            with self._connect() as conn:
                cur = conn.cursor()
                r = cur.execute(q, SINGLETON_ROW_ID).fetchone()
        except Exception as e:
            logger.exception("Failed to load analysis from %s", self.table_name)
            return RemoteResult(success=False, error=f"Error loading data: {e}")

        if not r or not r[0]:
            return RemoteResult(success=True, data=None)

        try:
            data = StrategicData.from_dict(json.loads(str(r[0])))
        except (ValueError, InvalidDocumentError) as e:
            logger.warning("Stored analysis in %s is malformed, treating as absent: %s", self.table_name, e)
            return RemoteResult(success=True, data=None)

        return RemoteResult(success=True, data=data)
