from __future__ import annotations

import atexit
import logging
from typing import Optional

from flask import Flask

from strategy_web.adapters.file_exchange import FileExchange
from strategy_web.adapters.sqlserver_store import SqlServerStrategicStore
from strategy_web.config.ini_config import IniConfig
from strategy_web.repositories.local_store import JsonFileKeyValueStore, LocalPersistence
from strategy_web.services.analysis_service import StrategicSession
from strategy_web.utils.debounce import Debouncer
from strategy_web.web.routes import create_blueprint


def create_app(ini: Optional[IniConfig] = None) -> Flask:
    ini = ini or IniConfig.from_env_or_default()
    settings = ini.load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    local = LocalPersistence(store=JsonFileKeyValueStore(settings.local_store_path))

    files = FileExchange(debouncer=Debouncer(delay=settings.autosave_delay_seconds))
    # Pending auto-save must not be lost when the process exits inside the delay window
    atexit.register(files.flush)

    remote = None
    if settings.sqlserver_table:
        remote = SqlServerStrategicStore(
            ini_path=str(ini.ini_path),
            table_name=settings.sqlserver_table,
        )

    session = StrategicSession(local=local, files=files, remote=remote)
    session.restore_local()

    app = Flask(__name__)

    if remote is not None:
        result = session.load_remote()
        if not result.success:
            app.logger.warning("Remote load at startup failed, keeping local data: %s", result.error)
        elif result.data is None:
            app.logger.info("No analysis stored in %s yet", settings.sqlserver_table)

    app.register_blueprint(create_blueprint(session, settings.exchange_dir))

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug
    app.extensions["strategic_session"] = session

    app.logger.info(
        "Workbench ready: local=%s exchange_dir=%s remote=%s",
        settings.local_store_path,
        settings.exchange_dir,
        settings.sqlserver_table or "disabled",
    )
    return app
