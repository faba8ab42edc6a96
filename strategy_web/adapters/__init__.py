from .file_exchange import DirectoryFilePicker, ExchangeResult, FileExchange, FilePicker
from .sqlserver_store import RemoteResult, SqlServerConnection, SqlServerStrategicStore

__all__ = [
    "DirectoryFilePicker",
    "ExchangeResult",
    "FileExchange",
    "FilePicker",
    "RemoteResult",
    "SqlServerConnection",
    "SqlServerStrategicStore",
]
