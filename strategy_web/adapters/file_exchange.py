from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from strategy_web.domain.errors import InvalidDocumentError, PickerCancelled
from strategy_web.domain.models import StrategicData
from strategy_web.utils.debounce import Debouncer

logger = logging.getLogger(__name__)

SUGGESTED_NAME = "strategic-analysis.json"
MIME_TYPE = "application/json"
EXTENSIONS = (".json",)
AUTOSAVE_DELAY_SECONDS = 2.0


# -----------------------------
# File pickers
# -----------------------------
class FilePicker:
    """Strategy interface. Both methods raise PickerCancelled when the user backs out."""
    def pick_save(self, suggested_name: str, mime_type: str, extensions: Sequence[str]) -> Path:
        raise NotImplementedError

    def pick_open(self, mime_type: str, extensions: Sequence[str]) -> Path:
        raise NotImplementedError


@dataclass(frozen=True)
class DirectoryFilePicker(FilePicker):
    """
    Resolves a requested file name inside a fixed directory.
    An empty name on open counts as a cancel; on save the suggested name is used.
    """
    base_dir: Path
    filename: str = ""

    def _resolve(self, name: str, extensions: Sequence[str]) -> Path:
        base = self.base_dir.resolve()
        full = (base / name).resolve()
        if base not in full.parents:
            raise PermissionError(f"{name!r} is outside {base}")
        if extensions and full.suffix.lower() not in extensions:
            raise ValueError(f"{name!r} must end with one of {list(extensions)}")
        return full

    def pick_save(self, suggested_name: str, mime_type: str, extensions: Sequence[str]) -> Path:
        name = (self.filename or "").strip() or suggested_name
        return self._resolve(name, extensions)

    def pick_open(self, mime_type: str, extensions: Sequence[str]) -> Path:
        name = (self.filename or "").strip()
        if not name:
            raise PickerCancelled("No file selected")
        return self._resolve(name, extensions)


# -----------------------------
# Results
# -----------------------------
@dataclass(frozen=True)
class ExchangeResult:
    success: bool
    data: Optional[StrategicData] = None
    path: Optional[Path] = None
    cancelled: bool = False
    error: str = ""


def _render(data: StrategicData) -> str:
    return json.dumps(data.to_dict(), indent=2, ensure_ascii=False)


def _write_replacing(path: Path, text: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


class FileExchange:
    """
    Export/import of the aggregate as a JSON document, plus debounced
    auto-save to whichever file was last exported to or imported from.
    One instance per session; the active file is instance state. Writes from
    request threads and the auto-save timer go through one lock.
    """

    def __init__(
        self,
        picker: Optional[FilePicker] = None,
        debouncer: Optional[Debouncer] = None,
    ):
        self.picker = picker
        self.debouncer = debouncer or Debouncer(delay=AUTOSAVE_DELAY_SECONDS)
        self.active_path: Optional[Path] = None
        self._write_lock = threading.Lock()

    def has_active_file(self) -> bool:
        return self.active_path is not None

    def export_to_file(self, data: StrategicData, picker: Optional[FilePicker] = None) -> ExchangeResult:
        picker = picker or self.picker
        try:
            path = self.active_path
            if path is None:
                if picker is None:
                    raise PickerCancelled("No file picker available")
                path = picker.pick_save(SUGGESTED_NAME, MIME_TYPE, EXTENSIONS)
            path.parent.mkdir(parents=True, exist_ok=True)
            with self._write_lock:
                _write_replacing(path, _render(data))
        except PickerCancelled:
            return ExchangeResult(success=False, cancelled=True)
        except Exception as e:
            logger.exception("Error saving file")
            return ExchangeResult(success=False, error=str(e))

        self.active_path = path
        logger.info("Saved analysis to %s", path)
        return ExchangeResult(success=True, path=path)

    def import_from_file(self, picker: Optional[FilePicker] = None) -> ExchangeResult:
        picker = picker or self.picker
        try:
            if picker is None:
                raise PickerCancelled("No file picker available")
            path = picker.pick_open(MIME_TYPE, EXTENSIONS)
            data = StrategicData.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except PickerCancelled:
            return ExchangeResult(success=False, cancelled=True)
        except (OSError, ValueError, InvalidDocumentError) as e:
            logger.error("Error loading file: %s", e)
            return ExchangeResult(success=False, error=str(e))

        self.active_path = path
        logger.info("Loaded analysis from %s", path)
        return ExchangeResult(success=True, data=data, path=path)

    def auto_save(self, data: StrategicData) -> bool:
        """
        Schedule a write of `data` to the active file. Returns False when no
        file is active. The document is rendered now; a later call within
        the delay window replaces it.
        """
        if self.active_path is None:
            return False
        text = _render(data)
        self.debouncer.submit(lambda: self._auto_write(text))
        return True

    def flush(self) -> None:
        if self.debouncer.pending:
            self.debouncer.flush()

    def _auto_write(self, text: str) -> None:
        with self._write_lock:
            path = self.active_path
            if path is None:
                return
            try:
                _write_replacing(path, text)
            except OSError:
                logger.exception("Error auto-saving to %s", path)
                return
        logger.info("Auto-saved successfully to %s", path)
