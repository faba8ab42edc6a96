from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable, List

import pytest

import strategy_web.adapters.file_exchange as file_exchange
from strategy_web.adapters.file_exchange import DirectoryFilePicker, FileExchange, FilePicker
from strategy_web.domain.errors import PickerCancelled
from strategy_web.domain.models import Competitor, Factor, KsfItem, StrategicData, SwotItem
from strategy_web.utils.debounce import Debouncer, ScheduledTask, Scheduler


# -----------------------------
# Test doubles
# -----------------------------
class FakeTask(ScheduledTask):
    def __init__(self, due: float, fn: Callable[[], None]):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler(Scheduler):
    """Virtual clock: tasks run only when advance() moves time past them."""

    def __init__(self):
        self.now = 0.0
        self.tasks: List[FakeTask] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledTask:
        task = FakeTask(self.now + delay, fn)
        self.tasks.append(task)
        return task

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [t for t in self.tasks if not t.cancelled and t.due <= self.now]
        self.tasks = [t for t in self.tasks if not t.cancelled and t not in due]
        for t in due:
            t.fn()


class CancellingPicker(FilePicker):
    def pick_save(self, suggested_name, mime_type, extensions):
        raise PickerCancelled("dismissed")

    def pick_open(self, mime_type, extensions):
        raise PickerCancelled("dismissed")


class RecordingPicker(FilePicker):
    def __init__(self, path: Path):
        self.path = path
        self.save_calls = []

    def pick_save(self, suggested_name, mime_type, extensions):
        self.save_calls.append((suggested_name, mime_type, tuple(extensions)))
        return self.path

    def pick_open(self, mime_type, extensions):
        return self.path


# -----------------------------
# Helpers
# -----------------------------
def _data(label: str = "A") -> StrategicData:
    return StrategicData(
        strengths=[SwotItem(id="s1", description=f"Strength {label}")],
        opportunities=[SwotItem(id="o1", description="Export")],
        ife=[Factor(id="f1", description="Cash", weight=0.35, rating=4)],
        efe=[Factor(id="f2", description="", weight=0.1, rating=1)],
        ksf=[KsfItem(id="k1", description="Price", target="<10", measure="Survey", weight=45.5, performance=80)],
        competitors=[Competitor(id="c1", name="Our Company", ratings={"k1": 3.25, "gone": 1})],
    )


@pytest.fixture
def writes(monkeypatch):
    recorded = []
    real = file_exchange._write_replacing

    def recording(path, text):
        recorded.append((path, text))
        real(path, text)

    monkeypatch.setattr(file_exchange, "_write_replacing", recording)
    return recorded


def make_exchange(tmp_path: Path, scheduler: Scheduler) -> FileExchange:
    return FileExchange(
        picker=DirectoryFilePicker(tmp_path),
        debouncer=Debouncer(delay=2.0, scheduler=scheduler),
    )


# -----------------------------
# Export / import
# -----------------------------
def test_export_then_import_round_trips(tmp_path: Path):
    exchange = make_exchange(tmp_path, FakeScheduler())
    data = _data()

    exported = exchange.export_to_file(data)
    assert exported.success
    assert exported.path == (tmp_path / "strategic-analysis.json").resolve()

    fresh = FileExchange(picker=DirectoryFilePicker(tmp_path, "strategic-analysis.json"))
    imported = fresh.import_from_file()
    assert imported.success
    assert imported.data == data
    assert imported.data.to_dict() == data.to_dict()


def test_export_writes_pretty_json_with_two_space_indent(tmp_path: Path):
    exchange = make_exchange(tmp_path, FakeScheduler())
    result = exchange.export_to_file(_data())

    text = result.path.read_text(encoding="utf-8")
    assert text == json.dumps(_data().to_dict(), indent=2)
    assert text.splitlines()[1].startswith('  "swot"')


def test_export_uses_picker_contract_and_reuses_destination(tmp_path: Path):
    target = tmp_path / "mine.json"
    picker = RecordingPicker(target)
    exchange = FileExchange(picker=picker, debouncer=Debouncer(2.0, FakeScheduler()))

    assert exchange.export_to_file(_data("A")).success
    assert exchange.export_to_file(_data("B")).success

    assert picker.save_calls == [("strategic-analysis.json", "application/json", (".json",))]
    assert json.loads(target.read_text(encoding="utf-8"))["swot"]["strengths"][0]["description"] == "Strength B"


def test_export_replaces_previous_contents(tmp_path: Path):
    target = tmp_path / "strategic-analysis.json"
    target.write_text("x" * 10_000, encoding="utf-8")

    exchange = make_exchange(tmp_path, FakeScheduler())
    exchange.export_to_file(StrategicData())

    assert json.loads(target.read_text(encoding="utf-8")) == StrategicData().to_dict()


def test_cancelled_export_is_a_quiet_failure(tmp_path: Path):
    exchange = FileExchange(picker=CancellingPicker())
    result = exchange.export_to_file(_data())

    assert result.success is False
    assert result.cancelled is True
    assert result.error == ""
    assert not exchange.has_active_file()


def test_export_write_error_is_reported_not_raised(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a folder", encoding="utf-8")
    exchange = FileExchange(picker=RecordingPicker(blocker / "out.json"))

    result = exchange.export_to_file(_data())
    assert result.success is False
    assert result.cancelled is False
    assert result.error
    assert not exchange.has_active_file()


def test_import_malformed_json_yields_no_data(tmp_path: Path):
    (tmp_path / "broken.json").write_text("{oops", encoding="utf-8")
    exchange = FileExchange(picker=DirectoryFilePicker(tmp_path, "broken.json"))

    result = exchange.import_from_file()
    assert result.data is None
    assert result.success is False
    assert not exchange.has_active_file()


def test_import_wrong_shape_yields_no_data(tmp_path: Path):
    (tmp_path / "list.json").write_text("[1, 2, 3]", encoding="utf-8")
    exchange = FileExchange(picker=DirectoryFilePicker(tmp_path, "list.json"))

    assert exchange.import_from_file().data is None


def test_import_cancelled_picker(tmp_path: Path):
    exchange = FileExchange(picker=DirectoryFilePicker(tmp_path))
    result = exchange.import_from_file()
    assert result.cancelled is True
    assert result.data is None


def test_import_sets_active_file(tmp_path: Path):
    (tmp_path / "plan.json").write_text(json.dumps(_data().to_dict()), encoding="utf-8")
    exchange = FileExchange(picker=DirectoryFilePicker(tmp_path, "plan.json"))

    assert exchange.import_from_file().success
    assert exchange.active_path == (tmp_path / "plan.json").resolve()


def test_directory_picker_rejects_paths_outside_base(tmp_path: Path):
    picker = DirectoryFilePicker(tmp_path / "exchange", "../escape.json")
    with pytest.raises(PermissionError):
        picker.pick_save("strategic-analysis.json", "application/json", (".json",))


def test_directory_picker_enforces_json_extension(tmp_path: Path):
    picker = DirectoryFilePicker(tmp_path, "notes.txt")
    with pytest.raises(ValueError):
        picker.pick_open("application/json", (".json",))


# -----------------------------
# Auto-save
# -----------------------------
def test_auto_save_is_inactive_without_a_file(tmp_path: Path, writes):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)

    assert exchange.auto_save(_data()) is False
    scheduler.advance(10)
    assert writes == []


def test_auto_save_debounces_five_calls_into_one_write(tmp_path: Path, writes):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    exchange.export_to_file(StrategicData())
    writes.clear()

    for label in "ABCDE":
        assert exchange.auto_save(_data(label))
        scheduler.advance(0.4)

    # 0.4s after the last call: still inside the 2s window
    assert writes == []

    scheduler.advance(1.5)
    assert writes == []

    scheduler.advance(0.2)
    assert len(writes) == 1
    path, text = writes[0]
    assert path == exchange.active_path
    assert json.loads(text) == _data("E").to_dict()
    assert json.loads(path.read_text(encoding="utf-8")) == _data("E").to_dict()

    scheduler.advance(10)
    assert len(writes) == 1


def test_auto_save_three_calls_writes_last_snapshot(tmp_path: Path, writes):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    exchange.export_to_file(StrategicData())
    writes.clear()

    exchange.auto_save(_data("A"))
    exchange.auto_save(_data("B"))
    exchange.auto_save(_data("C"))
    scheduler.advance(2.0)

    assert len(writes) == 1
    assert json.loads(writes[0][1]) == _data("C").to_dict()


def test_auto_save_snapshot_is_taken_at_call_time(tmp_path: Path, writes):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    exchange.export_to_file(StrategicData())
    writes.clear()

    data = _data("A")
    exchange.auto_save(data)
    data.strengths.append(SwotItem(id="late", description="added after the call"))
    scheduler.advance(2.0)

    assert json.loads(writes[0][1]) == _data("A").to_dict()


def test_flush_writes_pending_auto_save_immediately(tmp_path: Path, writes):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    exchange.export_to_file(StrategicData())
    writes.clear()

    exchange.auto_save(_data("Z"))
    exchange.flush()
    assert len(writes) == 1

    scheduler.advance(5)
    assert len(writes) == 1


def test_auto_save_write_error_is_logged_not_raised(tmp_path: Path, monkeypatch):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    exchange.export_to_file(StrategicData())

    def failing(path, text):
        raise OSError("disk full")

    monkeypatch.setattr(file_exchange, "_write_replacing", failing)
    exchange.auto_save(_data())
    scheduler.advance(2.0)
    assert not exchange.debouncer.pending


def test_timer_fired_before_resubmit_does_not_write_early(tmp_path: Path, writes):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    exchange.export_to_file(StrategicData())
    writes.clear()

    exchange.auto_save(_data("A"))
    first = scheduler.tasks[-1]
    exchange.auto_save(_data("B"))
    # timer thread already running when the second call cancelled it
    first.fn()
    assert writes == []

    scheduler.advance(2.0)
    assert len(writes) == 1
    assert json.loads(writes[0][1]) == _data("B").to_dict()


def test_concurrent_exports_and_auto_writes_leave_valid_json(tmp_path: Path):
    scheduler = FakeScheduler()
    exchange = make_exchange(tmp_path, scheduler)
    assert exchange.export_to_file(StrategicData()).success

    results = []

    def export(label):
        results.append(exchange.export_to_file(_data(label)).success)

    def auto_write(label):
        exchange._auto_write(file_exchange._render(_data(label)))

    threads = []
    for i in range(20):
        threads.append(threading.Thread(target=export, args=(f"x{i}",)))
        threads.append(threading.Thread(target=auto_write, args=(f"y{i}",)))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [True] * 20
    saved = json.loads(exchange.active_path.read_text(encoding="utf-8"))
    assert saved["swot"]["strengths"][0]["description"].startswith("Strength ")
    assert not exchange.active_path.with_name(exchange.active_path.name + ".tmp").exists()
