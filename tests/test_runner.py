"""BatchRunner: ordering, progress, failure isolation, fatal errors."""

import asyncio

import pytest
import requests

from batch_audit.audit.executor import AuditExecutor
from batch_audit.audit.runner import BatchRunner
from batch_audit.errors import FatalBatchError
from batch_audit.schemas import AuditConfig
from batch_audit.services.tasks import TaskRegistry
from batch_audit.storage.gcs import GCSStorage
from tests.fakes import FIXED_DAY, FIXED_NOW, FakeChrome, FakeClient, FakeLighthouse


class RecordingRegistry(TaskRegistry):
    """Keeps a snapshot after every write so progress can be checked step by step."""

    def __init__(self):
        super().__init__()
        self.snapshots = []

    def record(self, task_id, result, **kwargs):
        super().record(task_id, result, **kwargs)
        self.snapshots.append(self.get(task_id))

    def complete(self, task_id, message="Audit completed successfully!"):
        super().complete(task_id, message)
        self.snapshots.append(self.get(task_id))

    def fail(self, task_id, message):
        super().fail(task_id, message)
        self.snapshots.append(self.get(task_id))


def _config(*paths, base="https://ex.com"):
    return AuditConfig(base=base, paths=list(paths))


def _run(runner, registry, config, name="ex"):
    task = registry.create()
    asyncio.run(runner.run(config, task.id, name))
    return registry.get(task.id)


def test_results_cover_matrix_in_order(runner, registry, fake_lighthouse):
    task = _run(runner, registry, _config("/", "/about", "/contact"))

    assert task.status == "completed"
    assert len(task.results) == 6
    assert [(r.url, r.device_profile_name) for r in task.results] == [
        ("https://ex.com/", "mobile"),
        ("https://ex.com/", "desktop"),
        ("https://ex.com/about", "mobile"),
        ("https://ex.com/about", "desktop"),
        ("https://ex.com/contact", "mobile"),
        ("https://ex.com/contact", "desktop"),
    ]
    assert fake_lighthouse.calls == [(r.url, r.device_profile_name) for r in task.results]


def test_example_batch_produces_dated_folder(runner, registry, storage):
    task = _run(runner, registry, _config("/", "/about"), name="ex")

    assert task.status == "completed"
    assert task.progress == 100
    assert task.folder_name == "ex-2026-10-17"
    assert task.total == task.completed == 4

    folders = storage.list_folders()
    assert [f.name for f in folders] == ["ex-2026-10-17"]
    assert folders[0].file_count == 4

    names = sorted(f.name for f in storage.list_files("ex-2026-10-17"))
    stamp = "2026-10-17T09-30-15-123Z"
    assert names == sorted([
        f"home-mobile-{stamp}.html",
        f"home-desktop-{stamp}.html",
        f"about-mobile-{stamp}.html",
        f"about-desktop-{stamp}.html",
    ])


def test_progress_is_monotonic_and_hits_100_only_when_completed(executor):
    registry = RecordingRegistry()
    runner = BatchRunner(executor, registry, today=lambda: FIXED_DAY)

    _run(runner, registry, _config("/a", "/b", "/c"))

    progress = [s.progress for s in registry.snapshots]
    assert progress == sorted(progress)
    for snap in registry.snapshots:
        if snap.progress >= 100:
            assert snap.status == "completed"
    assert registry.snapshots[-1].status == "completed"
    assert registry.snapshots[0].message == "Processing 1/6 pages..."
    assert registry.snapshots[0].progress == pytest.approx(100 / 6)


def test_failing_url_does_not_stop_the_batch(storage, settings, registry):
    tool = FakeLighthouse(fail_urls={"https://ex.com/broken"})
    executor = AuditExecutor(storage, settings, launcher=FakeChrome(), tool=tool, clock=lambda: FIXED_NOW)
    runner = BatchRunner(executor, registry, today=lambda: FIXED_DAY)

    task = _run(runner, registry, _config("/", "/broken", "/about"))

    assert task.status == "completed"
    assert len(task.results) == 6
    failed = [r for r in task.results if not r.success]
    assert [(r.url, r.device_profile_name) for r in failed] == [
        ("https://ex.com/broken", "mobile"),
        ("https://ex.com/broken", "desktop"),
    ]
    assert all(r.error for r in failed)
    assert task.results[-1].url == "https://ex.com/about" and task.results[-1].success
    assert "4/6" in task.message
    assert storage.list_folders()[0].file_count == 4


def test_error_status_is_permanent(runner, registry):
    task = registry.create()
    registry.fail(task.id, "boom")

    asyncio.run(runner.run(_config("/"), task.id, "ex"))

    after = registry.get(task.id)
    assert after.status == "error"
    assert after.message == "boom"
    assert after.results == []


def test_plain_concatenation_of_base_and_path(runner, registry, fake_lighthouse):
    _run(runner, registry, _config("about", base="https://ex.com/"))

    assert fake_lighthouse.calls[0][0] == "https://ex.com/about"


def test_same_name_same_day_shares_folder(runner, registry, storage):
    _run(runner, registry, _config("/"), name="ex")
    _run(runner, registry, AuditConfig(base="https://other.com", paths=["/pricing"]), name="ex")

    folders = storage.list_folders()
    assert [f.name for f in folders] == ["ex-2026-10-17"]
    assert folders[0].file_count == 4


def test_unexpected_page_error_is_isolated(storage, settings, registry):
    tool = FakeLighthouse(crash_urls={"https://ex.com/boom"})
    executor = AuditExecutor(storage, settings, launcher=FakeChrome(), tool=tool, clock=lambda: FIXED_NOW)
    runner = BatchRunner(executor, registry, today=lambda: FIXED_DAY)

    task = _run(runner, registry, _config("/", "/boom", "/after"))

    assert task.status == "completed"
    assert len(task.results) == 6
    assert [r.success for r in task.results] == [True, True, False, False, True, True]
    assert "unexpected crash" in task.results[2].error
    assert "4/6" in task.message


def test_gcs_transport_error_fails_only_that_pair(settings, registry):
    client = FakeClient()
    storage = GCSStorage("reports-bucket", client=client)
    client.bucket("reports-bucket").fail_uploads["about-mobile"] = requests.exceptions.ConnectionError(
        "Connection reset by peer"
    )
    executor = AuditExecutor(storage, settings, launcher=FakeChrome(), tool=FakeLighthouse(), clock=lambda: FIXED_NOW)
    runner = BatchRunner(executor, registry, today=lambda: FIXED_DAY)

    task = _run(runner, registry, _config("/", "/about", "/contact"))

    assert task.status == "completed"
    assert len(task.results) == 6
    failed = [r for r in task.results if not r.success]
    assert [(r.url, r.device_profile_name) for r in failed] == [("https://ex.com/about", "mobile")]
    assert "Connection reset by peer" in failed[0].error
    assert storage.list_folders()[0].file_count == 5


class ExplodingRegistry(RecordingRegistry):
    """Registry whose bookkeeping breaks after `ok` recorded results."""

    def __init__(self, ok):
        super().__init__()
        self.ok = ok

    def record(self, task_id, result, **kwargs):
        if len(self.snapshots) >= self.ok:
            raise RuntimeError("registry unavailable")
        super().record(task_id, result, **kwargs)


def test_error_outside_page_scope_fails_the_task(executor, fake_lighthouse, storage):
    registry = ExplodingRegistry(ok=2)
    runner = BatchRunner(executor, registry, today=lambda: FIXED_DAY)

    task = _run(runner, registry, _config("/", "/about", "/never"))

    assert task.status == "error"
    assert task.message == "registry unavailable"
    assert task.progress < 100
    # remaining pairs are abandoned; artifacts already written stay in place
    assert ("https://ex.com/never", "mobile") not in fake_lighthouse.calls
    assert len(task.results) == 2
    assert storage.list_folders()[0].file_count == 3


def test_error_outside_page_scope_is_a_fatal_batch_error(executor):
    registry = ExplodingRegistry(ok=0)
    runner = BatchRunner(executor, registry, today=lambda: FIXED_DAY)
    task = registry.create()

    with pytest.raises(FatalBatchError) as excinfo:
        asyncio.run(runner._run(_config("/"), task.id, "ex"))

    assert isinstance(excinfo.value.__cause__, RuntimeError)
