"""LocalStorage backend."""

import os
import time

import pytest

from batch_audit.errors import StorageError
from batch_audit.storage.local import LocalStorage


def test_write_creates_parents_and_returns_files_url(storage):
    location = storage.write_file("reports/ex-2026-10-17/home-mobile.html", "<html>1</html>")

    assert location == "/api/files?file=reports/ex-2026-10-17/home-mobile.html"
    assert (storage.root / "reports" / "ex-2026-10-17" / "home-mobile.html").read_text() == "<html>1</html>"


def test_write_same_path_overwrites(storage):
    path = "reports/ex-2026-10-17/home-mobile.html"
    storage.write_file(path, "first")
    storage.write_file(path, b"second")

    assert storage.read_file(path) == b"second"
    assert len(storage.list_files("ex-2026-10-17")) == 1


def test_list_folders_missing_prefix_is_empty(storage):
    assert storage.list_folders() == []
    assert storage.list_folders("nothing-here/") == []


def test_list_folders_aggregates_and_sorts_newest_first(storage):
    storage.write_file("reports/old-2026-10-01/a.html", "aaaa")
    storage.write_file("reports/old-2026-10-01/b.html", "bb")
    storage.write_file("reports/new-2026-10-17/c.html", "c")

    old_dir = storage.root / "reports" / "old-2026-10-01"
    past = time.time() - 86400
    for f in old_dir.iterdir():
        os.utime(f, (past, past))

    folders = storage.list_folders()

    assert [f.name for f in folders] == ["new-2026-10-17", "old-2026-10-01"]
    old = folders[1]
    assert old.file_count == 2
    assert old.size == 6
    assert abs(old.created.timestamp() - past) < 2


def test_list_folders_includes_empty_directory(storage):
    (storage.root / "reports" / "empty-folder").mkdir(parents=True)

    folders = storage.list_folders()

    assert [f.name for f in folders] == ["empty-folder"]
    assert folders[0].file_count == 0
    assert folders[0].size == 0


def test_list_files_shape(storage):
    storage.write_file("reports/ex/b.html", "bbb")
    storage.write_file("reports/ex/a.html", "a")

    files = storage.list_files("ex")

    assert [f.name for f in files] == ["a.html", "b.html"]
    assert files[1].size == 3
    assert files[0].url == "/api/files?file=reports/ex/a.html"
    assert files[0].download_url == "/api/files?file=reports/ex/a.html&download=true"


def test_list_files_missing_folder_is_empty(storage):
    assert storage.list_files("missing") == []


def test_delete_folder(storage):
    storage.write_file("reports/ex/a.html", "a")

    assert storage.delete_folder("ex") is True
    assert storage.list_folders() == []


def test_delete_missing_folder_is_success(storage):
    assert storage.delete_folder("never-existed") is True


@pytest.mark.parametrize("path", ["../escape.html", "/etc/passwd", "reports/../../x", ""])
def test_write_rejects_paths_outside_root(storage, path):
    with pytest.raises(StorageError):
        storage.write_file(path, "x")


@pytest.mark.parametrize("folder", ["..", "a/b", "", "..\\x"])
def test_folder_names_are_single_segments(storage, folder):
    with pytest.raises(StorageError):
        storage.delete_folder(folder)


def test_read_missing_file_raises(storage):
    with pytest.raises(StorageError):
        storage.read_file("reports/ex/nope.html")


def test_custom_prefix(tmp_path):
    store = LocalStorage(str(tmp_path), prefix="/audits/")
    store.write_file(store.report_path("site-2026-10-17", "home-mobile.html"), "x")

    assert store.prefix == "audits"
    assert [f.name for f in store.list_folders()] == ["site-2026-10-17"]
