from __future__ import annotations

import re
import shutil
from pathlib import Path

import pytest

from scratchfiles.services.temp_file import DeferredFileStream, TempFileItemFactory

_NAME_RE = re.compile(r"^upload_[0-9a-f_]{36}_(\d{8})\.tmp$")


def test_factory_generates_unique_sequential_names(tmp_path: Path):
    factory = TempFileItemFactory(4, tmp_path)

    first = factory.create_item()
    second = factory.create_item()
    first.open().write(b"12345")
    second.open().write(b"12345")

    m1 = _NAME_RE.match(first.location.name)
    m2 = _NAME_RE.match(second.location.name)
    assert m1 and m2
    assert int(m2.group(1)) == int(m1.group(1)) + 1
    assert first.id != second.id


def test_factory_rejects_bad_arguments(tmp_path: Path):
    with pytest.raises(ValueError, match="threshold"):
        TempFileItemFactory(-1, tmp_path)
    with pytest.raises(ValueError, match="not a directory"):
        TempFileItemFactory(1, tmp_path / "missing")


def test_zero_threshold_spills_on_first_byte(tmp_path: Path):
    handle = TempFileItemFactory(0, tmp_path).create_item()
    handle.open()

    assert handle.in_memory
    assert handle.get() == b""
    handle.write(b"a")
    assert not handle.in_memory
    assert handle.location.read_bytes() == b"a"


def test_untracked_handle_delete_removes_its_file(tmp_path: Path):
    handle = TempFileItemFactory(2, tmp_path).create_item()
    handle.open()
    handle.write(bytearray(b"abc"))
    location = handle.location

    handle.delete()

    assert not location.exists()
    handle.delete()


def test_context_manager_deletes_on_exit(tmp_path: Path):
    with TempFileItemFactory(2, tmp_path).create_item() as handle:
        handle.open()
        handle.write(memoryview(b"abcdef"))
        location = handle.location
        assert location.exists()

    assert not location.exists()
    assert handle.deleted


def test_spill_hook_failure_removes_the_new_file(tmp_path: Path):
    calls: list[tuple[str, Path]] = []

    def refusing_hook(entry_id: str, stream: DeferredFileStream, location: Path) -> None:
        calls.append((entry_id, location))
        raise RuntimeError("no more tracking")

    handle = TempFileItemFactory(1, tmp_path).create_item(on_spill=refusing_hook)
    handle.open()
    handle.write(b"a")

    with pytest.raises(RuntimeError, match="no more tracking"):
        handle.write(b"b")

    assert calls and calls[0][0] == handle.id
    assert not calls[0][1].exists()
    assert handle.in_memory
    assert handle.get() == b"a"


def test_spill_hook_runs_once(tmp_path: Path):
    calls: list[Path] = []
    handle = TempFileItemFactory(1, tmp_path).create_item(
        on_spill=lambda _id, _stream, location: calls.append(location)
    )
    handle.open()
    for _ in range(5):
        handle.write(b"xy")

    assert calls == [handle.location]
    assert handle.get() == b"xy" * 5


def test_open_fails_without_repository(tmp_path: Path):
    repository = tmp_path / "repo"
    repository.mkdir()
    handle = TempFileItemFactory(1, repository).create_item()
    shutil.rmtree(repository)

    with pytest.raises(FileNotFoundError):
        handle.open()
    with pytest.raises(ValueError, match="not open"):
        handle.stream


def test_write_after_close_is_rejected(tmp_path: Path):
    handle = TempFileItemFactory(8, tmp_path).create_item()
    stream = handle.open()
    stream.write(b"abc")
    handle.close()

    with pytest.raises(ValueError, match="closed"):
        stream.write(b"d")
    assert handle.get() == b"abc"
