import asyncio
import os
from pathlib import Path

import aiofiles.os
import pytest

from logtally.services.ingestion import LogTailSource


@pytest.fixture
def log_file(tmp_path: Path, line_factory) -> Path:
    path = tmp_path / "access.log"
    path.write_text(line_factory(status=200) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def source(log_file: Path) -> LogTailSource:
    """Return a LogTailSource that polls without delay."""
    return LogTailSource(log_file, poll_interval=0, start_at_end=False)


def test_log_file_exists(source: LogTailSource, tmp_path: Path) -> None:
    assert source.log_file_exists() is True
    source.log_path = tmp_path / "missing.log"
    assert source.log_file_exists() is False


@pytest.mark.asyncio
async def test_is_rotated_truncation_99pct(source: LogTailSource, log_file: Path, monkeypatch) -> None:
    """Rotation detected when size shrinks by >=99%."""
    log_file.write_bytes(b"x" * 1_000_000)
    prev = os.stat(log_file)

    # Current stat: shrunk to 5_000 bytes (~99.5% drop) and same inode
    class Curr:
        st_size = 5_000
        st_ino = prev.st_ino

    async def fake_stat(_path):
        return Curr()
    monkeypatch.setattr(aiofiles.os, "stat", fake_stat)

    assert await source._is_rotated_async(prev) is True


@pytest.mark.asyncio
async def test_is_rotated_inode_change(source: LogTailSource, log_file: Path, monkeypatch) -> None:
    """Rotation detected when inode changes."""
    log_file.write_bytes(b"x" * 1_000_000)
    prev = os.stat(log_file)

    class Curr:
        st_size = prev.st_size
        st_ino = prev.st_ino + 1

    async def fake_stat(_path):
        return Curr()
    monkeypatch.setattr(aiofiles.os, "stat", fake_stat)

    assert await source._is_rotated_async(prev) is True


@pytest.mark.asyncio
async def test_is_not_rotated_on_small_shrink(source: LogTailSource, log_file: Path, monkeypatch) -> None:
    log_file.write_bytes(b"x" * 1_000_000)
    prev = os.stat(log_file)

    class Curr:
        st_size = 900_000
        st_ino = prev.st_ino

    async def fake_stat(_path):
        return Curr()
    monkeypatch.setattr(aiofiles.os, "stat", fake_stat)

    assert await source._is_rotated_async(prev) is False


@pytest.mark.asyncio
async def test_iter_lines_from_start(source: LogTailSource, log_file: Path, line_factory) -> None:
    with log_file.open("a", encoding="utf-8") as f:
        f.write(line_factory(status=404) + "\r\n")

    stream = source.iter_lines(start_at_end=False)
    first = await stream.__anext__()
    second = await stream.__anext__()
    idle = await stream.__anext__()
    await stream.aclose()

    assert first == line_factory(status=200)
    assert second == line_factory(status=404)
    assert idle is None


@pytest.mark.asyncio
async def test_iter_lines_joins_partial_line(source: LogTailSource, log_file: Path, line_factory) -> None:
    """A line written in two pieces is yielded once, whole."""
    log_file.write_text(line_factory(status=201)[:20], encoding="utf-8")

    stream = source.iter_lines(start_at_end=False)
    # The unterminated fragment is held back
    assert await stream.__anext__() is None

    with log_file.open("a", encoding="utf-8") as f:
        f.write(line_factory(status=201)[20:] + "\n")

    line = await stream.__anext__()
    while line is None:
        line = await stream.__anext__()
    await stream.aclose()

    assert line == line_factory(status=201)


@pytest.mark.asyncio
async def test_iter_lines_rotation_restart(source: LogTailSource, log_file: Path, monkeypatch) -> None:
    """When rotation is detected, the generator restarts from the new file."""
    call_count = {"n": 0}

    async def _is_rotated_once(_prev):
        call_count["n"] += 1
        return call_count["n"] == 1
    monkeypatch.setattr(source, "_is_rotated_async", _is_rotated_once)

    stream = source.iter_lines(start_at_end=True)
    # Started at the end: nothing to read yet
    assert await stream.__anext__() is None

    log_file.write_text("rotated line\n", encoding="utf-8")
    line = await stream.__anext__()
    await stream.aclose()

    assert line == "rotated line"
    assert source.rotations == 1


@pytest.mark.asyncio
async def test_start_drain_stop(source: LogTailSource, log_file: Path, line_factory) -> None:
    await source.start()
    assert source.is_running is True

    with log_file.open("a", encoding="utf-8") as f:
        f.write(line_factory(status=500) + "\n")

    for _ in range(200):
        if source.buffered_lines >= 2:
            break
        await asyncio.sleep(0.01)

    lines = source.drain()
    await source.stop(timeout=1.0)

    assert lines == [line_factory(status=200), line_factory(status=500)]
    assert source.buffered_lines == 0
    assert source.total_lines_read == 2
    assert source.total_batches == 1
    assert source.is_running is False


def test_drain_empty(source: LogTailSource) -> None:
    assert source.drain() == []
    assert source.total_batches == 1
