from __future__ import annotations

import os
from pathlib import Path

import numpy as np
import pytest

from blurchain import ArtifactStore, ErrorKind, StageError, StoreConfig


def test_write_creates_namespace_and_unique_locators(store):
    a = store.write(b"one", "job")
    b = store.write(b"one", "job")
    assert a != b
    assert store.path_for(a).parent == store.root / "job"
    assert store.read_bytes(a) == b"one"
    assert len(store.list("job")) == 2


def test_file_naming_pattern(store):
    loc = store.write(b"x", "job", prefix="blur-filter-output")
    name = store.path_for(loc).name
    assert name.startswith("blur-filter-output-")
    assert name.endswith(".png")
    # prefix + '-' + uuid4 (36 chars) + '.png'
    assert len(name) == len("blur-filter-output-") + 36 + len(".png")


def test_read_round_trip_keeps_alpha(store, make_image):
    img = make_image(20, 10, channels=4)
    img[0, 0, 3] = 0
    out = store.read(store.write_image(img, "job"))
    assert out.shape == (10, 20, 4)
    assert out[0, 0, 3] == 0
    np.testing.assert_array_equal(out, img)


def test_read_unknown_locator_is_not_found(store):
    loc = store.locator_for(store.root / "job" / "missing.png")
    with pytest.raises(StageError) as exc:
        store.read(loc)
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_read_outside_store_is_not_found(store, tmp_path):
    other = tmp_path / "elsewhere.png"
    other.write_bytes(b"x")
    with pytest.raises(StageError) as exc:
        store.read(other.as_uri())
    assert exc.value.kind is ErrorKind.NOT_FOUND
    with pytest.raises(StageError):
        store.read("content://media/1")


def test_read_garbage_is_decode_error(store):
    loc = store.write(b"definitely not an image", "job")
    with pytest.raises(StageError) as exc:
        store.read(loc)
    assert exc.value.kind is ErrorKind.DECODE_ERROR


def test_clear_removes_only_that_namespace(store):
    store.write(b"a", "job")
    store.write(b"b", "job")
    keep = store.write(b"c", "other")
    assert store.clear("job") == 2
    assert store.list("job") == []
    assert store.list("other") == [keep]


def test_clear_is_idempotent(store):
    assert store.clear("never-used") == 0
    store.write(b"a", "job")
    store.clear("job")
    assert store.clear("job") == 0
    assert store.list("job") == []


@pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b"])
def test_bad_job_names_rejected(store, name):
    with pytest.raises(StageError) as exc:
        store.write(b"x", name)
    assert exc.value.kind is ErrorKind.INVALID_PARAMETER


def test_unwritable_root_is_storage_unavailable(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a dir")
    store = ArtifactStore(StoreConfig(root=str(blocker)))
    with pytest.raises(StageError) as exc:
        store.write(b"x", "job")
    assert exc.value.kind is ErrorKind.STORAGE_UNAVAILABLE
    assert blocker.read_text() == "not a dir"


def test_no_temp_files_left_behind(store):
    store.write(b"abc", "job")
    names = [p.name for p in (store.root / "job").iterdir()]
    assert not [n for n in names if n.startswith(".tmp-")]


def test_import_file(store, tmp_path):
    src = tmp_path / "in.bin"
    src.write_bytes(b"payload")
    loc = store.import_file(src, "job-input")
    assert store.read_bytes(loc) == b"payload"
    assert Path(store.path_for(loc)).name.startswith("blur-filter-input-")
    with pytest.raises(StageError) as exc:
        store.import_file(tmp_path / "nope.png", "job-input")
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_write_closes_descriptor_when_fdopen_fails(store, monkeypatch):
    closed = []
    real_close = os.close

    def fail_fdopen(fd, *args, **kwargs):
        raise OSError("no file objects left")

    def tracking_close(fd):
        closed.append(fd)
        real_close(fd)

    monkeypatch.setattr(os, "fdopen", fail_fdopen)
    monkeypatch.setattr(os, "close", tracking_close)
    with pytest.raises(StageError) as exc:
        store.write(b"x", "job")
    monkeypatch.undo()

    assert exc.value.kind is ErrorKind.STORAGE_UNAVAILABLE
    assert len(closed) == 1
    assert list((store.root / "job").iterdir()) == []
