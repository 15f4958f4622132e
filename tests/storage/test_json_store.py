import json

import pytest

from romsync.pipeline.errors import ArchiveIOError
from romsync.storage.json_store import atomic_write_json, read_json, upsert_records


@pytest.mark.unit
def test_atomic_write_creates_parents_and_indents(tmp_path):
    target = tmp_path / "nested" / "dir" / "data.json"

    atomic_write_json(target, [{"id": "a"}])

    assert target.read_text() == '[\n  {\n    "id": "a"\n  }\n]'
    assert list(target.parent.iterdir()) == [target]


@pytest.mark.unit
def test_atomic_write_failure_leaves_previous_content(tmp_path, monkeypatch):
    target = tmp_path / "data.json"
    target.write_text('["old"]')

    def deny(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("romsync.storage.json_store.os.replace", deny)

    with pytest.raises(ArchiveIOError):
        atomic_write_json(target, ["new"])

    assert json.loads(target.read_text()) == ["old"]
    assert [p.name for p in tmp_path.iterdir()] == ["data.json"]


@pytest.mark.unit
def test_atomic_write_unwritable_directory(tmp_path, monkeypatch):
    def deny(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("romsync.storage.json_store.tempfile.mkstemp", deny)

    with pytest.raises(ArchiveIOError, match="Failed to write"):
        atomic_write_json(tmp_path / "data.json", {})


@pytest.mark.unit
def test_read_json_invalid_content(tmp_path):
    target = tmp_path / "bad.json"
    target.write_text("{oops")

    with pytest.raises(ValueError):
        read_json(target)


@pytest.mark.unit
def test_upsert_records_replaces_first_match_and_drops_others():
    records = [{"id": 1, "k": "a"}, {"id": 2, "k": "b"}, {"id": 3, "k": "c"}]

    def matches(new, existing):
        return new["k"] == existing["k"] or new["id"] == existing["id"]

    upsert_records(records, [{"id": 3, "k": "a"}, {"id": 4, "k": "d"}], matches)

    assert records == [{"id": 3, "k": "a"}, {"id": 2, "k": "b"}, {"id": 4, "k": "d"}]
