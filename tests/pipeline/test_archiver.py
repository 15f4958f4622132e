import json
from pathlib import Path

import pytest

from romsync.pipeline.archiver import Archiver
from romsync.pipeline.errors import ArchiveIOError, CorruptManifestError
from romsync.pipeline.rom_types import ManifestEntry, ROMDescriptor


@pytest.fixture
def archiver(layout):
    return Archiver(layout)


def _entry(rom_id, content_hash, filename="Game.nes"):
    return ManifestEntry(
        id=rom_id,
        filename=filename,
        platform="nes",
        hash=content_hash,
        size=16,
        extension=".nes",
    )


def _rom(path: Path, platform="nes") -> ROMDescriptor:
    return ROMDescriptor(
        id="rom-game-nes-1",
        path=path,
        filename=path.name,
        extension=path.suffix.lower(),
        size=path.stat().st_size if path.exists() else 0,
        platform=platform,
        hash="ab" * 32,
    )


@pytest.mark.unit
def test_write_manifest_is_idempotent_by_id(archiver, layout):
    assert archiver.write_manifest(_entry("rom-1", "h1")) == 1
    assert archiver.write_manifest(_entry("rom-1", "h2")) == 1

    data = json.loads(layout.manifest_path("nes").read_text())
    assert len(data) == 1
    assert data[0]["hash"] == "h2"


@pytest.mark.unit
def test_write_manifest_deduplicates_by_hash(archiver, layout):
    archiver.write_manifest(_entry("rom-1", "h1", filename="Old.nes"))
    archiver.write_manifest(_entry("rom-2", "h1", filename="New.nes"))
    archiver.write_manifest(_entry("rom-3", "h3"))

    data = json.loads(layout.manifest_path("nes").read_text())
    assert [e["id"] for e in data] == ["rom-2", "rom-3"]
    assert data[0]["filename"] == "New.nes"
    assert "archivedAt" in data[0]


@pytest.mark.unit
def test_write_manifest_empty_hashes_do_not_collide(archiver, layout):
    archiver.write_manifest(_entry("rom-1", ""))
    archiver.write_manifest(_entry("rom-2", ""))

    assert len(json.loads(layout.manifest_path("nes").read_text())) == 2


@pytest.mark.unit
def test_write_manifest_corrupt_file(archiver, layout):
    manifest = layout.manifest_path("nes")
    manifest.write_text("[{broken")

    with pytest.raises(CorruptManifestError) as exc:
        archiver.write_manifest(_entry("rom-1", "h1"))

    assert exc.value.path == manifest
    assert "nes.json" in str(exc.value)
    assert manifest.read_text() == "[{broken"


@pytest.mark.unit
def test_write_manifest_read_only_destination(archiver, layout, monkeypatch):
    def deny(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("romsync.storage.json_store.os.replace", deny)

    with pytest.raises(ArchiveIOError, match="Permission denied"):
        archiver.write_manifest(_entry("rom-1", "h1"))

    assert not layout.manifest_path("nes").exists()
    assert list(layout.manifests.glob(".*.tmp")) == []


@pytest.mark.unit
def test_archive_rom_copies_into_platform_dir(archiver, layout, write_rom):
    source = write_rom("Game.nes", b"payload")

    destination = archiver.archive_rom(_rom(source))

    assert destination == layout.archive_roms / "nes" / "Game.nes"
    assert destination.read_bytes() == b"payload"
    assert source.exists()


@pytest.mark.unit
def test_archive_rom_missing_source(archiver, incoming):
    with pytest.raises(ArchiveIOError, match="Source file not found"):
        archiver.archive_rom(_rom(incoming / "Missing.nes"))


@pytest.mark.unit
def test_store_metadata(archiver, layout, write_rom):
    rom = _rom(write_rom("Game.nes"))
    rom.metadata["platformName"] = "Nintendo Entertainment System"

    path = archiver.store_metadata(rom)

    assert path == layout.metadata / "rom-game-nes-1.json"
    record = json.loads(path.read_text())
    assert record["hash"] == "ab" * 32
    assert record["metadata"]["platformName"] == "Nintendo Entertainment System"
    assert "storedAt" in record
