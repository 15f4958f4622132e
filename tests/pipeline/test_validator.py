import pytest

from romsync.pipeline.classifier import Classifier
from romsync.pipeline.errors import InvalidNamingError
from romsync.pipeline.rom_types import ManifestEntry
from romsync.pipeline.validator import Validator, check_filename
from romsync.storage.manifest_store import ManifestStore


@pytest.fixture
def manifests(layout):
    return ManifestStore(layout)


@pytest.fixture
def validator(catalog, layout, manifests):
    return Validator(catalog, layout, manifests)


@pytest.fixture
def classify(catalog):
    return Classifier(catalog).classify


def _entry(rom_id, content_hash, platform="nes", filename="Other.nes"):
    return ManifestEntry(
        id=rom_id,
        filename=filename,
        platform=platform,
        hash=content_hash,
        size=1,
        extension=".nes",
    )


@pytest.mark.unit
def test_integrity_and_hash(validator, classify, write_rom):
    rom = classify(write_rom("Game.nes", b"abc"))

    integrity = validator.validate_integrity(rom)
    assert integrity.success is True
    assert "validatedAt" in integrity.metadata

    hashed = validator.generate_hash(rom)
    assert hashed.success is True
    assert hashed.data == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert hashed.metadata["algorithm"] == "sha256"
    assert hashed.metadata["fileSize"] == 3


@pytest.mark.unit
def test_integrity_fails_once_file_disappears(validator, classify, write_rom):
    path = write_rom("Gone.nes")
    rom = classify(path)
    path.unlink()

    integrity = validator.validate_integrity(rom)
    assert integrity.success is False
    assert "File not found" in integrity.error

    hashed = validator.generate_hash(rom)
    assert hashed.success is False
    assert hashed.error


@pytest.mark.unit
def test_check_duplicate_finds_matching_hash(validator, manifests):
    manifests.upsert(_entry("rom-1", "h1", filename="Mario.nes"))

    found = validator.check_duplicate("h1")
    assert found.data is True
    assert found.metadata["matchedFilename"] == "Mario.nes"
    assert found.metadata["matchedPlatform"] == "nes"
    assert found.metadata["matchedId"] == "rom-1"

    assert validator.check_duplicate("h2").data is False
    assert validator.check_duplicate("").data is False


@pytest.mark.unit
def test_check_duplicate_restricted_to_platforms(validator, manifests):
    manifests.upsert(_entry("rom-1", "h1", platform="snes"))

    assert validator.check_duplicate("h1", platforms=["nes"]).data is False
    assert validator.check_duplicate("h1", platforms=["snes"]).data is True


@pytest.mark.unit
def test_check_duplicate_skips_corrupt_manifest(validator, manifests, layout):
    layout.manifest_path("genesis").write_text("{not json")
    layout.manifest_path("gba").write_text('{"an": "object"}')
    manifests.upsert(_entry("rom-1", "h1", platform="snes"))

    result = validator.check_duplicate("h1")

    assert result.success is True
    assert result.data is True
    assert len(result.metadata["warnings"]) == 2
    assert any("genesis.json" in w for w in result.metadata["warnings"])


@pytest.mark.unit
def test_check_companion_files(validator, classify, write_rom):
    disc = classify(write_rom("Crash.chd"))
    cue = write_rom("Crash.cue")
    write_rom("Other.cue")

    result = validator.check_companion_files(disc)

    assert result.success is True
    assert result.data == [cue]
    assert result.metadata["companionFilesFound"] == 1


@pytest.mark.unit
def test_check_companion_files_not_required(validator, classify, write_rom):
    rom = classify(write_rom("Game.nes"))

    result = validator.check_companion_files(rom)

    assert result.data == []
    assert result.metadata["noCompanionFilesRequired"] is True


@pytest.mark.unit
def test_bios_reports_found_and_missing(validator, classify, write_rom, layout):
    rom = classify(write_rom("Crash.chd"))
    (layout.bios / "scph5501.bin").write_bytes(b"bios")

    result = validator.validate_bios_dependencies(rom)

    assert result.success is False
    assert result.metadata["found"] == ["scph5501.bin"]
    assert result.metadata["missing"] == ["scph5500.bin", "scph5502.bin"]
    assert result.error == "Missing BIOS for psx: scph5500.bin, scph5502.bin"

    for name in ("scph5500.bin", "scph5502.bin"):
        (layout.bios / name).write_bytes(b"bios")
    assert validator.validate_bios_dependencies(rom).success is True


@pytest.mark.unit
def test_bios_not_required(validator, classify, write_rom):
    rom = classify(write_rom("Game.gba"))

    result = validator.validate_bios_dependencies(rom)

    assert result.success is True
    assert result.metadata["biosRequired"] is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "filename",
    ["", "   ", "a" * 252 + ".nes", "Bad?Name.nes", "Pipe|.nes", "no_extension"],
)
def test_check_filename_rejects(filename):
    with pytest.raises(InvalidNamingError):
        check_filename(filename)


@pytest.mark.unit
def test_check_filename_accepts_ordinary_names():
    check_filename("Legend of Zelda, The (USA) (Rev 1).nes")
    check_filename("a" * 251 + ".nes")
