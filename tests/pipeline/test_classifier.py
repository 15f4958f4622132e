import os

import pytest

from romsync.pipeline.classifier import Classifier
from romsync.pipeline.errors import InvalidInputError, UnknownPlatformError


@pytest.fixture
def classifier(catalog):
    return Classifier(catalog)


@pytest.mark.unit
def test_classify_uppercase_extension(classifier, write_rom):
    rom_path = write_rom("GAME.NES", b"\x4e\x45\x53\x1a" + b"\x00" * 12)

    rom = classifier.classify(rom_path)

    assert rom.platform == "nes"
    assert rom.extension == ".nes"
    assert rom.filename == "GAME.NES"
    assert rom.size == 16
    assert rom.path == rom_path
    assert rom.id.startswith("rom-game-nes-")
    assert rom.metadata["platformName"] == "Nintendo Entertainment System"
    assert "classifiedAt" in rom.metadata


@pytest.mark.unit
def test_classify_accepts_string_paths(classifier, write_rom):
    rom_path = write_rom("Sonic.md")

    assert classifier.classify(str(rom_path)).platform == "genesis"


@pytest.mark.unit
def test_classify_unknown_extension(classifier, write_rom):
    rom_path = write_rom("readme.txt")

    with pytest.raises(UnknownPlatformError, match="Unknown file extension: .txt"):
        classifier.classify(rom_path)


@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "   ", None])
def test_classify_empty_path(classifier, value):
    with pytest.raises(InvalidInputError):
        classifier.classify(value)


@pytest.mark.unit
def test_classify_rejects_traversal(classifier, incoming, write_rom):
    write_rom("Game.nes")

    with pytest.raises(InvalidInputError, match="Invalid file path"):
        classifier.classify(f"{incoming}/../incoming/Game.nes")


@pytest.mark.unit
def test_classify_missing_file(classifier, incoming):
    with pytest.raises(InvalidInputError, match="file not found"):
        classifier.classify(incoming / "absent.nes")


@pytest.mark.unit
def test_classify_directory(classifier, incoming):
    folder = incoming / "folder.nes"
    folder.mkdir()

    with pytest.raises(InvalidInputError, match="directory"):
        classifier.classify(folder)


@pytest.mark.unit
@pytest.mark.skipif(os.geteuid() == 0, reason="root can read any file")
def test_classify_unreadable_file(classifier, write_rom):
    rom_path = write_rom("Locked.nes")
    rom_path.chmod(0)
    try:
        with pytest.raises(InvalidInputError, match="not readable"):
            classifier.classify(rom_path)
    finally:
        rom_path.chmod(0o644)
