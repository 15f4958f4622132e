from pathlib import Path

import pytest

from romsync.pipeline.errors import InvalidInputError
from romsync.pipeline.normalizer import Normalizer
from romsync.pipeline.rom_types import ROMDescriptor


def _rom(**overrides):
    values = dict(
        id="rom-1",
        path=Path("/incoming/Game.nes"),
        filename="Game.nes",
        extension=".nes",
        size=16,
        platform="nes",
    )
    values.update(overrides)
    return ROMDescriptor(**values)


@pytest.mark.unit
def test_apply_naming_pattern_keeps_filename():
    rom = Normalizer({}).apply_naming_pattern(_rom())

    assert rom.filename == "Game.nes"
    assert rom.metadata["originalName"] == "Game.nes"
    assert "normalizedAt" in rom.metadata


@pytest.mark.unit
def test_generate_metadata():
    metadata = Normalizer({}).generate_metadata(_rom())

    assert metadata["platform"] == "nes"
    assert metadata["size"] == 16
    assert metadata["extension"] == ".nes"
    assert "generatedAt" in metadata


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides,match",
    [
        ({"size": -1}, "negative"),
        ({"platform": None}, "missing required fields"),
        ({"filename": " "}, "filename is required"),
    ],
)
def test_generate_metadata_rejects_bad_descriptors(overrides, match):
    with pytest.raises(InvalidInputError, match=match):
        Normalizer({}).generate_metadata(_rom(**overrides))


@pytest.mark.unit
def test_convert_to_chd_never_converts():
    disabled = Normalizer({}).convert_to_chd(_rom())
    assert disabled == {"converted": False, "reason": "CHD conversion disabled"}

    enabled = Normalizer({"pipeline": {"enable_chd_conversion": True}}).convert_to_chd(_rom())
    assert enabled["converted"] is False
    assert enabled["reason"] == "Not yet implemented"
