from pathlib import Path

import pytest

from romsync.config.platforms import (
    CatalogError,
    PlatformCatalog,
    PlatformDefinition,
    load_catalog,
    parse_platforms_xml,
)


CATALOG_XML = """<?xml version="1.0"?>
<platformList>
  <platform>
    <id>nes</id>
    <name>Nintendo Entertainment System</name>
    <extension>.nes .NES .zip</extension>
  </platform>
  <platform>
    <id>psx</id>
    <name>Sony PlayStation</name>
    <extension>.cue .bin .chd</extension>
    <bios>scph5500.bin scph5501.bin</bios>
    <companion>.cue</companion>
  </platform>
  <platform>
    <name>Missing id</name>
    <extension>.xyz</extension>
  </platform>
</platformList>
"""


@pytest.mark.unit
def test_default_catalog_lookups_are_case_insensitive(catalog):
    assert catalog.for_extension(".NES").id == "nes"
    assert catalog.for_path(Path("Game.SFC")).id == "snes"
    assert catalog.for_extension(".txt") is None
    assert catalog.for_extension("") is None
    assert catalog.is_recognized(Path("a/b/c.z64")) is True


@pytest.mark.unit
def test_shared_extension_resolves_to_first_platform(catalog):
    # genesis precedes psx in catalog order
    assert catalog.for_extension(".bin").id == "genesis"
    assert catalog.get("psx").handles(".BIN") is True


@pytest.mark.unit
def test_default_catalog_bios_rules(catalog):
    psx = catalog.get("psx")
    assert psx.requires_bios is True
    assert psx.bios_files == ("scph5500.bin", "scph5501.bin", "scph5502.bin")
    assert psx.companion_extensions == (".cue",)
    assert catalog.get("nes").requires_bios is False
    assert catalog.get(None) is None
    assert [p.id for p in catalog] == ["nes", "snes", "genesis", "psx", "n64", "gba"]


@pytest.mark.unit
def test_duplicate_platform_ids_rejected():
    nes = PlatformDefinition(id="nes", name="NES", extensions=(".nes",))
    with pytest.raises(CatalogError, match="Duplicate platform id"):
        PlatformCatalog([nes, nes])


@pytest.mark.unit
def test_parse_platforms_xml_skips_invalid_entries(tmp_path):
    xml_path = tmp_path / "platforms.xml"
    xml_path.write_text(CATALOG_XML)

    parsed = parse_platforms_xml(xml_path)

    assert len(parsed) == 2
    assert parsed.get("nes").extensions == (".nes", ".nes", ".zip")
    assert parsed.for_extension(".zip").id == "nes"
    psx = parsed.get("psx")
    assert psx.requires_bios is True
    assert psx.bios_files == ("scph5500.bin", "scph5501.bin")
    assert psx.companion_extensions == (".cue",)


@pytest.mark.unit
@pytest.mark.parametrize(
    "content,match",
    [
        ("<platformList><platform>", "Invalid XML"),
        ("<systemList/>", "Invalid root element"),
        ("<platformList><platform><id>x</id></platform></platformList>", "No valid platforms"),
    ],
)
def test_parse_platforms_xml_errors(tmp_path, content, match):
    xml_path = tmp_path / "platforms.xml"
    xml_path.write_text(content)

    with pytest.raises(CatalogError, match=match):
        parse_platforms_xml(xml_path)


@pytest.mark.unit
def test_parse_platforms_xml_missing_file(tmp_path):
    with pytest.raises(CatalogError):
        parse_platforms_xml(tmp_path / "absent.xml")


@pytest.mark.unit
def test_load_catalog_uses_default_without_file(base_config):
    assert len(load_catalog(base_config)) == 6


@pytest.mark.unit
def test_load_catalog_resolves_relative_file(tmp_path):
    (tmp_path / "platforms.xml").write_text(CATALOG_XML)
    config = {"paths": {"base": str(tmp_path), "platforms_file": "platforms.xml"}}

    loaded = load_catalog(config)

    assert {p.id for p in loaded} == {"nes", "psx"}
