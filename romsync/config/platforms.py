"""Platform catalog: extension to platform mapping, BIOS and companion rules."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
from lxml import etree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformDefinition:
    """A target system that ROMs are classified into."""
    id: str
    name: str
    extensions: Tuple[str, ...]
    requires_bios: bool = False
    bios_files: Tuple[str, ...] = ()
    companion_extensions: Tuple[str, ...] = ()

    def handles(self, extension: str) -> bool:
        """Check if this platform recognizes a dotted extension."""
        return extension.lower() in self.extensions


class CatalogError(Exception):
    """Platform catalog parsing errors."""
    pass


DEFAULT_PLATFORMS: Tuple[PlatformDefinition, ...] = (
    PlatformDefinition(
        id='nes',
        name='Nintendo Entertainment System',
        extensions=('.nes',),
    ),
    PlatformDefinition(
        id='snes',
        name='Super Nintendo Entertainment System',
        extensions=('.sfc', '.smc'),
    ),
    PlatformDefinition(
        id='genesis',
        name='Sega Genesis / Mega Drive',
        extensions=('.md', '.gen', '.bin'),
    ),
    PlatformDefinition(
        id='psx',
        name='Sony PlayStation',
        extensions=('.cue', '.bin', '.chd'),
        requires_bios=True,
        bios_files=('scph5500.bin', 'scph5501.bin', 'scph5502.bin'),
        companion_extensions=('.cue',),
    ),
    PlatformDefinition(
        id='n64',
        name='Nintendo 64',
        extensions=('.n64', '.z64', '.v64'),
    ),
    PlatformDefinition(
        id='gba',
        name='Game Boy Advance',
        extensions=('.gba',),
    ),
)


class PlatformCatalog:
    """
    Immutable lookup table over platform definitions.

    Extension lookups are case-insensitive. When several platforms list the
    same extension (e.g. '.bin'), the first one in catalog order wins.
    """

    def __init__(self, platforms: Iterable[PlatformDefinition]):
        self._platforms: Tuple[PlatformDefinition, ...] = tuple(platforms)
        self._by_id: Dict[str, PlatformDefinition] = {}
        self._by_extension: Dict[str, PlatformDefinition] = {}

        for platform in self._platforms:
            if platform.id in self._by_id:
                raise CatalogError(f"Duplicate platform id: {platform.id}")
            self._by_id[platform.id] = platform
            for ext in platform.extensions:
                self._by_extension.setdefault(ext.lower(), platform)

    @classmethod
    def default(cls) -> 'PlatformCatalog':
        return cls(DEFAULT_PLATFORMS)

    @property
    def platforms(self) -> Tuple[PlatformDefinition, ...]:
        return self._platforms

    @property
    def extensions(self) -> List[str]:
        return sorted(self._by_extension)

    def for_extension(self, extension: str) -> Optional[PlatformDefinition]:
        """Resolve a dotted extension ('.NES' or '.nes') to its platform."""
        if not extension:
            return None
        return self._by_extension.get(extension.lower())

    def for_path(self, path: Path) -> Optional[PlatformDefinition]:
        return self.for_extension(Path(path).suffix)

    def get(self, platform_id: Optional[str]) -> Optional[PlatformDefinition]:
        if platform_id is None:
            return None
        return self._by_id.get(platform_id)

    def is_recognized(self, path: Path) -> bool:
        return self.for_path(path) is not None

    def __len__(self) -> int:
        return len(self._platforms)

    def __iter__(self):
        return iter(self._platforms)


def parse_platforms_xml(xml_path: Path) -> PlatformCatalog:
    """
    Parse a platform catalog XML file.

    Expected layout::

        <platformList>
          <platform>
            <id>psx</id>
            <name>Sony PlayStation</name>
            <extension>.cue .bin .chd</extension>
            <bios>scph5500.bin scph5501.bin</bios>
            <companion>.cue</companion>
          </platform>
        </platformList>

    Args:
        xml_path: Path to the catalog file

    Returns:
        PlatformCatalog built from the valid <platform> entries

    Raises:
        CatalogError: If XML cannot be parsed or contains no valid platforms
    """
    try:
        tree = etree.parse(str(xml_path))
        root = tree.getroot()
    except etree.XMLSyntaxError as e:
        raise CatalogError(f"Invalid XML in platform catalog: {e}")
    except OSError as e:
        raise CatalogError(f"Failed to read platform catalog: {e}")

    if root.tag != 'platformList':
        raise CatalogError(
            f"Invalid root element: expected 'platformList', got '{root.tag}'"
        )

    platforms = []
    for elem in root.findall('platform'):
        try:
            platforms.append(_parse_platform_element(elem))
        except ValueError as e:
            logger.warning(f"Skipping invalid platform: {e}")
            continue

    if not platforms:
        raise CatalogError("No valid platforms found in platform catalog")

    return PlatformCatalog(platforms)


def _parse_platform_element(elem: etree._Element) -> PlatformDefinition:
    """
    Parse a single <platform> element.

    Raises:
        ValueError: If required fields are missing
    """
    platform_id = _get_element_text(elem, 'id')
    name = _get_element_text(elem, 'name')
    extension_str = _get_element_text(elem, 'extension')

    if not all([platform_id, name, extension_str]):
        raise ValueError(
            f"Platform missing required fields (id: {platform_id}, name: {name})"
        )

    extensions = _split_extensions(extension_str)
    if not extensions:
        raise ValueError(f"Platform {platform_id} declares no valid extensions")

    bios_files = tuple((_get_element_text(elem, 'bios') or '').split())
    companions = _split_extensions(_get_element_text(elem, 'companion') or '')

    return PlatformDefinition(
        id=platform_id,
        name=name,
        extensions=extensions,
        requires_bios=bool(bios_files),
        bios_files=bios_files,
        companion_extensions=companions,
    )


def _split_extensions(value: str) -> Tuple[str, ...]:
    return tuple(
        ext.strip().lower()
        for ext in value.split()
        if ext.strip().startswith('.') and len(ext.strip()) > 1
    )


def _get_element_text(parent: etree._Element, tag: str) -> Optional[str]:
    """Get text content of child element."""
    elem = parent.find(tag)
    if elem is not None and elem.text:
        return elem.text.strip()
    return None


def load_catalog(config: dict) -> PlatformCatalog:
    """
    Build the platform catalog for a configuration.

    Uses paths.platforms_file when set, otherwise the built-in table.
    """
    platforms_file = config.get('paths', {}).get('platforms_file')
    if not platforms_file:
        return PlatformCatalog.default()

    catalog_path = Path(platforms_file).expanduser()
    if not catalog_path.is_absolute():
        base = config.get('paths', {}).get('base') or '.'
        catalog_path = Path(base).expanduser() / catalog_path

    catalog = parse_platforms_xml(catalog_path)
    logger.info(f"Loaded {len(catalog)} platforms from {catalog_path}")
    return catalog
