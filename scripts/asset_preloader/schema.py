"""
Canonical in-memory schema for tile maps, tilesets and sprite atlases.

Both the JSON (``.tmj``/``.tsj``) and the XML (``.tmx``/``.tsx``/``TextureAtlas``)
documents are normalized into these dataclasses. Optional members default to
``None`` and are left out of ``to_dict()`` output entirely.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Dict, List, Optional, Any, Union


def _compact(value: Any) -> Any:
    """Recursively convert dataclasses to dicts, dropping ``None`` members."""
    if is_dataclass(value) and not isinstance(value, type):
        result = {}
        for f in fields(value):
            member = getattr(value, f.name)
            if member is None:
                continue
            result[f.name] = _compact(member)
        return result
    if isinstance(value, (list, tuple)):
        return [_compact(item) for item in value]
    if isinstance(value, dict):
        return {key: _compact(item) for key, item in value.items()}
    return value


class SchemaRecord:
    """Mixin giving canonical records a compact dict view."""

    def to_dict(self) -> Dict[str, Any]:
        return _compact(self)


@dataclass
class AnimationFrame(SchemaRecord):
    """One frame of a tile animation."""
    tile_id: int
    duration_ms: int


@dataclass
class TileObject(SchemaRecord):
    """
    Object inside a tile's collision group or an object layer.

    ``shape`` is one of ``rectangle`` (default), ``ellipse``, ``point`` or
    ``polygon``; polygons carry their vertices in ``points``.
    """
    id: int
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0
    visible: bool = True
    shape: str = "rectangle"
    points: Optional[List[tuple[float, float]]] = None
    name: Optional[str] = None
    type: Optional[str] = None
    gid: Optional[int] = None
    properties: Optional[Dict[str, Any]] = None


@dataclass
class ObjectGroup(SchemaRecord):
    """Ordered collection of objects, e.g. collision shapes of a tile."""
    objects: List[TileObject] = field(default_factory=list)
    draw_order: Optional[str] = None
    name: Optional[str] = None


@dataclass
class TileMeta(SchemaRecord):
    """Per-tile metadata of a tileset."""
    id: int
    object_group: Optional[ObjectGroup] = None
    animation: Optional[List[AnimationFrame]] = None
    type: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None


@dataclass
class TileOffset(SchemaRecord):
    x: int = 0
    y: int = 0


@dataclass
class Tileset(SchemaRecord):
    """Fully resolved tileset."""
    name: str
    tile_width: int
    tile_height: int
    tile_count: int = 0
    columns: int = 0
    margin: int = 0
    spacing: int = 0
    image: Optional[str] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    tile_offset: Optional[TileOffset] = None
    tiles: Optional[List[TileMeta]] = None
    firstgid: Optional[int] = None
    source: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None

    def get_tile(self, local_id: int) -> Optional[TileMeta]:
        """Return metadata of a local tile id, if the tileset has any."""
        for tile in self.tiles or ():
            if tile.id == local_id:
                return tile
        return None

    def contains_gid(self, gid: int) -> bool:
        """Check whether a global tile id belongs to this tileset."""
        if self.firstgid is None:
            return False
        return self.firstgid <= gid < self.firstgid + self.tile_count


@dataclass
class TilesetRef(SchemaRecord):
    """
    Unresolved reference to an external tileset.

    Replaced in ``TileMap.tilesets`` by the resolved ``Tileset`` once the
    dependent TileSet load completes.
    """
    firstgid: int
    source: str


@dataclass
class Layer(SchemaRecord):
    """Map layer. ``data`` is the row-major gid grid of tile layers, else ``None``."""
    id: int
    name: str
    width: int = 0
    height: int = 0
    data: Optional[List[int]] = None
    type: str = "tilelayer"
    visible: bool = True
    opacity: float = 1.0
    objects: Optional[List[TileObject]] = None
    properties: Optional[Dict[str, Any]] = None


@dataclass
class TileMap(SchemaRecord):
    """Tile map description."""
    width: int
    height: int
    tile_width: int
    tile_height: int
    orientation: str = "orthogonal"
    infinite: bool = False
    render_order: Optional[str] = None
    version: Optional[str] = None
    tilesets: List[Union[Tileset, TilesetRef]] = field(default_factory=list)
    layers: List[Layer] = field(default_factory=list)
    properties: Optional[Dict[str, Any]] = None

    @property
    def unresolved_tilesets(self) -> List[TilesetRef]:
        """Tileset stubs that have not been replaced by a loaded tileset yet."""
        return [ts for ts in self.tilesets if isinstance(ts, TilesetRef)]

    def get_layer(self, name: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def tileset_for_gid(self, gid: int) -> Optional[Tileset]:
        """Find the resolved tileset a global tile id belongs to."""
        for tileset in self.tilesets:
            if isinstance(tileset, Tileset) and tileset.contains_gid(gid):
                return tileset
        return None


@dataclass
class AtlasEntry(SchemaRecord):
    """Named rectangle of a sprite atlas; ``name`` has no file extension."""
    name: str
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Crop box (left, upper, right, lower)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class AtlasDescriptor(SchemaRecord):
    """Parsed atlas metadata: backing image path plus named rectangles."""
    image_path: str
    entries: List[AtlasEntry] = field(default_factory=list)
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class AudioClip(SchemaRecord):
    """Fetched, undecoded audio resource."""
    url: str
    data: bytes
    format: str

    @property
    def size(self) -> int:
        return len(self.data)
