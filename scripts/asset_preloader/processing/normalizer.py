"""
Format normalizer for tile maps, tilesets and sprite atlases.

Tiled documents come in two wire formats, a JSON tree (``.tmj``/``.tsj``) and
an XML tree (``.tmx``/``.tsx``). Atlases use the Starling/Sparrow
``TextureAtlas`` XML format. Each (kind, format) pair has its own decoder with
the same ``(bytes) -> schema`` signature; ``sniff_format`` picks one from the
URL alone. Decoders are pure functions and hold no state.
"""

import base64
import functools
import gzip
import json
import logging
import struct
import xml.etree.ElementTree as ET
import zlib
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import AtlasMetadataError, DocumentDecodeError, UnsupportedFormatError
from ..schema import (
    AnimationFrame, AtlasDescriptor, AtlasEntry, Layer, ObjectGroup, TileMap,
    TileMeta, TileObject, TileOffset, Tileset, TilesetRef,
)
from ..utils.paths import base_directory, strip_extension, url_extension

logger = logging.getLogger(__name__)


class DocumentKind(Enum):
    """Kinds of structured documents."""
    TILEMAP = "tile map"
    TILESET = "tileset"
    ATLAS = "atlas"


class DocumentFormat(Enum):
    """Wire formats of structured documents."""
    JSON = "json"
    XML = "xml"


FORMAT_EXTENSIONS: Dict[DocumentKind, Dict[str, DocumentFormat]] = {
    DocumentKind.TILEMAP: {
        ".tmj": DocumentFormat.JSON,
        ".json": DocumentFormat.JSON,
        ".tmx": DocumentFormat.XML,
        ".xml": DocumentFormat.XML,
    },
    DocumentKind.TILESET: {
        ".tsj": DocumentFormat.JSON,
        ".json": DocumentFormat.JSON,
        ".tsx": DocumentFormat.XML,
        ".xml": DocumentFormat.XML,
    },
    DocumentKind.ATLAS: {
        ".xml": DocumentFormat.XML,
    },
}


def sniff_format(url: str, kind: DocumentKind) -> DocumentFormat:
    """
    Select the wire format of a structured document from its URL extension.

    Raises:
        UnsupportedFormatError: If the extension is not accepted for ``kind``
    """
    extensions = FORMAT_EXTENSIONS[kind]
    document_format = extensions.get(url_extension(url))
    if document_format is None:
        raise UnsupportedFormatError(url, kind.value, tuple(extensions))
    return document_format


def resolve_relative_path(url: str) -> str:
    """Directory prefix (with trailing ``/``) for references found in the document at ``url``."""
    return base_directory(url)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _document_decoder(kind: DocumentKind):
    """Turn lookup and conversion failures of a decoder into ``DocumentDecodeError``."""
    def decorate(func: Callable[[bytes], Any]) -> Callable[[bytes], Any]:
        @functools.wraps(func)
        def wrapper(data: bytes) -> Any:
            try:
                return func(data)
            except (KeyError, TypeError, ValueError, AttributeError, struct.error, zlib.error, OSError) as e:
                raise DocumentDecodeError(f"Malformed {kind.value} document: {e!r}") from e
        return wrapper
    return decorate


def _load_json(data: bytes) -> Dict[str, Any]:
    try:
        document = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DocumentDecodeError(f"Invalid JSON document: {e}") from e
    if not isinstance(document, dict):
        raise DocumentDecodeError(f"Expected a JSON object, got {type(document).__name__}")
    return document


def _load_xml(data: bytes) -> ET.Element:
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise DocumentDecodeError(f"Invalid XML document: {e}") from e


def _optional_str(value: Optional[str]) -> Optional[str]:
    """Empty strings mean "not set" in both wire formats."""
    return value if value else None


def _xml_int(elem: ET.Element, name: str, default: Optional[int] = None) -> Optional[int]:
    value = elem.get(name)
    if value is None:
        return default
    return int(value)


def _xml_float(elem: ET.Element, name: str, default: float = 0.0) -> float:
    value = elem.get(name)
    return default if value is None else float(value)


def _xml_bool(elem: ET.Element, name: str, default: bool) -> bool:
    value = elem.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true")


def parse_csv_tile_data(text: Optional[str]) -> List[int]:
    """Flatten comma-separated tile indices (newlines allowed) into a list of gids."""
    if not text:
        return []
    return [int(token) for token in text.replace("\n", ",").split(",") if token.strip()]


def parse_base64_tile_data(text: str, compression: Optional[str] = None) -> List[int]:
    """Decode base64 tile data (little-endian uint32 gids), optionally zlib/gzip compressed."""
    raw = base64.b64decode(text.strip())
    if compression == "zlib":
        raw = zlib.decompress(raw)
    elif compression == "gzip":
        raw = gzip.decompress(raw)
    elif compression:
        raise ValueError(f"Unsupported tile data compression '{compression}'")

    if len(raw) % 4:
        raise ValueError("Base64 tile data length is not a multiple of 4 bytes")
    return list(struct.unpack(f"<{len(raw) // 4}I", raw))


def _convert_property(prop_type: str, value: Any) -> Any:
    if prop_type == "int":
        return int(value)
    if prop_type == "float":
        return float(value)
    if prop_type == "bool":
        return value if isinstance(value, bool) else str(value).lower() == "true"
    return value


# ---------------------------------------------------------------------------
# JSON decoders
# ---------------------------------------------------------------------------

def _json_properties(node: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    props = node.get("properties")
    if not props:
        return None
    # Old Tiled versions wrote properties as a plain object
    if isinstance(props, dict):
        return dict(props)
    return {p["name"]: _convert_property(p.get("type", "string"), p.get("value")) for p in props}


def _json_object(node: Dict[str, Any]) -> TileObject:
    obj = TileObject(
        id=int(node.get("id", 0)),
        x=float(node.get("x", 0)),
        y=float(node.get("y", 0)),
        width=float(node.get("width", 0)),
        height=float(node.get("height", 0)),
        rotation=float(node.get("rotation", 0)),
        visible=bool(node.get("visible", True)),
        name=_optional_str(node.get("name")),
        type=_optional_str(node.get("class") or node.get("type")),
        gid=node.get("gid"),
        properties=_json_properties(node),
    )

    if node.get("ellipse"):
        obj.shape = "ellipse"
    elif node.get("point"):
        obj.shape = "point"
    elif "polygon" in node:
        obj.shape = "polygon"
        obj.points = [(float(p["x"]), float(p["y"])) for p in node["polygon"]]
    elif "polyline" in node:
        obj.shape = "polyline"
        obj.points = [(float(p["x"]), float(p["y"])) for p in node["polyline"]]

    return obj


def _json_tile(node: Dict[str, Any]) -> TileMeta:
    tile = TileMeta(
        id=int(node["id"]),
        type=_optional_str(node.get("class") or node.get("type")),
        properties=_json_properties(node),
    )

    group = node.get("objectgroup")
    if group is not None:
        tile.object_group = ObjectGroup(
            objects=[_json_object(o) for o in group.get("objects", [])],
            draw_order=_optional_str(group.get("draworder")),
            name=_optional_str(group.get("name")),
        )

    frames = node.get("animation")
    if frames:
        tile.animation = [
            AnimationFrame(tile_id=int(f["tileid"]), duration_ms=int(f["duration"]))
            for f in frames
        ]

    return tile


def _json_tileset(node: Dict[str, Any]) -> Tileset:
    tileset = Tileset(
        name=node.get("name", ""),
        tile_width=int(node["tilewidth"]),
        tile_height=int(node["tileheight"]),
        tile_count=int(node.get("tilecount", 0)),
        columns=int(node.get("columns", 0)),
        margin=int(node.get("margin", 0)),
        spacing=int(node.get("spacing", 0)),
        image=_optional_str(node.get("image")),
        properties=_json_properties(node),
    )

    if tileset.image is not None:
        tileset.image_width = int(node.get("imagewidth", 0))
        tileset.image_height = int(node.get("imageheight", 0))

    offset = node.get("tileoffset")
    if offset is not None:
        tileset.tile_offset = TileOffset(x=int(offset.get("x", 0)), y=int(offset.get("y", 0)))

    tiles = node.get("tiles")
    if tiles:
        tileset.tiles = [_json_tile(t) for t in tiles]

    return tileset


def _json_layer_data(node: Dict[str, Any]) -> Optional[List[int]]:
    data = node.get("data")
    if data is None:
        if "chunks" in node:
            logger.debug(f"Layer '{node.get('name')}' uses chunked data, leaving data unset")
        return None
    if isinstance(data, str):
        if node.get("encoding") != "base64":
            raise ValueError(f"Unsupported layer encoding '{node.get('encoding')}'")
        return parse_base64_tile_data(data, node.get("compression") or None)
    return [int(gid) for gid in data]


def _json_layers(nodes: List[Dict[str, Any]]) -> List[Layer]:
    layers: List[Layer] = []
    for node in nodes:
        layer_type = node.get("type", "tilelayer")
        layer = Layer(
            id=int(node.get("id", 0)),
            name=node.get("name", ""),
            width=int(node.get("width", 0)),
            height=int(node.get("height", 0)),
            type=layer_type,
            visible=bool(node.get("visible", True)),
            opacity=float(node.get("opacity", 1)),
            properties=_json_properties(node),
        )
        if layer_type == "tilelayer":
            layer.data = _json_layer_data(node)
        elif layer_type == "objectgroup":
            layer.objects = [_json_object(o) for o in node.get("objects", [])]

        layers.append(layer)

        # Group layers are flattened in document order
        if layer_type == "group":
            layers.extend(_json_layers(node.get("layers", [])))
    return layers


@_document_decoder(DocumentKind.TILEMAP)
def decode_tilemap_json(data: bytes) -> TileMap:
    """Decode a Tiled JSON map (``.tmj``)."""
    doc = _load_json(data)
    version = doc.get("version")

    tilemap = TileMap(
        width=int(doc["width"]),
        height=int(doc["height"]),
        tile_width=int(doc["tilewidth"]),
        tile_height=int(doc["tileheight"]),
        orientation=doc.get("orientation", "orthogonal"),
        infinite=bool(doc.get("infinite", False)),
        render_order=_optional_str(doc.get("renderorder")),
        version=None if version is None else str(version),
        properties=_json_properties(doc),
    )

    for node in doc.get("tilesets", []):
        firstgid = int(node["firstgid"])
        if node.get("source"):
            tilemap.tilesets.append(TilesetRef(firstgid=firstgid, source=node["source"]))
        else:
            tileset = _json_tileset(node)
            tileset.firstgid = firstgid
            tilemap.tilesets.append(tileset)

    tilemap.layers = _json_layers(doc.get("layers", []))
    return tilemap


@_document_decoder(DocumentKind.TILESET)
def decode_tileset_json(data: bytes) -> Tileset:
    """Decode a Tiled JSON tileset (``.tsj``)."""
    return _json_tileset(_load_json(data))


# ---------------------------------------------------------------------------
# XML decoders
# ---------------------------------------------------------------------------

def _xml_properties(elem: ET.Element) -> Optional[Dict[str, Any]]:
    props_elem = elem.find("properties")
    if props_elem is None:
        return None
    props = {}
    for prop in props_elem.findall("property"):
        # Multi-line string values are stored as element text
        value = prop.get("value", prop.text or "")
        props[prop.get("name")] = _convert_property(prop.get("type", "string"), value)
    return props or None


def _xml_points(text: str) -> List[Tuple[float, float]]:
    points = []
    for pair in text.split():
        x, y = pair.split(",")
        points.append((float(x), float(y)))
    return points


def _xml_object(elem: ET.Element) -> TileObject:
    obj = TileObject(
        id=_xml_int(elem, "id", 0),
        x=_xml_float(elem, "x"),
        y=_xml_float(elem, "y"),
        width=_xml_float(elem, "width"),
        height=_xml_float(elem, "height"),
        rotation=_xml_float(elem, "rotation"),
        visible=_xml_bool(elem, "visible", True),
        name=_optional_str(elem.get("name")),
        type=_optional_str(elem.get("class") or elem.get("type")),
        gid=_xml_int(elem, "gid"),
        properties=_xml_properties(elem),
    )

    if elem.find("ellipse") is not None:
        obj.shape = "ellipse"
    elif elem.find("point") is not None:
        obj.shape = "point"
    elif (polygon := elem.find("polygon")) is not None:
        obj.shape = "polygon"
        obj.points = _xml_points(polygon.get("points", ""))
    elif (polyline := elem.find("polyline")) is not None:
        obj.shape = "polyline"
        obj.points = _xml_points(polyline.get("points", ""))

    return obj


def _xml_tile(elem: ET.Element) -> TileMeta:
    tile = TileMeta(
        id=int(elem.get("id")),
        type=_optional_str(elem.get("class") or elem.get("type")),
        properties=_xml_properties(elem),
    )

    group = elem.find("objectgroup")
    if group is not None:
        tile.object_group = ObjectGroup(
            objects=[_xml_object(o) for o in group.findall("object")],
            draw_order=_optional_str(group.get("draworder")),
            name=_optional_str(group.get("name")),
        )

    animation = elem.find("animation")
    if animation is not None:
        frames = [
            AnimationFrame(tile_id=int(f.get("tileid")), duration_ms=int(f.get("duration")))
            for f in animation.findall("frame")
        ]
        if frames:
            tile.animation = frames

    return tile


def _xml_tileset(elem: ET.Element) -> Tileset:
    tileset = Tileset(
        name=elem.get("name", ""),
        tile_width=int(elem.get("tilewidth")),
        tile_height=int(elem.get("tileheight")),
        tile_count=_xml_int(elem, "tilecount", 0),
        columns=_xml_int(elem, "columns", 0),
        margin=_xml_int(elem, "margin", 0),
        spacing=_xml_int(elem, "spacing", 0),
        properties=_xml_properties(elem),
    )

    image = elem.find("image")
    if image is not None and image.get("source"):
        tileset.image = image.get("source")
        tileset.image_width = _xml_int(image, "width", 0)
        tileset.image_height = _xml_int(image, "height", 0)

    offset = elem.find("tileoffset")
    if offset is not None:
        tileset.tile_offset = TileOffset(x=_xml_int(offset, "x", 0), y=_xml_int(offset, "y", 0))

    tiles = [_xml_tile(t) for t in elem.findall("tile")]
    if tiles:
        tileset.tiles = tiles

    return tileset


def _xml_layer_data(elem: ET.Element) -> Optional[List[int]]:
    data = elem.find("data")
    if data is None:
        return None
    if data.find("chunk") is not None:
        logger.debug(f"Layer '{elem.get('name')}' uses chunked data, leaving data unset")
        return None

    encoding = data.get("encoding")
    if encoding == "csv":
        return parse_csv_tile_data(data.text)
    if encoding == "base64":
        return parse_base64_tile_data(data.text or "", data.get("compression"))
    if encoding is None:
        return [_xml_int(tile, "gid", 0) for tile in data.findall("tile")]
    raise ValueError(f"Unsupported layer encoding '{encoding}'")


_XML_LAYER_TYPES = {
    "layer": "tilelayer",
    "objectgroup": "objectgroup",
    "imagelayer": "imagelayer",
    "group": "group",
}


def _xml_layers(parent: ET.Element) -> List[Layer]:
    layers: List[Layer] = []
    for elem in parent:
        layer_type = _XML_LAYER_TYPES.get(elem.tag)
        if layer_type is None:
            continue

        layer = Layer(
            id=_xml_int(elem, "id", 0),
            name=elem.get("name", ""),
            width=_xml_int(elem, "width", 0),
            height=_xml_int(elem, "height", 0),
            type=layer_type,
            visible=_xml_bool(elem, "visible", True),
            opacity=_xml_float(elem, "opacity", 1.0),
            properties=_xml_properties(elem),
        )
        if layer_type == "tilelayer":
            layer.data = _xml_layer_data(elem)
        elif layer_type == "objectgroup":
            layer.objects = [_xml_object(o) for o in elem.findall("object")]

        layers.append(layer)

        if layer_type == "group":
            layers.extend(_xml_layers(elem))
    return layers


@_document_decoder(DocumentKind.TILEMAP)
def decode_tilemap_xml(data: bytes) -> TileMap:
    """Decode a Tiled XML map (``.tmx``)."""
    root = _load_xml(data)
    if root.tag != "map":
        raise DocumentDecodeError(f"Expected <map> root element, got <{root.tag}>")

    tilemap = TileMap(
        width=int(root.get("width")),
        height=int(root.get("height")),
        tile_width=int(root.get("tilewidth")),
        tile_height=int(root.get("tileheight")),
        orientation=root.get("orientation", "orthogonal"),
        infinite=_xml_bool(root, "infinite", False),
        render_order=_optional_str(root.get("renderorder")),
        version=root.get("version"),
        properties=_xml_properties(root),
    )

    for elem in root.findall("tileset"):
        firstgid = int(elem.get("firstgid"))
        if elem.get("source"):
            tilemap.tilesets.append(TilesetRef(firstgid=firstgid, source=elem.get("source")))
        else:
            tileset = _xml_tileset(elem)
            tileset.firstgid = firstgid
            tilemap.tilesets.append(tileset)

    tilemap.layers = _xml_layers(root)
    return tilemap


@_document_decoder(DocumentKind.TILESET)
def decode_tileset_xml(data: bytes) -> Tileset:
    """Decode a Tiled XML tileset (``.tsx``)."""
    root = _load_xml(data)
    if root.tag != "tileset":
        raise DocumentDecodeError(f"Expected <tileset> root element, got <{root.tag}>")
    return _xml_tileset(root)


@_document_decoder(DocumentKind.ATLAS)
def decode_atlas_xml(data: bytes) -> AtlasDescriptor:
    """
    Decode a ``TextureAtlas`` document.

    Raises:
        AtlasMetadataError: If the ``imagePath`` attribute is missing
    """
    root = _load_xml(data)
    image_path = root.get("imagePath")
    if not image_path:
        raise AtlasMetadataError("Atlas metadata is missing the 'imagePath' attribute")

    descriptor = AtlasDescriptor(
        image_path=image_path,
        width=_xml_int(root, "width"),
        height=_xml_int(root, "height"),
    )

    for sub_texture in root:
        if sub_texture.tag != "SubTexture":
            logger.warning(f"Expected 'SubTexture' tag, got {sub_texture.tag!r}. Skipping.")
            continue

        name, x, y, w, h = (
            sub_texture.get(k) for k in ("name", "x", "y", "width", "height")
        )
        if name is None or any(v is None for v in (x, y, w, h)):
            logger.warning(f"{(name, x, y, w, h)} Invalid attributes for SubTexture entry. Skipping.")
            continue

        descriptor.entries.append(AtlasEntry(
            name=strip_extension(name), x=int(x), y=int(y), width=int(w), height=int(h),
        ))

    return descriptor


DECODERS: Dict[Tuple[DocumentKind, DocumentFormat], Callable[[bytes], Any]] = {
    (DocumentKind.TILEMAP, DocumentFormat.JSON): decode_tilemap_json,
    (DocumentKind.TILEMAP, DocumentFormat.XML): decode_tilemap_xml,
    (DocumentKind.TILESET, DocumentFormat.JSON): decode_tileset_json,
    (DocumentKind.TILESET, DocumentFormat.XML): decode_tileset_xml,
    (DocumentKind.ATLAS, DocumentFormat.XML): decode_atlas_xml,
}


def decode_document(data: bytes, url: str, kind: DocumentKind) -> Any:
    """Decode ``data`` with the decoder selected by the extension of ``url``."""
    return DECODERS[(kind, sniff_format(url, kind))](data)


def normalize_tilemap(data: bytes, url: str) -> TileMap:
    return decode_document(data, url, DocumentKind.TILEMAP)


def normalize_tileset(data: bytes, url: str) -> Tileset:
    return decode_document(data, url, DocumentKind.TILESET)


def normalize_atlas(data: bytes, url: str) -> AtlasDescriptor:
    return decode_document(data, url, DocumentKind.ATLAS)
