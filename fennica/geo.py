"""GeoJSON layers for maps.

Every geo-tagged entity (a POI, or one geo point of a post) is placed into
exactly one of 16 zoom buckets.  The client map renderer shows bucket ``k``
from zoom level ``k`` upwards, so the bucket count is part of the wire format.

The global projection keeps the entities themselves so that per-map views can
be derived from it by tag or by POI type without touching the content again.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import InvalidZoomError

GEO_BUCKETS = 16
MAX_ZOOM = 20
INDEX_MAP = "index"

Layers = list[list["GeoEntity"]]


@dataclass(frozen=True)
class GeoEntity:
    id: str
    lat: float
    lng: float
    zoom: float
    min_zoom: Optional[int]
    properties: dict
    tags: tuple[str, ...] = ()
    poi_type: Optional[str] = None


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_zoom(zoom: object) -> None:
    if not _is_number(zoom) or not 0 <= zoom <= MAX_ZOOM:
        raise InvalidZoomError(f"zoom must be a number between 0 and {MAX_ZOOM}, got {zoom!r}")


def bucket_for(zoom: object, min_zoom: object = None) -> int:
    if zoom is not None or min_zoom is None:
        check_zoom(zoom)
    if min_zoom is not None:
        if not _is_number(min_zoom) or int(min_zoom) != min_zoom or not 0 <= min_zoom < GEO_BUCKETS:
            raise InvalidZoomError(f"minZoom must be an integer between 0 and {GEO_BUCKETS - 1}, got {min_zoom!r}")
        return int(min_zoom)
    return min(GEO_BUCKETS - 1, max(1, int(zoom) - 4))


def check_point(point: dict, label: str) -> None:
    for key in ("lat", "lng"):
        if not _is_number(point.get(key)):
            raise InvalidZoomError(f"{label}: {key} must be a number, got {point.get(key)!r}")
    try:
        bucket_for(point.get("zoom"), point.get("minZoom"))
    except InvalidZoomError as exc:
        raise InvalidZoomError(f"{label}: {exc}") from exc


def entity_bucket(entity: GeoEntity) -> int:
    return bucket_for(entity.zoom, entity.min_zoom)


def feature(entity: GeoEntity) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [entity.lng, entity.lat]},
        "id": entity.id,
        "properties": {key: value for key, value in entity.properties.items() if value is not None},
    }


def bucketize(entities: Iterable[GeoEntity], rule: Callable[[GeoEntity], int] = entity_bucket) -> Layers:
    layers: Layers = [[] for _ in range(GEO_BUCKETS)]
    for entity in entities:
        layers[rule(entity)].append(entity)
    return layers


def to_collections(layers: Layers) -> list[dict]:
    return [{"type": "FeatureCollection", "features": [feature(entity) for entity in layer]} for layer in layers]


def project(entities: Iterable[GeoEntity], rule: Callable[[GeoEntity], int] = entity_bucket) -> list[dict]:
    return to_collections(bucketize(entities, rule))


def filter_layers(layers: Layers, map_name: str, poi_types: Iterable[str] = ()) -> Layers:
    """View of the global layers for one map: entities tagged with the map, or of one of its POI types."""
    poi_types = set(poi_types)
    return [
        [entity for entity in layer if map_name in entity.tags or (entity.poi_type and entity.poi_type in poi_types)]
        for layer in layers
    ]


def poi_entity(poi) -> GeoEntity:
    data = poi.data
    return GeoEntity(
        id=poi.name,
        lat=data["lat"],
        lng=data["lng"],
        zoom=data.get("zoom"),
        min_zoom=data.get("minZoom"),
        properties={
            "type": data.get("type"),
            "title": data.get("title"),
            "customIcon": data.get("customIcon"),
            "customIconSize": data.get("customIconSize"),
        },
        tags=tuple(poi.maps),
        poi_type=data.get("type"),
    )


def post_entities(post) -> list[GeoEntity]:
    entities = []
    for number, point in enumerate(post.geo_points):
        anchor = point.get("anchor")
        entity_id = post.name
        if anchor:
            entity_id = f"{post.name}#{anchor}"
        elif number:
            entity_id = f"{post.name}#{number}"
        entities.append(
            GeoEntity(
                id=entity_id,
                lat=point["lat"],
                lng=point["lng"],
                zoom=point.get("zoom"),
                min_zoom=point.get("minZoom"),
                properties={
                    "type": "post",
                    "post": post.name,
                    "anchor": anchor,
                    "title": point.get("title") or post.data.get("title"),
                    "subtitle": point.get("subtitle"),
                    "description": point.get("description"),
                    "titleImage": point.get("titleImage") or post.data.get("titleImage"),
                    "icon": point.get("icon"),
                },
                tags=tuple(point.get("maps") or ()),
            )
        )
    return entities


def global_entities(index) -> list[GeoEntity]:
    entities = [poi_entity(index.pois[index.poi_paths[path]]) for path in sorted(index.poi_paths)]
    for name in index.posts_ordered:
        entities.extend(post_entities(index.posts[name]))
    return entities


def map_view(index, map_item) -> list[dict]:
    if map_item.name == INDEX_MAP:
        return to_collections(index.global_layers)
    return to_collections(filter_layers(index.global_layers, map_item.name, map_item.poi_types))


def regenerate_maps(index) -> None:
    index.map_geo = {name: map_view(index, map_item) for name, map_item in index.maps.items()}


def regenerate_global(index) -> None:
    """Rebuild the unfiltered layers and every map view derived from them."""
    index.global_layers = bucketize(global_entities(index))
    regenerate_maps(index)


def poi_submap(index, name: str) -> list[dict]:
    """Layers for a place page mini-map: the POI with its siblings, or with its children for a top-level POI."""
    poi = index.pois[name]
    anchor = poi.parent or name
    anchor_path = index.path_of(anchor)
    targets = {}
    if anchor_path is not None:
        targets[anchor_path] = anchor
        for path, child in index.poi_paths.items():
            if path.startswith(anchor_path + "/"):
                targets[path] = child
    return project(poi_entity(index.pois[targets[path]]) for path in sorted(targets))


def regenerate_poi(index, name: str) -> None:
    index.poi_geo[name] = poi_submap(index, name)


def regenerate_pois(index) -> None:
    index.poi_geo = {name: poi_submap(index, name) for name in index.poi_paths.values()}
