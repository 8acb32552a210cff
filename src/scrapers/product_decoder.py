# src/scrapers/product_decoder.py

"""Decode the bootstrap JSON fragment into :class:`Product` records."""

import json
from dataclasses import dataclass
from typing import Any, cast
from urllib.parse import urlsplit

from src.config.settings import Settings
from src.models.product import Product
from src.scrapers.errors import DecodeError


@dataclass(frozen=True)
class Tile:
    """One raw product entry of the ``tiles`` array, shape-checked."""

    part_number: str
    title: str
    product_details_url: str
    seo_price: float
    original_product_amount: float
    image_src: str
    refurb_clear_model: str = ""
    dimension_color: str = ""
    dimension_capacity: str = ""


# ------------------------------------------------------------------
# Shape helpers: missing keys default, wrong types fail fast
# ------------------------------------------------------------------


def _obj(value: object, path: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError("expected an object", path)
    return cast(dict[str, Any], value)


def _str(obj: dict[str, Any], key: str, path: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError("expected a string", f"{path}.{key}")
    return value


def _num(obj: dict[str, Any], key: str, path: str) -> float:
    value = obj.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError("expected a number", f"{path}.{key}")
    return float(value)


def parse_tile(raw: object, path: str) -> Tile:
    """Validate one tile object and flatten it into a :class:`Tile`."""
    if raw is None:
        raise DecodeError("expected an object", path)
    tile = _obj(raw, path)
    filters = _obj(tile.get("filters"), f"{path}.filters")
    dims_path = f"{path}.filters.dimensions"
    dims = _obj(filters.get("dimensions"), dims_path)
    price = _obj(tile.get("price"), f"{path}.price")
    image = _obj(tile.get("image"), f"{path}.image")
    src_set = _obj(image.get("srcSet"), f"{path}.image.srcSet")
    return Tile(
        part_number=_str(tile, "partNumber", path),
        title=_str(tile, "title", path),
        product_details_url=_str(tile, "productDetailsUrl", path),
        seo_price=_num(price, "seoPrice", f"{path}.price"),
        original_product_amount=_num(
            price, "originalProductAmount", f"{path}.price"
        ),
        image_src=_str(src_set, "src", f"{path}.image.srcSet"),
        refurb_clear_model=_str(dims, "refurbClearModel", dims_path),
        dimension_color=_str(dims, "dimensionColor", dims_path),
        dimension_capacity=_str(dims, "dimensionCapacity", dims_path),
    )


def parse_tiles(fragment: str) -> list[Tile]:
    """Parse the fragment and return its shape-checked tiles.

    Raises:
        DecodeError: malformed JSON or a schema mismatch.
    """
    try:
        data: object = json.loads(fragment)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"unmarshalling json: {exc}") from exc

    root = _obj(data, "$")
    raw_tiles: object = root.get("tiles")
    if raw_tiles is None:
        return []
    if not isinstance(raw_tiles, list):
        raise DecodeError("expected an array", "$.tiles")
    items = cast(list[object], raw_tiles)
    return [
        parse_tile(item, f"$.tiles[{i}]")
        for i, item in enumerate(items)
    ]


# ------------------------------------------------------------------
# Field derivation
# ------------------------------------------------------------------


def strip_query(url: str) -> str:
    """Drop everything from the first ``?`` onwards."""
    return url.split("?", 1)[0]


def name_from_url(url: str, prefix: str = Settings.NAME_PREFIX) -> str:
    """Turn ``.../Refurbished-iPad-Pro-11?x=1`` into ``iPad Pro 11``."""
    path = urlsplit(strip_query(url)).path
    slug = path.rstrip("/").rsplit("/", 1)[-1]
    return slug.removeprefix(prefix).replace("-", " ")


def to_product(tile: Tile, locale: str, category: str) -> Product:
    """Normalise a tile; prices are kept verbatim even when equal."""
    return Product(
        id=tile.part_number,
        name=tile.title or name_from_url(tile.product_details_url),
        price=tile.seo_price,
        original_price=tile.original_product_amount,
        family=tile.refurb_clear_model,
        color=tile.dimension_color,
        capacity=tile.dimension_capacity,
        image_url=strip_query(tile.image_src),
        store_url=strip_query(tile.product_details_url),
        locale=locale,
        category=category,
    )


def decode(
    fragment: str, locale: str = "", category: str = ""
) -> list[Product]:
    """Decode a bootstrap fragment into one Product per tile.

    No field-level validation is performed: empty ids or negative
    prices pass through.  A fragment without tiles yields ``[]``.
    """
    return [
        to_product(tile, locale, category)
        for tile in parse_tiles(fragment)
    ]
