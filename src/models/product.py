# src/models/product.py

"""Product data model for inter-module data flow."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Product:
    """A single refurbished product listing decoded from a store page.

    ``locale`` and ``category`` are empty when the record came from an
    explicit URL rather than a locale/category task.
    """

    id: str
    name: str
    price: float
    original_price: float
    family: str = ""
    color: str = ""
    capacity: str = ""
    image_url: str = ""
    store_url: str = ""
    locale: str = ""
    category: str = ""
