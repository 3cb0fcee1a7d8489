"""
Product extraction from embedded JSON-LD structured data.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

from bs4 import BeautifulSoup

from ..logger import get_logger
from ..models import ProductRecord, compute_percent_off
from ..utils.text_cleaning import clean_product_name
from ..utils.validators import parse_price

logger = get_logger(__name__)

STRUCTURED_DATA_CONFIDENCE = 95


@dataclass(slots=True)
class StructuredProduct:
    """A usable (name, image, price) triple read from one Product entity."""
    name: str
    image_url: str
    sale_price: float
    original_price: Optional[float] = None


def iter_jsonld_entities(data: Any) -> Iterator[dict]:
    """Recursively iterate through JSON-LD data structures, unwrapping @graph containers."""
    if isinstance(data, dict):
        yield data
        graph = data.get("@graph")
        if isinstance(graph, list):
            for item in graph:
                yield from iter_jsonld_entities(item)
        elif isinstance(graph, dict):
            yield from iter_jsonld_entities(graph)
    elif isinstance(data, list):
        for item in data:
            yield from iter_jsonld_entities(item)


def is_product_entity(entity: dict) -> bool:
    obj_type = entity.get("@type", "")
    if isinstance(obj_type, list):
        types = {str(t).lower() for t in obj_type}
    else:
        types = {str(obj_type).lower()}
    return "product" in types


def normalize_image(image: Any) -> Optional[str]:
    """
    Reduce the array/object/string forms of schema.org `image` to one absolute URL.

    Examples:
        >>> normalize_image([{"url": "https://cdn.example.net/a.jpg"}, "https://cdn.example.net/b.jpg"])
        'https://cdn.example.net/a.jpg'
        >>> normalize_image("/relative.jpg")
    """
    if isinstance(image, list):
        image = image[0] if image else None

    if isinstance(image, dict):
        image = image.get("url") or image.get("contentUrl")

    if not isinstance(image, str):
        return None

    image = image.strip()
    if not image.lower().startswith(("http://", "https://")):
        return None
    return image


def _first_offer(offers: Any) -> Optional[dict]:
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    return offers if isinstance(offers, dict) else None


def read_offer_prices(offers: Any) -> Tuple[Optional[float], Optional[float]]:
    """
    Return (current_price, compare_price) from a schema.org offers value.

    The compare price is the "was" price when the markup carries one.
    """
    offer = _first_offer(offers)
    if offer is None:
        return None, None

    current = parse_price(offer.get("price"))
    if current is None:
        current = parse_price(offer.get("lowPrice"))

    compare = parse_price(offer.get("highPrice"))
    if compare is None:
        spec = offer.get("priceSpecification")
        if isinstance(spec, list):
            spec = spec[0] if spec else None
        if isinstance(spec, dict):
            compare = parse_price(spec.get("price"))

    return current, compare


def product_from_entity(entity: dict) -> Optional[StructuredProduct]:
    """Build a StructuredProduct from a Product entity, or None if the triple is incomplete."""
    name = clean_product_name(entity.get("name"))
    image_url = normalize_image(entity.get("image"))
    current, compare = read_offer_prices(entity.get("offers") or entity.get("Offers"))

    if not (name and image_url and current is not None):
        return None

    if compare is not None and compare > current:
        return StructuredProduct(name, image_url, sale_price=current, original_price=compare)

    if compare is not None and compare < current:
        logger.debug("JSON-LD Unusual: offers.price > highPrice, swapping them")
        return StructuredProduct(name, image_url, sale_price=compare, original_price=current)

    return StructuredProduct(name, image_url, sale_price=current)


def extract_structured_product(html: str, url: str) -> Optional[ProductRecord]:
    """
    Extract a ProductRecord from JSON-LD Product markup.

    Blocks that fail to parse are skipped. Returns None (not a failure) when
    no block yields a usable (name, image, price) triple.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    if not scripts:
        return None

    logger.debug("JSON-LD Found %d script blocks", len(scripts))

    for script in scripts:
        raw = (script.string or script.get_text() or "").strip()
        if not raw:
            continue

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.debug("JSON-LD parsing failed: %s", e)
            continue

        for entity in iter_jsonld_entities(data):
            if not is_product_entity(entity):
                continue

            found = product_from_entity(entity)
            if found is None:
                logger.debug("JSON-LD Product entity incomplete: %s", str(entity.get("name"))[:50])
                continue

            record = ProductRecord(
                name=found.name,
                image_url=found.image_url,
                original_price=found.original_price,
                sale_price=found.sale_price,
                percent_off=compute_percent_off(found.original_price, found.sale_price),
                confidence=STRUCTURED_DATA_CONFIDENCE,
                url=url,
            )
            logger.info(
                "JSON-LD Extracted %s (sale=%.2f, original=%s)",
                record.name[:50], record.sale_price, record.original_price,
            )
            return record

    return None
