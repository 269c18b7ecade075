"""
Search, filter and sort predicates for demand boards and the marketplace.

All matching is case-insensitive substring matching. Sorts are stable so
equal keys keep their prior relative order.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from .entities import DemandRequest, Product, ProductCategory, RequestStatus, User


class DemandFilter(str, Enum):
    """Demand board tabs."""

    ALL = "all"
    OPEN = "open"
    MINE = "mine"
    CAN_FULFILL = "canFulfill"


class ProductSortOption(str, Enum):
    """Marketplace sort orders."""

    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_HIGH = "priceHigh"
    PRICE_LOW = "priceLow"
    POPULAR = "popular"

    @property
    def display_name(self) -> str:
        return {
            ProductSortOption.NEWEST: "Newest First",
            ProductSortOption.OLDEST: "Oldest First",
            ProductSortOption.PRICE_HIGH: "Price: High to Low",
            ProductSortOption.PRICE_LOW: "Price: Low to High",
            ProductSortOption.POPULAR: "Most Popular",
        }[self]


def matches_text(needle: str, *haystacks: Optional[str]) -> bool:
    """True when the needle is blank or occurs in any haystack, ignoring case."""
    needle = (needle or "").strip().casefold()
    if not needle:
        return True
    return any(needle in hay.casefold() for hay in haystacks if hay)


def filter_demands(
    demands: Iterable[DemandRequest],
    current_user: User,
    search: str = "",
    demand_filter: DemandFilter = DemandFilter.ALL,
) -> List[DemandRequest]:
    """
    Apply the demand board search and tab filter.

    ``CAN_FULFILL`` narrows to open demands for farmers only; for any other
    role it leaves the list as ``ALL`` would.

    Returns:
        Matching demands, newest first, ties broken by id
    """
    result = [
        demand
        for demand in demands
        if matches_text(search, demand.title, demand.description, demand.location)
    ]

    if demand_filter == DemandFilter.OPEN:
        result = [d for d in result if d.status == RequestStatus.OPEN]
    elif demand_filter == DemandFilter.MINE:
        result = [d for d in result if d.requester_id == current_user.id]
    elif demand_filter == DemandFilter.CAN_FULFILL and current_user.is_farmer:
        result = [d for d in result if d.status == RequestStatus.OPEN]

    result.sort(key=lambda d: d.id)
    result.sort(key=lambda d: d.created_at, reverse=True)
    return result


@dataclass
class ProductQuery:
    """Marketplace search parameters."""

    search: str = ""
    category: Optional[ProductCategory] = None
    sort: ProductSortOption = ProductSortOption.NEWEST
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    organic_only: bool = False


_SORT_KEYS = {
    ProductSortOption.NEWEST: (lambda p: p.created_at, True),
    ProductSortOption.OLDEST: (lambda p: p.created_at, False),
    ProductSortOption.PRICE_HIGH: (lambda p: p.price, True),
    ProductSortOption.PRICE_LOW: (lambda p: p.price, False),
    ProductSortOption.POPULAR: (lambda p: p.views, True),
}


def sort_products(products: Iterable[Product], sort: ProductSortOption) -> List[Product]:
    key, reverse = _SORT_KEYS[sort]
    return sorted(products, key=key, reverse=reverse)


def search_products(products: Iterable[Product], query: ProductQuery) -> List[Product]:
    """
    Filter available listings and order them.

    Text matches name, description, location or farmer name.
    """
    result = []
    for product in products:
        if not product.is_available:
            continue
        if not matches_text(
            query.search,
            product.name,
            product.description,
            product.location,
            product.farmer_name,
        ):
            continue
        if query.category is not None and product.category != query.category:
            continue
        if query.min_price is not None and product.price < query.min_price:
            continue
        if query.max_price is not None and product.price > query.max_price:
            continue
        if query.organic_only and not product.is_organic:
            continue
        result.append(product)

    return sort_products(result, query.sort)
