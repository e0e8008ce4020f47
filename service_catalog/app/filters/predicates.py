"""
Predicate composition for product and user searches.

Criterion factories take one optional value and return either a predicate
over a single record or ``None`` when the value is absent. An empty string
counts as absent. ``compose`` ANDs the predicates that are present, so a
search built from all-absent criteria matches every record.
"""

from decimal import Decimal
from typing import Any, Callable, Optional

Predicate = Callable[[Any], bool]


def _absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _match_all(record: Any) -> bool:
    return True


def compose(*criteria: Optional[Predicate]) -> Predicate:
    """AND together every criterion that is not ``None``."""
    present = [criterion for criterion in criteria if criterion is not None]
    if not present:
        return _match_all

    def predicate(record: Any) -> bool:
        return all(criterion(record) for criterion in present)

    return predicate


def _contains(attribute: str, value: Optional[str]) -> Optional[Predicate]:
    if _absent(value):
        return None
    needle = value.lower()

    def predicate(record: Any) -> bool:
        current = getattr(record, attribute, None)
        return current is not None and needle in current.lower()

    return predicate


def _at_least(attribute: str, bound: Any) -> Optional[Predicate]:
    if _absent(bound):
        return None

    def predicate(record: Any) -> bool:
        current = getattr(record, attribute, None)
        return current is not None and current >= bound

    return predicate


def _at_most(attribute: str, bound: Any) -> Optional[Predicate]:
    if _absent(bound):
        return None

    def predicate(record: Any) -> bool:
        current = getattr(record, attribute, None)
        return current is not None and current <= bound

    return predicate


# Products

def name_contains(name: Optional[str]) -> Optional[Predicate]:
    return _contains("name", name)


def description_contains(description: Optional[str]) -> Optional[Predicate]:
    return _contains("description", description)


def price_at_least(price: Optional[Decimal]) -> Optional[Predicate]:
    return _at_least("price", price)


def price_at_most(price: Optional[Decimal]) -> Optional[Predicate]:
    return _at_most("price", price)


def price_between(min_price: Optional[Decimal], max_price: Optional[Decimal]) -> Optional[Predicate]:
    """Inclusive price range; a missing bound leaves that side open."""
    if _absent(min_price) and _absent(max_price):
        return None
    return compose(price_at_least(min_price), price_at_most(max_price))


def stock_at_least(stock: Optional[int]) -> Optional[Predicate]:
    return _at_least("stock", stock)


def stock_at_most(stock: Optional[int]) -> Optional[Predicate]:
    return _at_most("stock", stock)


def in_stock() -> Predicate:
    return lambda product: product.stock > 0


def out_of_stock() -> Predicate:
    return lambda product: product.stock == 0


def product_search_predicate(name: Optional[str] = None,
                             min_price: Optional[Decimal] = None,
                             max_price: Optional[Decimal] = None,
                             min_stock: Optional[int] = None,
                             description: Optional[str] = None) -> Predicate:
    return compose(
        name_contains(name),
        price_between(min_price, max_price),
        stock_at_least(min_stock),
        description_contains(description),
    )


# Users

def email_contains(email: Optional[str]) -> Optional[Predicate]:
    return _contains("email", email)


def email_equals(email: Optional[str]) -> Optional[Predicate]:
    """Case-insensitive exact email match."""
    if _absent(email):
        return None
    wanted = email.lower()
    return lambda user: user.email is not None and user.email.lower() == wanted


def address_contains(address: Optional[str]) -> Optional[Predicate]:
    return _contains("address", address)


def has_address() -> Predicate:
    return lambda user: user.address is not None


def has_no_address() -> Predicate:
    return lambda user: user.address is None


def user_search_predicate(name: Optional[str] = None,
                          email: Optional[str] = None,
                          address: Optional[str] = None,
                          exact_email: bool = False) -> Predicate:
    return compose(
        name_contains(name),
        email_equals(email) if exact_email else email_contains(email),
        address_contains(address),
    )
