from decimal import Decimal
from typing import List

from .errors import Violation

MIN_RATING = 1
MAX_RATING = 5


def _required(value, field: str) -> List[Violation]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return [Violation("required", field, "field is required")]
    return []


def validate_product(name, price) -> List[Violation]:
    violations= _required(name, "name")
    if price is None:
        violations.append(Violation("required", "price", "field is required"))
    elif Decimal(str(price)) <= 0:
        violations.append(Violation("out_of_range", "price", "must be greater than 0"))
    return violations


def validate_review(first_name, last_name, rating, product_id) -> List[Violation]:
    """Check a review's fields, returning every violation found (empty when valid)."""
    violations= _required(first_name, "first_name") + _required(last_name, "last_name")
    if rating is None:
        violations.append(Violation("required", "rating", "field is required"))
    elif isinstance(rating, bool) or not isinstance(rating, int):
        violations.append(Violation("invalid_type", "rating", "must be an integer"))
    elif not MIN_RATING <= rating <= MAX_RATING:
        violations.append(
            Violation("out_of_range", "rating", f"must be between {MIN_RATING} and {MAX_RATING}")
        )
    if product_id is None:
        violations.append(Violation("required", "product_id", "field is required"))
    return violations
