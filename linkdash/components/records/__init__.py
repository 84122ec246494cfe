"""
Records component - Link hydration, validation and URL normalization.
"""

from .component import (
    hydrate_link,
    is_http_url,
    normalize_url,
    to_record,
    unique_groups,
    validate_link,
)
from .models import LinkValidationError

__all__ = [
    # Entry points
    "hydrate_link",
    "validate_link",
    "normalize_url",
    "is_http_url",
    "to_record",
    "unique_groups",
    # Models
    "LinkValidationError",
]
