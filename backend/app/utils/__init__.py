"""
Utility modules for the AirSure backend.
"""

from app.utils.validation import (
    to_number,
    to_int_id,
    validate_coordinates,
    is_placeholder_key,
)
from app.utils.payload import (
    first_defined,
    first_field,
    first_of,
    field,
    extract_array,
    first_record,
)
from app.utils.errors import (
    ServiceError,
    ConfigurationError,
    UpstreamError,
    DataError,
    ApiError,
    format_http_error,
    upstream_error,
)

__all__ = [
    "to_number",
    "to_int_id",
    "validate_coordinates",
    "is_placeholder_key",
    "first_defined",
    "first_field",
    "first_of",
    "field",
    "extract_array",
    "first_record",
    "ServiceError",
    "ConfigurationError",
    "UpstreamError",
    "DataError",
    "ApiError",
    "format_http_error",
    "upstream_error",
]
