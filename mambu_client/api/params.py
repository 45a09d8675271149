"""Query string / form body encoding for request parameters"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import httpx

from mambu_client.api.definitions import Pagination
from mambu_client.utils.date_utils import format_date

# Reserved and shared wire parameter names
ACTION_KEY = "_action"
OFFSET = "offset"
LIMIT = "limit"
FULL_DETAILS = "fullDetails"
NOTES = "notes"
AMOUNT = "amount"
TYPE = "type"
DATE = "date"

Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def encode_value(value: Any) -> str:
    """Render one parameter value as the platform expects it"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class ParamsCodec:
    """Encodes ordered parameters; None values are dropped, never sent empty"""

    def items(self, params: Optional[Params]) -> list:
        if not params:
            return []
        pairs = params.items() if isinstance(params, Mapping) else params
        return [(key, encode_value(value)) for key, value in pairs if value is not None]

    def encode(self, params: Optional[Params]) -> str:
        """Encode to ``k1=v1&k2=v2`` in insertion order"""
        return str(httpx.QueryParams(self.items(params)))

    @staticmethod
    def with_pagination(params: Optional[Mapping[str, Any]], pagination: Optional[Pagination]) -> Dict[str, Any]:
        """Copy of params with offset/limit added only where they are set"""
        merged = dict(params or {})
        if pagination is not None:
            if pagination.offset is not None:
                merged[OFFSET] = pagination.offset
            if pagination.limit is not None:
                merged[LIMIT] = pagination.limit
        return merged
