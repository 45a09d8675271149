"""Typed decoding of JSON response bodies"""

import json
from functools import lru_cache
from typing import Any, List

from pydantic import TypeAdapter, ValidationError

from mambu_client.domain.exceptions import ResponseDecodeError

SUCCESS_STATUS = "SUCCESS"


@lru_cache(maxsize=None)
def _adapter(element_type: Any, is_list: bool) -> TypeAdapter:
    return TypeAdapter(List[element_type] if is_list else element_type)


class ResponseDecoder:
    """Maps a raw body onto the element type declared by an ApiDefinition"""

    def decode(self, body: str, element_type: Any, is_list: bool = False) -> Any:
        """
        Decode a single object, a typed list, or a boolean status.

        Raises:
            ResponseDecodeError: malformed JSON or a shape/type mismatch
        """
        if element_type is bool:
            return self._decode_status(body)

        try:
            return _adapter(element_type, is_list).validate_json(body or "")
        except ValidationError as e:
            name = getattr(element_type, "__name__", repr(element_type))
            shape = f"List[{name}]" if is_list else name
            raise ResponseDecodeError(f"Response does not decode as {shape}: {e}") from e

    def _decode_status(self, body: str) -> bool:
        try:
            payload = json.loads(body)
        except (TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Status response is not JSON: {body!r}") from e

        if isinstance(payload, bool):
            return payload
        if isinstance(payload, dict):
            code = payload.get("returnCode")
            if type(code) is int and code == 0:
                return True
            if payload.get("returnStatus") == SUCCESS_STATUS:
                return True
        raise ResponseDecodeError(f"Unrecognized status response: {body!r}")
