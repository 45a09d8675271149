"""Generic request dispatch: ApiDefinition + CallArguments -> typed result"""

import json
import time
from typing import Any, Dict, Optional

from mambu_client.api.decoder import ResponseDecoder
from mambu_client.api.definitions import (
    ApiDefinition,
    CallArguments,
    OperationKind,
    Pagination,
    Presence,
)
from mambu_client.api.params import ACTION_KEY, FULL_DETAILS, ParamsCodec
from mambu_client.api.urls import UrlBuilder
from mambu_client.config import settings
from mambu_client.domain.exceptions import (
    ApiCallError,
    InvalidUrlComposition,
    ResponseDecodeError,
    TransportError,
)
from mambu_client.domain.resources import DEFAULT_REGISTRY, EntityKind, ResourceRegistry
from mambu_client.infrastructure.clients.transport import Transport, UnsuccessfulResponse
from mambu_client.infrastructure.observability.logging import log_api_call
from mambu_client.infrastructure.observability.metrics import record_api_call


def _check(presence: Presence, value: Any, what: str, operation: OperationKind) -> None:
    if presence == Presence.REQUIRED and value is None:
        raise InvalidUrlComposition(f"{operation.value} requires {what}")
    if presence == Presence.FORBIDDEN and value is not None:
        raise InvalidUrlComposition(f"{operation.value} does not take {what}")


def parse_error_payload(status_code: int, body: str) -> ApiCallError:
    """Translate a rejected response into an ApiCallError"""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        payload = None

    if isinstance(payload, dict) and "returnCode" in payload:
        try:
            code = int(payload["returnCode"])
        except (TypeError, ValueError):
            code = None
        if code is not None and not isinstance(payload["returnCode"], bool):
            message = str(payload.get("returnStatus", ""))
            if payload.get("errorSource"):
                message = f"{message} ({payload['errorSource']})"
            return ApiCallError(code, message, status_code=status_code)

    return ApiCallError(status_code, body or f"HTTP {status_code}", status_code=status_code)


class ServiceExecutor:
    """
    Turns an operation descriptor plus call arguments into one HTTP round trip.

    Shared state (registry, codec, decoder, URL builder) is read-only after
    construction, so one executor can serve concurrent callers. Every call
    is a single attempt: failures are raised, never retried or defaulted.
    """

    def __init__(
        self,
        transport: Transport,
        base_url: Optional[str] = None,
        registry: ResourceRegistry = DEFAULT_REGISTRY,
        params_codec: Optional[ParamsCodec] = None,
        decoder: Optional[ResponseDecoder] = None,
    ):
        self.transport = transport
        self.registry = registry
        self.url_builder = UrlBuilder(base_url or settings.base_url, registry)
        self.params_codec = params_codec or ParamsCodec()
        self.decoder = decoder or ResponseDecoder()

    def execute(self, definition: ApiDefinition, args: Optional[CallArguments] = None) -> Any:
        """
        Execute one call.

        Flow:
        1. Validate ids/body/pagination against the operation kind
        2. Check the owner/owned relationship (no network on failure)
        3. Build the URL, encode params, attach the body
        4. One transport round trip
        5. Decode into the declared result type

        Raises:
            InvalidUrlComposition, UnsupportedRelationship, UnknownEntityKind:
                rejected locally, nothing sent
            TransportError: network failure
            ApiCallError: platform rejected the request
            ResponseDecodeError: body does not match the declared shape
        """
        args = args or CallArguments()
        operation = definition.operation
        rule = operation.rule

        # 1. Validate
        _check(rule.primary_id, args.primary_id, "a primary id", operation)
        _check(rule.owned_id, args.owned_id, "an owned id", operation)
        _check(rule.body, args.body, "a request body", operation)
        if args.pagination is not None and not rule.paginated:
            raise InvalidUrlComposition(f"{operation.value} does not support pagination")

        params: Dict[str, Any] = dict(args.params)
        action = params.pop(ACTION_KEY, None)
        if operation == OperationKind.POST_ACTION and not action:
            raise InvalidUrlComposition("POST_ACTION requires an action name")
        if operation != OperationKind.POST_ACTION and action is not None:
            raise InvalidUrlComposition(f"{operation.value} does not take an action")

        # 2. Relationship
        if definition.owned_entity is not None:
            self.registry.require_relationship(definition.entity, definition.owned_entity)

        # 3. URL, params, body
        url = self.url_builder.build(
            definition.entity,
            primary_id=args.primary_id,
            owned_kind=definition.owned_entity,
            owned_id=args.owned_id,
            action=action,
            collection_root=rule.collection_root,
        )
        encoded = self.params_codec.encode(self.params_codec.with_pagination(params, args.pagination))

        # 4-5. Round trip and decode
        return self._send(definition, url, encoded, args.body)

    def _send(self, definition: ApiDefinition, url: str, encoded: str, body: Optional[str]) -> Any:
        method = definition.method.value
        operation = definition.operation.value
        outcome = "error"
        start_time = time.time()

        try:
            raw = self.transport.execute(url, definition.method, params=encoded, body=body)
            result = self.decoder.decode(raw, definition.result_type, definition.result_is_list)
            outcome = "success"
            return result

        except UnsuccessfulResponse as e:
            outcome = "api_error"
            raise parse_error_payload(e.status_code, e.body) from e
        except TransportError:
            outcome = "transport_error"
            raise
        except ResponseDecodeError:
            outcome = "decode_error"
            raise

        finally:
            duration = time.time() - start_time
            record_api_call(method, operation, outcome, duration)
            log_api_call(operation, method, url, outcome, duration * 1000)

    # Convenience shapes used across services

    def get_entity(self, kind: EntityKind, entity_id: str, result_type: Any, full_details: bool = False) -> Any:
        definition = ApiDefinition(OperationKind.GET_ENTITY, kind, result_type)
        params = {FULL_DETAILS: True} if full_details else {}
        return self.execute(definition, CallArguments(primary_id=entity_id, params=params))

    def get_paginated_list(
        self,
        kind: EntityKind,
        result_type: Any,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> list:
        definition = ApiDefinition(OperationKind.GET_PAGINATED_LIST, kind, result_type, result_is_list=True)
        return self.execute(
            definition,
            CallArguments(params=params or {}, pagination=Pagination(offset, limit)),
        )

    def get_owned_entities(
        self,
        owner_kind: EntityKind,
        owner_id: str,
        owned_kind: EntityKind,
        result_type: Any,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list:
        """
        List entities owned by another, e.g. GET clients/{id}/linesofcredit.

        Raises:
            UnsupportedRelationship: owner kind cannot own owned kind
        """
        # Fail before constructing anything network-bound
        self.registry.require_relationship(owner_kind, owned_kind)
        definition = ApiDefinition(
            OperationKind.GET_OWNED_LIST, owner_kind, result_type, owned_entity=owned_kind, result_is_list=True
        )
        return self.execute(
            definition,
            CallArguments(primary_id=owner_id, pagination=Pagination(offset, limit)),
        )

    def delete_entity(self, kind: EntityKind, entity_id: str) -> bool:
        definition = ApiDefinition(OperationKind.DELETE_ENTITY, kind, bool)
        return self.execute(definition, CallArguments(primary_id=entity_id))

    def delete_owned_entity(
        self, owner_kind: EntityKind, owner_id: str, owned_kind: EntityKind, owned_id: str
    ) -> bool:
        self.registry.require_relationship(owner_kind, owned_kind)
        definition = ApiDefinition(OperationKind.DELETE_OWNED_ENTITY, owner_kind, bool, owned_entity=owned_kind)
        return self.execute(definition, CallArguments(primary_id=owner_id, owned_id=owned_id))
