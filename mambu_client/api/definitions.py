"""Operation descriptors: what kind of call, on which entity, returning what"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional

from mambu_client.domain.exceptions import InvalidUrlComposition
from mambu_client.domain.resources import EntityKind


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class OperationKind(str, Enum):
    GET_ENTITY = "GET_ENTITY"
    GET_LIST = "GET_LIST"
    GET_PAGINATED_LIST = "GET_PAGINATED_LIST"
    GET_OWNED_ENTITY = "GET_OWNED_ENTITY"
    GET_OWNED_LIST = "GET_OWNED_LIST"
    POST_CREATE = "POST_CREATE"
    POST_OWNED_ENTITY = "POST_OWNED_ENTITY"
    PATCH_PARTIAL = "PATCH_PARTIAL"
    PUT_REPLACE_COLLECTION = "PUT_REPLACE_COLLECTION"
    DELETE_ENTITY = "DELETE_ENTITY"
    DELETE_OWNED_ENTITY = "DELETE_OWNED_ENTITY"
    POST_ACTION = "POST_ACTION"

    @property
    def rule(self) -> "OperationRule":
        return OPERATION_RULES[self]

    @property
    def method(self) -> HttpMethod:
        return OPERATION_RULES[self].method


class Presence(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    FORBIDDEN = "forbidden"


class OperationRule(NamedTuple):
    """What an operation kind needs from its definition and its call arguments"""

    method: HttpMethod
    primary_id: Presence
    owned_kind: Presence
    owned_id: Presence
    body: Presence
    paginated: bool = False
    collection_root: bool = False


R, O, F = Presence.REQUIRED, Presence.OPTIONAL, Presence.FORBIDDEN

OPERATION_RULES: Mapping[OperationKind, OperationRule] = MappingProxyType({
    OperationKind.GET_ENTITY: OperationRule(HttpMethod.GET, R, F, F, F),
    OperationKind.GET_LIST: OperationRule(HttpMethod.GET, F, F, F, F, paginated=True, collection_root=True),
    OperationKind.GET_PAGINATED_LIST: OperationRule(HttpMethod.GET, F, F, F, F, paginated=True, collection_root=True),
    OperationKind.GET_OWNED_ENTITY: OperationRule(HttpMethod.GET, R, R, R, F),
    OperationKind.GET_OWNED_LIST: OperationRule(HttpMethod.GET, R, R, F, F, paginated=True),
    OperationKind.POST_CREATE: OperationRule(HttpMethod.POST, F, F, F, O, collection_root=True),
    OperationKind.POST_OWNED_ENTITY: OperationRule(HttpMethod.POST, R, R, O, O),
    OperationKind.PATCH_PARTIAL: OperationRule(HttpMethod.PATCH, R, F, F, R),
    OperationKind.PUT_REPLACE_COLLECTION: OperationRule(HttpMethod.PUT, R, R, F, R),
    OperationKind.DELETE_ENTITY: OperationRule(HttpMethod.DELETE, R, F, F, F),
    OperationKind.DELETE_OWNED_ENTITY: OperationRule(HttpMethod.DELETE, R, R, R, F),
    OperationKind.POST_ACTION: OperationRule(HttpMethod.POST, R, F, F, O),
})


@dataclass(frozen=True)
class ApiDefinition:
    """
    Immutable description of one call shape.

    Built once per shape and shared; carries no per-call state. List
    results must name their element type here, it is never inferred from
    the response.
    """

    operation: OperationKind
    entity: EntityKind
    result_type: Any
    owned_entity: Optional[EntityKind] = None
    result_is_list: bool = False

    def __post_init__(self):
        rule = self.operation.rule
        if rule.owned_kind == Presence.REQUIRED and self.owned_entity is None:
            raise InvalidUrlComposition(f"{self.operation.value} requires an owned entity kind")
        if rule.owned_kind == Presence.FORBIDDEN and self.owned_entity is not None:
            raise InvalidUrlComposition(f"{self.operation.value} does not take an owned entity kind")
        if self.result_type is None:
            raise ValueError("ApiDefinition requires an explicit result type")
        if self.result_is_list and self.result_type is bool:
            raise ValueError("Boolean results cannot be declared as lists")

    @property
    def method(self) -> HttpMethod:
        return self.operation.method


@dataclass(frozen=True)
class Pagination:
    """Offset/limit; None leaves the server default in place"""

    offset: Optional[int] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class CallArguments:
    """Per-call inputs for a definition"""

    primary_id: Optional[str] = None
    owned_id: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    pagination: Optional[Pagination] = None
    body: Optional[str] = None
