"""Replace-by-resend protocol for an entity's owned sub-collection"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from mambu_client.api.definitions import ApiDefinition, CallArguments, OperationKind
from mambu_client.api.executor import ServiceExecutor
from mambu_client.domain.resources import EntityKind
from mambu_client.infrastructure.observability.metrics import record_collection_replace

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ReplacementPlan(Generic[T]):
    """What the server does with a resent collection"""

    created: List[T] = field(default_factory=list)
    updated: List[T] = field(default_factory=list)
    deleted_keys: List[str] = field(default_factory=list)

    @property
    def membership_unchanged(self) -> bool:
        return not self.created and not self.deleted_keys


def plan_replacement(
    existing: Sequence[T],
    desired: Sequence[T],
    key: Callable[[T], Optional[str]],
) -> ReplacementPlan[T]:
    """
    Classify a resent collection against the current one.

    - desired item with a key: update of the existing item with that key
    - desired item without a key: creation
    - existing key absent from the desired keys: deletion

    Order of ``desired`` is kept in created/updated; deletions follow the
    order of ``existing``.
    """
    plan: ReplacementPlan[T] = ReplacementPlan()
    submitted_keys = set()

    for item in desired:
        item_key = key(item)
        if item_key is None:
            plan.created.append(item)
        else:
            submitted_keys.add(item_key)
            plan.updated.append(item)

    for item in existing:
        item_key = key(item)
        if item_key is not None and item_key not in submitted_keys:
            plan.deleted_keys.append(item_key)

    return plan


class CollectionReplacer:
    """
    Sends the full desired state of an owned sub-collection in one PUT.

    Items with an identity key are kept and updated, items without one are
    created, and server items whose key is not resent are deleted. The
    server applies or rejects the whole set. The returned owner carries the
    server-assigned keys; use its items, not the request items, afterwards.
    """

    def __init__(
        self,
        executor: ServiceExecutor,
        owner_kind: EntityKind,
        item_kind: EntityKind,
        owner_type: Any,
    ):
        self.executor = executor
        self.item_kind = item_kind
        resource = executor.registry.resource_for(item_kind)
        self.identity_field = resource.identity_field
        self.collection_key = resource.wire_collection_key
        self.definition = ApiDefinition(
            OperationKind.PUT_REPLACE_COLLECTION,
            owner_kind,
            owner_type,
            owned_entity=item_kind,
        )

    def identity_of(self, item: BaseModel) -> Optional[str]:
        return getattr(item, self.identity_field, None)

    def encode(self, items: Sequence[BaseModel]) -> str:
        """``{"<collection>": [...]}`` with None fields dropped, so new items carry no key"""
        payload = [item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in items]
        return json.dumps({self.collection_key: payload})

    def preview(self, owner: Any, items: Sequence[BaseModel]) -> ReplacementPlan:
        """Plan the replacement against the owner's current collection"""
        current = getattr(owner, self.collection_key, None) or []
        return plan_replacement(current, items, self.identity_of)

    def replace(self, owner_id: str, items: Sequence[BaseModel]) -> Any:
        """Replace the owner's collection with ``items`` and return the refreshed owner"""
        kept = sum(1 for item in items if self.identity_of(item) is not None)
        created = len(items) - kept

        owner = self.executor.execute(
            self.definition,
            CallArguments(primary_id=owner_id, body=self.encode(items)),
        )

        logger.info(
            "Replaced owned collection",
            extra={
                "collection": self.collection_key,
                "owner_id": owner_id,
                "kept": kept,
                "created": created,
            },
        )
        record_collection_replace(self.collection_key, kept, created)
        return owner
