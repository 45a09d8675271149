"""URL composition for entity, owned-entity and action endpoints"""

from typing import Optional
from urllib.parse import quote

from mambu_client.domain.exceptions import InvalidUrlComposition
from mambu_client.domain.resources import EntityKind, ResourceRegistry


def _segment(value: str, name: str) -> str:
    if not value:
        raise InvalidUrlComposition(f"{name} must not be empty")
    # One path segment per id: '/' and friends are percent-encoded
    return quote(str(value), safe="")


class UrlBuilder:
    """
    Builds ``base/primary[/id][/owned[/ownedId]][/action]``.

    Only a bare collection root (no ids, no owned kind, no action) may end
    with a trailing slash, and only when asked for.
    """

    def __init__(self, base_url: str, registry: ResourceRegistry):
        self.base_url = base_url.rstrip("/")
        self.registry = registry

    def build(
        self,
        primary_kind: EntityKind,
        primary_id: Optional[str] = None,
        owned_kind: Optional[EntityKind] = None,
        owned_id: Optional[str] = None,
        action: Optional[str] = None,
        collection_root: bool = False,
    ) -> str:
        """
        Raises:
            UnknownEntityKind: a kind is not registered
            InvalidUrlComposition: owned id without owned kind, owned kind or
                action without a primary id, or a collection root with ids
        """
        if owned_id is not None and owned_kind is None:
            raise InvalidUrlComposition("Owned id supplied without an owned entity kind")
        if primary_id is None and (owned_kind is not None or action is not None):
            raise InvalidUrlComposition("Owned entities and actions require a primary id")
        if collection_root and (primary_id is not None or owned_kind is not None or action is not None):
            raise InvalidUrlComposition("A collection root URL takes no ids, owned kind or action")

        parts = [self.base_url, self.registry.path_for(primary_kind)]
        if primary_id is not None:
            parts.append(_segment(primary_id, "Primary id"))
        if owned_kind is not None:
            parts.append(self.registry.path_for(owned_kind))
            if owned_id is not None:
                parts.append(_segment(owned_id, "Owned id"))
        if action is not None:
            parts.append(_segment(action, "Action"))

        url = "/".join(parts)
        return url + "/" if collection_root else url
