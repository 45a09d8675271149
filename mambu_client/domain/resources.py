"""Entity kinds and the static table mapping them to resource paths"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from mambu_client.domain.exceptions import UnknownEntityKind, UnsupportedRelationship


class EntityKind(str, Enum):
    """Family of remote resources"""

    CLIENT = "CLIENT"
    GROUP = "GROUP"
    LOAN_ACCOUNT = "LOAN_ACCOUNT"
    SAVINGS_ACCOUNT = "SAVINGS_ACCOUNT"
    LINE_OF_CREDIT = "LINE_OF_CREDIT"
    LINE_OF_CREDIT_ACCOUNTS = "LINE_OF_CREDIT_ACCOUNTS"
    LOAN_PRODUCT = "LOAN_PRODUCT"
    LOAN_TRANSACTION = "LOAN_TRANSACTION"
    LOAN_TRANCHE = "LOAN_TRANCHE"
    INVESTOR_FUND = "INVESTOR_FUND"
    GUARANTY = "GUARANTY"
    BRANCH = "BRANCH"
    USER = "USER"


@dataclass(frozen=True)
class ResourceInfo:
    """URL path segment and identity field of one entity kind"""

    path: str
    identity_field: str = "encoded_key"
    collection_key: Optional[str] = None  # wrapper key when sent as a replaced collection

    @property
    def wire_collection_key(self) -> str:
        return self.collection_key or self.path


class ResourceRegistry:
    """
    Read-only lookup of entity kinds.

    Built once at startup and handed to the engine; the tables are wrapped
    in immutable views so concurrent callers can share one instance.
    """

    def __init__(
        self,
        resources: Mapping[EntityKind, ResourceInfo],
        relationships: Iterable[Tuple[EntityKind, EntityKind]] = (),
    ):
        self._resources: Mapping[EntityKind, ResourceInfo] = MappingProxyType(dict(resources))
        self._relationships: FrozenSet[Tuple[EntityKind, EntityKind]] = frozenset(relationships)

        for owner, owned in self._relationships:
            self.resource_for(owner)
            self.resource_for(owned)

    @property
    def kinds(self) -> Tuple[EntityKind, ...]:
        return tuple(self._resources)

    def resource_for(self, kind: EntityKind) -> ResourceInfo:
        """
        Raises:
            UnknownEntityKind: kind is not registered
        """
        try:
            return self._resources[kind]
        except (KeyError, TypeError) as e:
            raise UnknownEntityKind(f"Entity kind is not registered: {kind!r}") from e

    def path_for(self, kind: EntityKind) -> str:
        return self.resource_for(kind).path

    def identity_field_for(self, kind: EntityKind) -> str:
        return self.resource_for(kind).identity_field

    def supports(self, owner: EntityKind, owned: EntityKind) -> bool:
        return (owner, owned) in self._relationships

    def require_relationship(self, owner: EntityKind, owned: EntityKind) -> None:
        """
        Raises:
            UnknownEntityKind: either kind is not registered
            UnsupportedRelationship: owner kind cannot own the owned kind
        """
        self.resource_for(owner)
        self.resource_for(owned)
        if not self.supports(owner, owned):
            raise UnsupportedRelationship(
                f"{EntityKind(owner).value} does not own {EntityKind(owned).value} entities"
            )


RESOURCES: Mapping[EntityKind, ResourceInfo] = MappingProxyType({
    EntityKind.CLIENT: ResourceInfo("clients"),
    EntityKind.GROUP: ResourceInfo("groups"),
    EntityKind.LOAN_ACCOUNT: ResourceInfo("loans"),
    EntityKind.SAVINGS_ACCOUNT: ResourceInfo("savings"),
    EntityKind.LINE_OF_CREDIT: ResourceInfo("linesofcredit"),
    EntityKind.LINE_OF_CREDIT_ACCOUNTS: ResourceInfo("accounts"),
    EntityKind.LOAN_PRODUCT: ResourceInfo("loanproducts"),
    EntityKind.LOAN_TRANSACTION: ResourceInfo("transactions"),
    EntityKind.LOAN_TRANCHE: ResourceInfo("tranches"),
    EntityKind.INVESTOR_FUND: ResourceInfo("funds"),
    EntityKind.GUARANTY: ResourceInfo("guarantees"),
    EntityKind.BRANCH: ResourceInfo("branches"),
    EntityKind.USER: ResourceInfo("users", identity_field="username"),
})

RELATIONSHIPS: FrozenSet[Tuple[EntityKind, EntityKind]] = frozenset({
    # Customers
    (EntityKind.CLIENT, EntityKind.LINE_OF_CREDIT),
    (EntityKind.GROUP, EntityKind.LINE_OF_CREDIT),
    (EntityKind.CLIENT, EntityKind.LOAN_ACCOUNT),
    (EntityKind.GROUP, EntityKind.LOAN_ACCOUNT),
    (EntityKind.CLIENT, EntityKind.SAVINGS_ACCOUNT),
    (EntityKind.GROUP, EntityKind.SAVINGS_ACCOUNT),
    # Lines of credit
    (EntityKind.LINE_OF_CREDIT, EntityKind.LOAN_ACCOUNT),
    (EntityKind.LINE_OF_CREDIT, EntityKind.SAVINGS_ACCOUNT),
    (EntityKind.LINE_OF_CREDIT, EntityKind.LINE_OF_CREDIT_ACCOUNTS),
    # Loan sub-collections
    (EntityKind.LOAN_ACCOUNT, EntityKind.LOAN_TRANCHE),
    (EntityKind.LOAN_ACCOUNT, EntityKind.INVESTOR_FUND),
    (EntityKind.LOAN_ACCOUNT, EntityKind.GUARANTY),
    (EntityKind.LOAN_ACCOUNT, EntityKind.LOAN_TRANSACTION),
})

DEFAULT_REGISTRY = ResourceRegistry(RESOURCES, RELATIONSHIPS)
