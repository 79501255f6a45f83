"""
Ownership-based authorization.

One algorithm serves every owned resource type: load the document through
the loader registered for its type, read the owner (or author) id and
compare it to the Principal's id. New resource types are added by
registering a loader, never by branching on the type name.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Protocol

from ..utils.logging import get_logger
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    AuthReason,
    KrishiVedhaException,
    NotFoundError,
)
from .security import Principal

logger = get_logger(__name__)

Document = Mapping[str, Any]
ResourceLoader = Callable[[str], Awaitable[Optional[Document]]]

OWNER_FIELDS = ("owner", "author")


@dataclass(frozen=True)
class ResourceReference:
    type: str
    id: str


class ResourceStore(Protocol):
    """Document lookup by collection and id. Returns ``None`` when absent."""

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Document]:
        ...


class UnknownResourceTypeError(KrishiVedhaException):
    """Raised when no loader is registered for a resource type."""

    def __init__(self, resource_type: str):
        super().__init__(
            message=f"Invalid resource type: {resource_type}",
            details={"resource_type": resource_type},
            error_code="UNKNOWN_RESOURCE_TYPE",
        )


class ResourceLoaderRegistry:
    """Closed mapping of resource type to loader, populated at startup."""

    def __init__(self):
        self._loaders: Dict[str, ResourceLoader] = {}

    def register(self, resource_type: str, loader: ResourceLoader) -> None:
        if resource_type in self._loaders:
            raise ValueError(f"A loader is already registered for '{resource_type}'")
        self._loaders[resource_type] = loader

    def loader_for(self, resource_type: str) -> ResourceLoader:
        try:
            return self._loaders[resource_type]
        except KeyError:
            raise UnknownResourceTypeError(resource_type)

    def __contains__(self, resource_type: str) -> bool:
        return resource_type in self._loaders

    @property
    def types(self) -> Iterable[str]:
        return tuple(self._loaders)

    @classmethod
    def from_store(cls, store: ResourceStore, collections: Mapping[str, str]) -> "ResourceLoaderRegistry":
        """
        Build a registry whose loaders read from one document store.

        Args:
            store: Document store
            collections: Resource type -> collection name
        """
        registry = cls()
        for resource_type, collection in collections.items():
            registry.register(resource_type, _collection_loader(store, collection))
        return registry


def _collection_loader(store: ResourceStore, collection: str) -> ResourceLoader:
    async def load(document_id: str) -> Optional[Document]:
        return await store.find_by_id(collection, document_id)

    return load


def extract_owner_id(document: Document) -> Optional[str]:
    """
    Owner id of a document.

    ``owner`` takes precedence over ``author``; either may hold the id
    directly or a nested identity object with ``_id`` or ``id``.
    """
    for field in OWNER_FIELDS:
        value = document.get(field)
        if value is None:
            continue
        if isinstance(value, Mapping):
            nested = value.get("_id") or value.get("id")
            if nested is not None:
                return str(nested)
            continue
        return str(value)
    return None


class OwnershipAuthorizer:
    """
    Authorizes mutation of owned resources.

    Existence is checked before ownership: an unknown id is NOT_FOUND for
    every caller, and only an existing resource with a different owner is
    an AUTHORIZATION failure.
    """

    def __init__(self, registry: ResourceLoaderRegistry):
        self.registry = registry

    async def authorize(self, principal: Optional[Principal], resource: ResourceReference) -> Document:
        """
        Check that ``principal`` owns ``resource``.

        Returns:
            The loaded resource document

        Raises:
            AuthenticationError: No principal
            NotFoundError: The resource does not resolve
            AuthorizationError: The resource has another owner, or none
        """
        if principal is None:
            raise AuthenticationError("Authentication required", reason=AuthReason.REQUIRED)

        loader = self.registry.loader_for(resource.type)
        document = await loader(resource.id)
        if document is None:
            raise NotFoundError(
                f"{resource.type.capitalize()} not found",
                resource_type=resource.type,
                resource_id=resource.id,
            )

        owner_id = extract_owner_id(document)
        if owner_id is None or owner_id != principal.id:
            logger.security.log_authorization(
                user_id=principal.id,
                resource_type=resource.type,
                resource_id=resource.id,
                granted=False,
                reason="owner_missing" if owner_id is None else "owner_mismatch",
            )
            raise AuthorizationError(
                "Access denied: You can only modify your own resources",
                resource_type=resource.type,
                resource_id=resource.id,
                user_id=principal.id,
            )

        logger.debug(
            "Ownership verified",
            resource_type=resource.type,
            resource_id=resource.id,
        )
        return document
