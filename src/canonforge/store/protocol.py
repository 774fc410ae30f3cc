"""Document-store boundary.

canonforge never talks to the host store directly. Everything that mutates
documents goes through an object implementing :class:`DocumentStore`, an
asynchronous CRUD interface over root documents and their embedded records,
plus a slug index per content scope. ``None`` is the unscoped world; any
other scope is the identifier of a shared content library.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from canonforge.core.exceptions import LibraryNotFoundError
from canonforge.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class DocumentHandle:
    """Reference to a document held by the store.

    Attributes:
        id: Store-assigned identifier.
        document_type: Host collection (``Actor`` or ``Item``), or the
            embedded record type for embedded handles.
        scope: Library identifier, or None for the world.
    """

    id: str
    document_type: str
    scope: str | None = None


@runtime_checkable
class DocumentStore(Protocol):
    """Asynchronous host document store.

    Errors raised by implementations propagate to the caller unmodified.
    """

    async def create(
        self,
        document_type: str,
        payload: dict[str, Any],
        *,
        scope: str | None = None,
    ) -> DocumentHandle:
        """Create a root document (with any embedded ``items``)."""
        ...

    async def update(self, handle: DocumentHandle, payload: dict[str, Any]) -> None:
        """Update a root document; keys may be dotted paths."""
        ...

    async def delete(self, handle: DocumentHandle) -> None:
        """Delete a root document."""
        ...

    async def create_embedded(
        self,
        owner: DocumentHandle,
        type_name: str,
        payloads: list[dict[str, Any]],
    ) -> list[DocumentHandle]:
        """Create embedded records; handles come back in payload order."""
        ...

    async def delete_embedded(
        self,
        owner: DocumentHandle,
        type_name: str,
        ids: list[str],
    ) -> None:
        """Delete embedded records by identifier."""
        ...

    async def find_by_slug(self, slug: str, scope: str | None = None) -> DocumentHandle | None:
        """Return the document with ``slug`` in ``scope``, if any."""
        ...

    async def has_library(self, library_id: str) -> bool:
        """Whether a shared content library with this identifier exists."""
        ...


async def resolve_existing(
    store: DocumentStore,
    slug: str,
    library_id: str | None = None,
) -> DocumentHandle | None:
    """Find the document an import should update.

    Identity is always the slug, never the name. With a library identifier
    only that library is searched; without one only the world is.

    Args:
        store: The document store.
        slug: Slug of the canonical record.
        library_id: Shared content library to search instead of the world.

    Returns:
        The matching handle, or None when the record does not exist yet.

    Raises:
        LibraryNotFoundError: If ``library_id`` names no library.
    """
    if library_id:
        if not await store.has_library(library_id):
            raise LibraryNotFoundError(
                f"Library {library_id!r} was not found",
                library_id=library_id,
            )
        handle = await store.find_by_slug(slug, scope=library_id)
    else:
        handle = await store.find_by_slug(slug, scope=None)
    logger.debug("Existing document resolved", slug=slug, scope=library_id, found=handle is not None)
    return handle


__all__ = ["DocumentHandle", "DocumentStore", "resolve_existing"]
