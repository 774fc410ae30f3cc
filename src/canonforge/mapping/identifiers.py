"""Stable identifier allocation.

Embedded records need host identifiers before they exist in the store, and
re-synthesizing the same logical sub-record must reuse the same identifier
so that a re-import updates in place instead of duplicating. An
:class:`IdentifierAllocator` caches one identifier per content position key.
Allocators are request-scoped: create one per synthesis run and pass it in
explicitly.

By default an identifier is derived from a BLAKE2b digest of the key (plus
an optional salt), so a fresh allocator reproduces the identifiers of an
earlier run. Digest mode is the default and stands in for a cryptographic
source; pass ``rng=secrets.SystemRandom()`` to draw identifiers from the
operating system instead, or a seeded :class:`random.Random` for
reproducible draws in tests.

Example:
    >>> allocator = IdentifierAllocator()
    >>> key = position_key("goblin-warrior", "strikes", 0)
    >>> allocator.identifier_for(key) == IdentifierAllocator().identifier_for(key)
    True
"""

from __future__ import annotations

import hashlib
import random
import string

from canonforge.core.logging import get_logger


logger = get_logger(__name__)

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
"""Characters the host accepts in document identifiers."""

MAX_IDENTIFIER_LENGTH = 64


def position_key(owner: str, section: str, index: int, *extra: object) -> str:
    """Build the content-position key of an embedded record.

    Args:
        owner: Slug (or name) of the owning record.
        section: Section the sub-record belongs to (``strikes``, ``spells``...).
        index: Position of the sub-record within its section.
        *extra: Further path parts, e.g. a nested spell index or a
            damage-roll index.

    Returns:
        ``"<owner>/<section>/<index>[/<extra>...]"``.
    """
    return "/".join([owner, section, str(index), *(str(part) for part in extra)])


class IdentifierAllocator:
    """Cache of stable identifiers keyed by content position.

    Args:
        length: Number of characters per identifier.
        rng: Optional random source, e.g. ``secrets.SystemRandom()``. When
            given, identifiers are draws from it instead of key digests.
        salt: Mixed into every digest; allocators with different salts
            produce unrelated identifiers for the same keys.

    Raises:
        ValueError: If ``length`` is outside 1..64.
    """

    def __init__(
        self,
        length: int = 16,
        rng: random.Random | None = None,
        *,
        salt: str = "",
    ) -> None:
        if not 1 <= length <= MAX_IDENTIFIER_LENGTH:
            raise ValueError(f"Identifier length must be between 1 and {MAX_IDENTIFIER_LENGTH}")
        self._length = length
        self._rng = rng
        self._salt = salt
        self._cache: dict[str, str] = {}

    def _draw(self, rng: random.Random) -> str:
        return "".join(rng.choice(ALPHABET) for _ in range(self._length))

    def _derive(self, key: str) -> str:
        digest = hashlib.blake2b(f"{self._salt}\x00{key}".encode(), digest_size=64).digest()
        number = int.from_bytes(digest, "big")
        characters = []
        for _ in range(self._length):
            number, index = divmod(number, len(ALPHABET))
            characters.append(ALPHABET[index])
        return "".join(characters)

    def identifier_for(self, key: str) -> str:
        """Return the identifier for ``key``, allocating it on first use."""
        identifier = self._cache.get(key)
        if identifier is None:
            identifier = self._draw(self._rng) if self._rng is not None else self._derive(key)
            self._cache[key] = identifier
            logger.debug("Identifier allocated", key=key, identifier=identifier)
        return identifier

    def reset(self) -> None:
        """Forget every allocated identifier."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache


__all__ = ["ALPHABET", "MAX_IDENTIFIER_LENGTH", "IdentifierAllocator", "position_key"]
