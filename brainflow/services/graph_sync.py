"""Note-graph synchronizer.

Turns a note's Markdown content into persisted note and edge state:

1. Derive the note title and slug from the file name
2. Upsert the note keyed by (user_id, slug)
3. Extract [[term]] links from the content
4. Drop every outgoing edge of the note
5. Resolve (or create as a ghost) each linked note and insert a fresh edge

Storage is injected through the NoteGraphStore protocol so the same logic runs
against Postgres in production and an in-memory fake in tests.
"""

import asyncio
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional, Protocol

import structlog

from brainflow.config.settings import SyncSettings
from brainflow.models.schemas import NoteStatus, RelationshipType

logger = structlog.get_logger()

LINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_MARKDOWN_SUFFIX = re.compile(r"\.md$", re.IGNORECASE)


def extract_links(content: str) -> list[str]:
    """Return the raw terms of every [[term]] marker, in order of appearance.

    Duplicates are kept and terms are returned verbatim (no slugification).
    """
    if not content:
        return []
    return [match.group(1) for match in LINK_PATTERN.finditer(content)]


def slugify(text: str) -> str:
    """Lowercase, collapse runs of non [a-z0-9] into '-', strip edge hyphens."""
    return _NON_SLUG_CHARS.sub("-", text.lower()).strip("-")


def note_title_from_filename(file_name: str) -> str:
    """Strip a trailing .md extension from a vault file name."""
    return _MARKDOWN_SUFFIX.sub("", file_name)


class NoteUpsertError(Exception):
    """Raised when the primary note of a synchronization cannot be stored."""

    def __init__(self, user_id: str, slug: str, cause: Exception):
        self.user_id = user_id
        self.slug = slug
        self.cause = cause
        super().__init__(f"Failed to upsert note '{slug}': {cause}")


class NoteGraphStore(Protocol):
    """Persistence operations the synchronizer needs."""

    async def upsert_note(
        self,
        user_id: str,
        slug: str,
        title: str,
        content: str,
        status: NoteStatus,
    ) -> str:
        """Create or update the note keyed by (user_id, slug) and return its id.

        On conflict the title and content are overwritten and the status is
        only raised from NEW (ghost) to the given status, never lowered.
        """
        ...

    async def find_note_id(self, user_id: str, slug: str) -> Optional[str]:
        ...

    async def resolve_or_create_note(
        self, user_id: str, slug: str, display_title: str
    ) -> tuple[str, bool]:
        """Return (note_id, created), creating a ghost note if none exists."""
        ...

    async def delete_edges_from(self, source_id: str) -> int:
        ...

    async def insert_edge(
        self,
        user_id: str,
        source_id: str,
        target_id: str,
        relationship: RelationshipType,
    ) -> str:
        ...


@dataclass
class SyncResult:
    """Outcome of one synchronization call."""

    note_id: str
    slug: str
    title: str
    linked_terms: list[str] = field(default_factory=list)
    edges_created: int = 0
    ghosts_created: list[str] = field(default_factory=list)
    skipped_terms: list[str] = field(default_factory=list)


@dataclass
class _KeyedLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class GraphSynchronizer:
    """Keeps the notes/edges graph in step with note content."""

    def __init__(
        self,
        store: NoteGraphStore,
        settings: Optional[SyncSettings] = None,
    ):
        self.store = store
        self.settings = settings or SyncSettings()
        # Only keys with a holder or waiter are present
        self._note_locks: dict[tuple[str, str], _KeyedLock] = {}

    @asynccontextmanager
    async def _note_lock(self, key: tuple[str, str]):
        entry = self._note_locks.get(key)
        if entry is None:
            entry = self._note_locks[key] = _KeyedLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._note_locks[key]

    async def synchronize(
        self,
        user_id: str,
        file_name: str,
        content: str,
        status: Optional[NoteStatus] = None,
        title: Optional[str] = None,
    ) -> SyncResult:
        """Synchronize one note and rebuild its outgoing edges.

        Args:
            user_id: Owner of the note
            file_name: Vault file name ("Topic.md") or a plain title; the
                slug is always derived from it
            content: Markdown body of the note
            status: Status for a freshly created note (defaults to settings)
            title: Display title to store instead of the one derived from
                file_name

        Returns:
            SyncResult describing the stored note and rebuilt edges

        Raises:
            NoteUpsertError: If the note itself could not be stored. No edge
                work happens in that case.
        """
        derived_title = note_title_from_filename(file_name)
        slug = slugify(derived_title)
        title = title.strip() if title and title.strip() else derived_title

        if not self.settings.serialize_per_note:
            return await self._synchronize(user_id, title, slug, content, status)

        async with self._note_lock((user_id, slug)):
            return await self._synchronize(user_id, title, slug, content, status)

    async def _synchronize(
        self,
        user_id: str,
        title: str,
        slug: str,
        content: str,
        status: Optional[NoteStatus],
    ) -> SyncResult:
        written_status = status or self.settings.default_written_status

        try:
            note_id = await self.store.upsert_note(
                user_id=user_id,
                slug=slug,
                title=title,
                content=content,
                status=written_status,
            )
        except Exception as e:
            logger.error("GraphSync: Note upsert failed", user_id=user_id, slug=slug, error=str(e))
            raise NoteUpsertError(user_id, slug, e) from e

        terms = extract_links(content)
        result = SyncResult(note_id=note_id, slug=slug, title=title, linked_terms=terms)

        removed = await self.store.delete_edges_from(note_id)

        for term in terms:
            target_slug = slugify(term)
            try:
                target_id, created = await self.store.resolve_or_create_note(
                    user_id=user_id,
                    slug=target_slug,
                    display_title=term,
                )
            except Exception as e:
                logger.warning(
                    "GraphSync: Could not resolve link target, skipping edge",
                    user_id=user_id,
                    source=slug,
                    term=term,
                    error=str(e),
                )
                result.skipped_terms.append(term)
                continue

            if created:
                result.ghosts_created.append(target_slug)

            await self.store.insert_edge(
                user_id=user_id,
                source_id=note_id,
                target_id=target_id,
                relationship=RelationshipType.RELATED_TO,
            )
            result.edges_created += 1

        logger.info(
            "GraphSync: Note synchronized",
            user_id=user_id,
            slug=slug,
            edges_removed=removed,
            edges_created=result.edges_created,
            ghosts_created=len(result.ghosts_created),
            skipped=len(result.skipped_terms),
        )
        return result
