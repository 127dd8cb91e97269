"""Per-user virtual vault of folders and Markdown files.

Files live in the vault_nodes table as a parent_id tree. Writing a .md file
also synchronizes it into the note graph.
"""

from typing import Optional

import structlog

from brainflow.db.postgres_client import PostgresClient, contains_pattern
from brainflow.models.schemas import VaultNodeType
from brainflow.services.graph_sync import GraphSynchronizer, SyncResult

logger = structlog.get_logger()

DEFAULT_SEARCH_LIMIT = 20


class VaultError(Exception):
    """Base class for vault errors."""


class InvalidPathError(VaultError):
    """Path has no usable final component."""


class VaultFileNotFoundError(VaultError):
    """Path does not resolve to a node of the expected type."""


def split_path(path: str) -> list[str]:
    """'/notes//react.md' -> ['notes', 'react.md']"""
    return [part for part in path.split("/") if part]


def is_markdown(name: str) -> bool:
    return name.lower().endswith(".md")


class VaultService:
    """Virtual filesystem operations scoped to one user."""

    def __init__(
        self,
        user_id: str,
        pg_client: PostgresClient,
        synchronizer: Optional[GraphSynchronizer] = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        self.user_id = user_id
        self.pg = pg_client
        self.synchronizer = synchronizer
        self.search_limit = search_limit

    async def _find_child(
        self,
        parent_id: Optional[str],
        name: str,
        node_type: Optional[VaultNodeType] = None,
    ) -> Optional[dict]:
        params: dict = {"user_id": self.user_id, "name": name}
        query = "SELECT id, type FROM vault_nodes WHERE user_id = :user_id AND name = :name"
        if parent_id:
            query += " AND parent_id = :parent_id"
            params["parent_id"] = parent_id
        else:
            query += " AND parent_id IS NULL"
        if node_type:
            query += " AND type = :type"
            params["type"] = node_type.value

        rows = await self.pg.execute_query(query + " ORDER BY created_at LIMIT 1", params)
        if not rows:
            return None
        return {"id": str(rows[0]["id"]), "type": rows[0]["type"]}

    async def _insert_node(
        self,
        parent_id: Optional[str],
        name: str,
        node_type: VaultNodeType,
        content: Optional[str] = None,
    ) -> str:
        node_id = await self.pg.execute_insert(
            """
            INSERT INTO vault_nodes (user_id, parent_id, name, type, content)
            VALUES (:user_id, :parent_id, :name, :type, :content)
            RETURNING id
            """,
            {
                "user_id": self.user_id,
                "parent_id": parent_id,
                "name": name,
                "type": node_type.value,
                "content": content,
            },
        )
        if not node_id:
            raise VaultError(f"Could not create {node_type.value} '{name}'")
        return node_id

    async def _ensure_directories(self, parts: list[str]) -> Optional[str]:
        """mkdir -p; returns the id of the deepest directory (None for root)."""
        parent_id: Optional[str] = None
        for part in parts:
            existing = await self._find_child(parent_id, part)
            if existing:
                parent_id = existing["id"]
            else:
                parent_id = await self._insert_node(parent_id, part, VaultNodeType.DIRECTORY)
        return parent_id

    async def resolve_path(self, path: str) -> Optional[dict]:
        """Resolve a path to {"id", "type"}, or None if any component is missing."""
        parts = split_path(path)
        if not parts:
            return None

        parent_id: Optional[str] = None
        node = None
        for part in parts:
            node = await self._find_child(parent_id, part)
            if not node:
                return None
            parent_id = node["id"]
        return node

    async def read_file(self, path: str) -> str:
        node = await self.resolve_path(path)
        if not node or node["type"] != VaultNodeType.FILE.value:
            raise VaultFileNotFoundError(f"File not found: {path}")

        rows = await self.pg.execute_query(
            "SELECT content FROM vault_nodes WHERE id = :id",
            {"id": node["id"]},
        )
        return (rows[0]["content"] if rows else None) or ""

    async def write_file(self, path: str, content: str) -> Optional[SyncResult]:
        """Create or overwrite a file; .md files are synchronized into the graph."""
        # Postgres rejects NUL in text columns
        content = content.replace("\x00", "")

        parts = split_path(path)
        if not parts:
            raise InvalidPathError(f"Invalid path: {path!r}")
        file_name = parts.pop()

        parent_id = await self._ensure_directories(parts)
        existing = await self._find_child(parent_id, file_name, VaultNodeType.FILE)

        if existing:
            await self.pg.execute_update(
                "UPDATE vault_nodes SET content = :content, updated_at = NOW() WHERE id = :id",
                {"content": content, "id": existing["id"]},
            )
        else:
            await self._insert_node(parent_id, file_name, VaultNodeType.FILE, content)

        logger.info(
            "Vault: File written",
            user_id=self.user_id,
            path=path,
            created=existing is None,
        )

        if self.synchronizer and is_markdown(file_name):
            return await self.synchronizer.synchronize(self.user_id, file_name, content)
        return None

    async def create_directory(self, path: str) -> None:
        await self._ensure_directories(split_path(path))

    async def get_all_file_paths(self) -> list[str]:
        """Absolute paths of every file in the vault."""
        nodes = await self.pg.execute_query(
            "SELECT id, parent_id, name, type FROM vault_nodes WHERE user_id = :user_id",
            {"user_id": self.user_id},
        )
        node_map = {str(n["id"]): n for n in nodes}

        paths = []
        for node in nodes:
            if node["type"] != VaultNodeType.FILE.value:
                continue
            parts = [node["name"]]
            seen = {str(node["id"])}
            parent_id = node.get("parent_id")
            while parent_id:
                parent = node_map.get(str(parent_id))
                # Orphaned node or corrupted cycle
                if not parent or str(parent["id"]) in seen:
                    break
                seen.add(str(parent["id"]))
                parts.insert(0, parent["name"])
                parent_id = parent.get("parent_id")
            paths.append("/" + "/".join(parts))
        return paths

    async def list_files(self, path: str = "/") -> list[str]:
        """Immediate children of a directory; sub-directories end with '/'."""
        prefix = path if path.endswith("/") else f"{path}/"

        items = set()
        for file_path in await self.get_all_file_paths():
            if not file_path.startswith(prefix):
                continue
            relative = file_path[len(prefix):].split("/")
            items.add(f"{relative[0]}/" if len(relative) > 1 else relative[0])

        result = sorted(items)
        logger.debug("Vault: Listed files", path=path, count=len(result))
        return result

    async def search_files(self, query: str) -> list[str]:
        """Names of files whose name or content contains query (case-insensitive)."""
        rows = await self.pg.execute_query(
            """
            SELECT name FROM vault_nodes
            WHERE user_id = :user_id AND type = :type
              AND (name ILIKE :pattern ESCAPE '\\' OR content ILIKE :pattern ESCAPE '\\')
            ORDER BY updated_at DESC
            LIMIT :limit
            """,
            {
                "user_id": self.user_id,
                "type": VaultNodeType.FILE.value,
                "pattern": contains_pattern(query),
                "limit": self.search_limit,
            },
        )
        return [r["name"] for r in rows]

    async def move_file(self, source_path: str, destination_path: str) -> None:
        """Move or rename a file or directory, creating destination parents."""
        source = await self.resolve_path(source_path)
        if not source:
            raise VaultFileNotFoundError(f"Source path not found: {source_path}")

        parts = split_path(destination_path)
        if not parts:
            raise InvalidPathError(f"Invalid destination path: {destination_path!r}")
        new_name = parts.pop()
        new_parent_id = await self._ensure_directories(parts)

        await self.pg.execute_update(
            """
            UPDATE vault_nodes
            SET name = :name, parent_id = :parent_id, updated_at = NOW()
            WHERE id = :id AND user_id = :user_id
            """,
            {
                "name": new_name,
                "parent_id": new_parent_id,
                "id": source["id"],
                "user_id": self.user_id,
            },
        )
        logger.info("Vault: Moved", source=source_path, destination=destination_path)
