"""SQLite storage for family trees, one JSON-serialized tree per owner."""

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sqlite3
import uuid

from famgraph.models import PersonNode, TreeData

logger = logging.getLogger(__name__)

DEFAULT_TREE_NAME = "Family"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Open (or create) the SQLite database with the user_tree table."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS user_tree (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL UNIQUE,
            tree_name TEXT NOT NULL,
            tree_data TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS user_tree_updated_at_idx
        ON user_tree (updated_at)
    """)

    conn.commit()
    return conn


def get_tree_by_owner(conn: sqlite3.Connection, owner_id: str) -> TreeData | None:
    """Load an owner's tree, or None if there is none or its data is unreadable."""
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, owner_id, tree_name, tree_data, created_at, updated_at
        FROM user_tree
        WHERE owner_id = ?
        LIMIT 1
        """,
        (owner_id,),
    )
    row = cursor.fetchone()
    if row is None:
        return None

    try:
        payload = json.loads(row[3])
    except json.JSONDecodeError:
        logger.warning("Stored tree for owner %s is not valid JSON", owner_id)
        return None

    if not isinstance(payload, dict) or not isinstance(payload.get("nodes"), list):
        logger.warning("Stored tree for owner %s has no node list", owner_id)
        return None

    nodes = [
        PersonNode.from_dict(n) for n in payload["nodes"] if isinstance(n, dict) and n.get("id")
    ]
    return TreeData(
        id=row[0],
        owner_id=row[1],
        name=row[2],
        nodes=nodes,
        created_at=row[4],
        updated_at=row[5],
    )


def upsert_tree_for_owner(
    conn: sqlite3.Connection, owner_id: str, name: str, nodes: list[PersonNode]
) -> TreeData:
    """Insert or replace an owner's tree."""
    now = _now()
    tree_name = name.strip() or DEFAULT_TREE_NAME
    tree_data = json.dumps({"nodes": [n.to_dict() for n in nodes]})

    cursor = conn.cursor()
    cursor.execute("SELECT id, created_at FROM user_tree WHERE owner_id = ?", (owner_id,))
    existing = cursor.fetchone()

    if existing:
        tree_id, created_at = existing
        cursor.execute(
            """
            UPDATE user_tree
            SET tree_name = ?, tree_data = ?, updated_at = ?
            WHERE owner_id = ?
            """,
            (tree_name, tree_data, now, owner_id),
        )
    else:
        tree_id, created_at = uuid.uuid4().hex, now
        cursor.execute(
            """
            INSERT INTO user_tree (id, owner_id, tree_name, tree_data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (tree_id, owner_id, tree_name, tree_data, created_at, now),
        )

    conn.commit()
    return TreeData(
        id=tree_id,
        name=tree_name,
        owner_id=owner_id,
        nodes=list(nodes),
        created_at=created_at,
        updated_at=now,
    )
