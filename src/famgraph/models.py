"""Data classes for family tree entities and layout results."""

from dataclasses import dataclass, field, replace
from typing import Any

LINE_TAGS = ("paternal", "maternal", "union", "descendant", "self", "default")
SOCIAL_FIELDS = ("instagram", "tiktok", "linkedin")


@dataclass
class MediaItem:
    type: str  # image, video
    url: str
    caption: str | None = None


@dataclass
class WorkItem:
    type: str  # book, music, film, art, other
    title: str
    year: int | None = None
    description: str | None = None


@dataclass
class NodeContent:
    description: str = ""
    media: list[MediaItem] = field(default_factory=list)
    instagram: str | None = None
    tiktok: str | None = None
    linkedin: str | None = None


@dataclass
class PersonNode:
    id: str
    label: str = ""
    year: int | None = None  # birth year
    death_year: int | None = None
    parent_id: str | None = None  # legacy mirror of parent_ids[0]
    parent_ids: list[str] = field(default_factory=list)
    partners: list[str] = field(default_factory=list)
    children_ids: list[str] = field(default_factory=list)
    generation: int = 0
    line: str | None = None
    sex: str | None = None  # M, F, X
    image_url: str | None = None
    content: NodeContent = field(default_factory=NodeContent)
    works: list[WorkItem] = field(default_factory=list)
    is_placeholder: bool = False
    # Computed by the layout pass, never authoritative
    x: float | None = None
    y: float | None = None

    def copy(self, **changes) -> "PersonNode":
        """Return a copy with independent relationship lists."""
        node = replace(
            self,
            parent_ids=list(self.parent_ids),
            partners=list(self.partners),
            children_ids=list(self.children_ids),
            content=replace(self.content, media=list(self.content.media)),
            works=list(self.works),
        )
        for key, value in changes.items():
            setattr(node, key, value)
        return node

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersonNode":
        """Build a node from the camelCase storage format, tolerating junk fields."""
        content = data.get("content")
        if not isinstance(content, dict):
            content = {}
        media = content.get("media")
        works = data.get("works")

        return cls(
            id=str(data["id"]),
            label=str(data.get("label") or ""),
            year=_as_year(data.get("year")),
            death_year=_as_year(data.get("deathYear")),
            parent_id=data.get("parentId") or None,
            parent_ids=_as_id_list(data.get("parentIds")),
            partners=_as_id_list(data.get("partners")),
            children_ids=_as_id_list(data.get("childrenIds")),
            generation=_as_generation(data.get("generation")),
            line=data.get("line") if data.get("line") in LINE_TAGS else None,
            sex=data.get("sex") or None,
            image_url=data.get("imageUrl") or None,
            content=NodeContent(
                description=content.get("description")
                if isinstance(content.get("description"), str)
                else "",
                media=[
                    MediaItem(
                        type=m.get("type", "image"),
                        url=m.get("url", ""),
                        caption=m.get("caption"),
                    )
                    for m in (media if isinstance(media, list) else [])
                    if isinstance(m, dict)
                ],
                **{
                    name: content[name]
                    for name in SOCIAL_FIELDS
                    if isinstance(content.get(name), str)
                },
            ),
            works=[
                WorkItem(
                    type=w.get("type", "other"),
                    title=w.get("title", ""),
                    year=_as_year(w.get("year")),
                    description=w.get("description"),
                )
                for w in (works if isinstance(works, list) else [])
                if isinstance(w, dict)
            ],
            is_placeholder=bool(data.get("isPlaceholder", False)),
            x=data.get("x"),
            y=data.get("y"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase storage format."""
        content: dict[str, Any] = {
            "description": self.content.description,
            "media": [
                {k: v for k, v in vars(m).items() if v is not None} for m in self.content.media
            ],
        }
        for name in SOCIAL_FIELDS:
            value = getattr(self.content, name)
            if value:
                content[name] = value

        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "year": self.year,
            "deathYear": self.death_year,
            "parentId": self.parent_id,
            "parentIds": list(self.parent_ids),
            "partners": list(self.partners),
            "childrenIds": list(self.children_ids),
            "generation": self.generation,
            "imageUrl": self.image_url,
            "content": content,
        }
        if self.line:
            data["line"] = self.line
        if self.sex:
            data["sex"] = self.sex
        if self.works:
            data["works"] = [{k: v for k, v in vars(w).items() if v is not None} for w in self.works]
        if self.is_placeholder:
            data["isPlaceholder"] = True
        if self.x is not None and self.y is not None:
            data["x"] = self.x
            data["y"] = self.y
        return data


def as_person_node(record: "PersonNode | dict[str, Any]") -> PersonNode:
    """Accept either a PersonNode or a raw storage dict and return a fresh node."""
    if isinstance(record, PersonNode):
        return record.copy()
    return PersonNode.from_dict(record)


def _as_id_list(value) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v]


def _as_year(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_generation(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# ============================================================================
# Layout results
# ============================================================================


@dataclass
class LayoutConfig:
    node_size: float = 80.0
    column_gap: float = 40.0
    group_gap: float = 80.0
    row_spacing: float = 150.0
    padding: float = 100.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass
class LayoutEdge:
    id: str
    source: str
    target: str
    type: str  # spouse, union-child
    path: list[Point]


@dataclass
class LayoutGraph:
    nodes: list[PersonNode] = field(default_factory=list)
    edges: list[LayoutEdge] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def node(self, node_id: str) -> PersonNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)


@dataclass
class TreeData:
    id: str
    name: str
    owner_id: str
    nodes: list[PersonNode]
    created_at: str
    updated_at: str
