"""
Pydantic models for users, graph projections and aggregate statistics.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 50
AGE_MIN = 13
AGE_MAX = 120
HOBBY_MAX_LENGTH = 100


def normalize_hobbies(hobbies: list[str]) -> list[str]:
    """Trim, drop empty entries and deduplicate, keeping first-seen order."""
    seen: dict[str, None] = {}
    for hobby in hobbies:
        hobby = hobby.strip()
        if not hobby:
            continue
        if len(hobby) > HOBBY_MAX_LENGTH:
            raise ValueError(f"Hobby cannot exceed {HOBBY_MAX_LENGTH} characters")
        seen.setdefault(hobby, None)
    return list(seen)


def _new_user_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(BaseModel):
    """A user record as held by the entity store."""

    id: str = Field(default_factory=_new_user_id)
    username: str = Field(min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)
    age: int = Field(ge=AGE_MIN, le=AGE_MAX)
    hobbies: list[str] = []
    friends: list[str] = []  # user ids, link order
    created_at: datetime = Field(default_factory=_utcnow)
    popularity_score: float = Field(default=0.0, ge=0)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("hobbies", mode="after")
    @classmethod
    def dedupe_hobbies(cls, v: list[str]) -> list[str]:
        return normalize_hobbies(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def friend_count(self) -> int:
        return len(self.friends)

    def is_friends_with(self, other_id: str) -> bool:
        return other_id in self.friends


class UserCreate(BaseModel):
    """Request model for creating a user"""

    username: str = Field(min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)
    age: int = Field(ge=AGE_MIN, le=AGE_MAX)
    hobbies: list[str] = Field(min_length=1)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("hobbies", mode="after")
    @classmethod
    def validate_hobbies(cls, v: list[str]) -> list[str]:
        hobbies = normalize_hobbies(v)
        if not hobbies:
            raise ValueError("At least one hobby is required")
        return hobbies


class UserUpdate(BaseModel):
    """Partial update for a user. Only explicitly set fields are applied."""

    username: str | None = Field(default=None, min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)
    age: int | None = Field(default=None, ge=AGE_MIN, le=AGE_MAX)
    hobbies: list[str] | None = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("hobbies", mode="after")
    @classmethod
    def validate_hobbies(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        hobbies = normalize_hobbies(v)
        if not hobbies:
            raise ValueError("At least one hobby is required")
        return hobbies

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually provided, ignoring explicit None."""
        return {name: getattr(self, name) for name in self.model_fields_set if getattr(self, name) is not None}


# ========================================
# Graph projection
# ========================================

NodeType = Literal["HighScoreNode", "LowScoreNode"]


class NodePosition(BaseModel):
    x: float
    y: float


class GraphNodeData(BaseModel):
    """Payload rendered inside a node"""

    label: str  # "username (age)"
    username: str
    age: int
    hobbies: list[str]
    popularity_score: float


class GraphNode(BaseModel):
    """Node in the projected friendship graph"""

    id: str
    data: GraphNodeData
    position: NodePosition
    type: NodeType
    category: Literal["high", "low"]


class GraphEdge(BaseModel):
    """Edge in the projected friendship graph, one per unordered pair"""

    id: str
    source: str
    target: str
    type: str = "smoothstep"


class GraphProjection(BaseModel):
    """Complete renderable graph"""

    model_config = ConfigDict(frozen=True)

    nodes: list[GraphNode]
    edges: list[GraphEdge]
    revision: int | None = None  # store revision the projection was built from


# ========================================
# Aggregates
# ========================================


class UserStats(BaseModel):
    """Aggregate statistics over all users"""

    total_users: int
    total_friendships: int
    average_popularity_score: float
    top_users: list[User]
