"""Pydantic models for the task store wire format and the sync results."""
from __future__ import annotations

from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# ── Task store records ─────────────────────────────────────────────

class RemoteTask(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str  # T-{uuid}
    title: str = ""
    note: Optional[str] = None  # N-T-{uuid} or None
    projectId: str = ""  # P-{uuid}
    tags: list[str] = Field(default_factory=list)  # A-{uuid}
    checked: int = 0  # 0 = open, 1 = completed, 2 = cancelled
    complete: int = 0
    state: int = 0
    priority: int = 0
    journalDate: Optional[str] = None
    dueDate: Optional[str] = None


class RemoteTag(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str  # A-{uuid}
    title: str = ""
    color: Optional[str] = None
    parent: Optional[str] = None


class KanbanStatus(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str  # KS-P-{uuid}-TODO | KS-P-{uuid}-IN-PROGRESS | KS-P-{uuid}-DONE | KS-{uuid}
    name: str = ""
    kanbanOrder: int = 0


class TaskKanbanStatus(BaseModel):
    model_config = ConfigDict(extra="allow")

    taskId: str = ""
    statusId: str = ""


class RemoteNote(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str  # N-T-{uuid}
    content: str = ""  # JSON string of DeltaOp[]


class DeltaOp(BaseModel):
    """One Quill delta insert. ``text`` travels as ``insert`` on the wire.

    Ops are frozen; editing functions build new ops instead of mutating.
    Unknown keys are kept so untouched ops serialize back unchanged.
    """
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    text: Any = Field(default="", alias="insert")  # str, or a dict for embeds
    attributes: Optional[dict[str, Any]] = None

    @property
    def link(self) -> Optional[str]:
        if not self.attributes:
            return None
        value = self.attributes.get("link")
        return value if isinstance(value, str) else None


# ── Enriched view ──────────────────────────────────────────────────

class TaskStatus(BaseModel):
    id: str
    name: str


class TaskData(BaseModel):
    id: str
    title: str
    projectId: str = ""
    status: Optional[TaskStatus] = None
    tags: list[RemoteTag] = Field(default_factory=list)
    noteId: Optional[str] = None
    isCompleted: bool = False
    isCancelled: bool = False


class CacheEntry(BaseModel, Generic[T]):
    data: T
    timestamp: float


# ── Sync results ───────────────────────────────────────────────────

SyncOutcome = Literal["created", "updated", "migrated", "unchanged", "failed"]


class FieldReference(BaseModel):
    url: str
    fieldPath: str
    taskId: str
    # Raw front-matter keys and list indexes; fieldPath is only for display.
    keyPath: list[Any] = Field(default_factory=list, exclude=True)


class FieldSyncResult(BaseModel):
    fieldPath: str
    taskId: str
    outcome: SyncOutcome
    error: str = ""


class NoteSyncSummary(BaseModel):
    notePath: str
    message: str = ""
    results: list[FieldSyncResult] = Field(default_factory=list)

    @property
    def synced(self) -> int:
        return sum(1 for r in self.results if r.outcome != "failed")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.outcome == "failed")

    @property
    def written(self) -> int:
        return sum(1 for r in self.results if r.outcome in ("created", "updated", "migrated"))

    def as_dict(self) -> dict[str, Any]:
        return {
            "notePath": self.notePath,
            "message": self.message,
            "synced": self.synced,
            "failed": self.failed,
            "written": self.written,
            "results": [r.model_dump() for r in self.results],
        }


class Settings(BaseModel):
    apiToken: str = ""
    vaultName: str = ""
    autoSync: bool = True
    cacheTTL: int = Field(default=5, ge=1, le=60)  # minutes
    language: Literal["en", "ru"] = "en"
