"""Build workspace data models."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class WorkspaceStatus(str, Enum):
    """Workspace status enumeration."""

    CREATING = "creating"
    ACTIVE = "active"
    CLEANUP = "cleanup"
    DISPOSED = "disposed"


class BuildWorkspace(BaseModel):
    """Directories exclusively owned by one build."""

    token: str = Field(description="Random token namespacing the directories")
    build_dir: Path = Field(description="Per-build copy of the source tree")
    env_dir: Path = Field(description="Per-build directory of user variable files")
    status: WorkspaceStatus = Field(
        default=WorkspaceStatus.CREATING,
        description="Current workspace status",
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Workspace creation timestamp",
    )

    model_config = {
        "arbitrary_types_allowed": True,
        "use_enum_values": False,
    }

    def mark_active(self) -> None:
        """Mark workspace as active."""
        self.status = WorkspaceStatus.ACTIVE

    def mark_cleanup(self) -> None:
        """Mark workspace as being cleaned up."""
        self.status = WorkspaceStatus.CLEANUP

    def mark_disposed(self) -> None:
        """Mark workspace as disposed."""
        self.status = WorkspaceStatus.DISPOSED
