"""Branch model."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BRANCH_ID = "main"
SYSTEM_AUTHOR = "system"


class Branch(BaseModel):
    """A named, movable pointer to a commit."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    head_commit_id: str = Field(default="", alias="headCommitId")
    created_at: int = Field(alias="createdAt")
    created_by: str = Field(alias="createdBy")

    @property
    def has_commits(self) -> bool:
        return bool(self.head_commit_id)

    @property
    def is_default(self) -> bool:
        return self.id == DEFAULT_BRANCH_ID
