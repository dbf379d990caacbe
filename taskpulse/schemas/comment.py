"""Comment schemas."""
from typing import Optional

from pydantic import Field

from taskpulse.models.comment import Comment
from taskpulse.schemas.base import CamelModel
from taskpulse.timestamps import to_iso


class CommentCreate(CamelModel):
    text: str = Field(..., min_length=1, max_length=5000)


class CommentRead(CamelModel):
    id: str
    task_id: str
    text: str
    author_id: str
    author_name: str
    created_at: Optional[str] = None

    @classmethod
    def from_model(cls, comment: Comment) -> "CommentRead":
        return cls(
            id=comment.id,
            task_id=comment.task_id,
            text=comment.text,
            author_id=comment.author_id,
            author_name=comment.author_name,
            created_at=to_iso(comment.created_at),
        )


class CommentCountResponse(CamelModel):
    task_id: str
    count: int
