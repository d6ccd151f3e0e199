"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Business rules such as the
name length are deliberately not encoded here: they are checked by the
services so a violation is reported as 400 rather than a schema error.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field

from .models import Subject

# ids are stored in signed 64-bit integer columns
ID_MIN = -(2 ** 63)
ID_MAX = 2 ** 63 - 1
RecordId = Annotated[int, Field(ge=ID_MIN, le=ID_MAX)]


class UserIn(BaseModel):
    """Payload for creating a user. The id is chosen by the caller."""
    id: RecordId
    name: str


class UserOut(BaseModel):
    id: int
    name: str


class StudyGroupIn(BaseModel):
    """Payload for creating a study group.

    `id` may be omitted to let the store assign one. `user_ids` lists
    existing users to add as initial members, in order.
    """
    id: Optional[RecordId] = None
    name: str
    subject: Subject
    create_date: datetime
    user_ids: List[RecordId] = Field(default_factory=list)


class StudyGroupOut(BaseModel):
    """A study group with its members in join order."""
    id: int
    name: str
    subject: Subject
    create_date: str
    users: List[UserOut]
