"""SQLModel data models.

This module defines the application's entities using SQLModel. Each
table class maps to a database table; the same classes are held by the
in-memory repositories, so membership logic lives on the entities
rather than in SQL.
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


class Subject(str, Enum):
    """Category a study group is about. One group per subject at a time."""
    MATH = "Math"
    CHEMISTRY = "Chemistry"
    PHYSICS = "Physics"

    @classmethod
    def parse(cls, raw: str) -> Optional["Subject"]:
        """Return the subject matching `raw` by name or value, ignoring case.

        Returns `None` for unknown strings.
        """
        key = (raw or "").strip().lower()
        for subject in cls:
            if key in (subject.name.lower(), subject.value.lower()):
                return subject
        return None


class User(SQLModel, table=True):
    """A user who can join study groups. The id is assigned by the caller."""
    id: int = Field(primary_key=True)
    name: str


class StudyGroupMember(SQLModel, table=True):
    """Link row placing a `User` in a `StudyGroup`.

    Rows are ordered by `id`, which gives the group's join order.
    """
    __table_args__ = (UniqueConstraint('study_group_id', 'user_id'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    study_group_id: Optional[int] = Field(default=None, foreign_key='studygroup.id', index=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    study_group: Optional['StudyGroup'] = Relationship(back_populates='members')
    user: Optional[User] = Relationship(sa_relationship_kwargs={'lazy': 'selectin'})


class StudyGroup(SQLModel, table=True):
    """A named, subject-tagged collection of users.

    Fields:
    - `name`: display name, 5 to 30 characters (checked by the service)
    - `subject`: unique across stored groups
    - `create_date`: UTC timestamp; SQLite hands it back without an offset
    - `members`: ordered link rows; use `users` for the `User` list
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    subject: Subject = Field(index=True, unique=True)
    create_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    members: List[StudyGroupMember] = Relationship(
        back_populates='study_group',
        sa_relationship_kwargs={
            'order_by': 'StudyGroupMember.id',
            'cascade': 'all, delete-orphan',
            'lazy': 'selectin',
        },
    )

    @property
    def users(self) -> List[User]:
        return [m.user for m in self.members]

    def has_user(self, user_id: int) -> bool:
        return any(m.user_id == user_id for m in self.members)

    def add_user(self, user: User) -> None:
        """Append `user` to the members. Adding an existing member is a no-op."""
        if self.has_user(user.id):
            return
        self.members.append(StudyGroupMember(user_id=user.id, user=user))

    def remove_user(self, user: User) -> None:
        """Remove `user` from the members if present."""
        for m in list(self.members):
            if m.user_id == user.id:
                self.members.remove(m)
