"""Repository contracts and their implementations.

Services depend only on the abstract `StudyGroupRepository` and
`UserRepository` classes. Two implementations are provided for each:
SQL repositories over a SQLModel `Session`, which commit and refresh
where appropriate, and in-memory repositories backed by dicts, used by
the service tests and for quick local experiments.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from . import models
from .errors import ValidationError


class StudyGroupRepository(ABC):
    """Persistence contract for `StudyGroup` aggregates.

    Lookups return `None` (or an empty list) when nothing matches; they
    never raise for missing records.
    """

    @abstractmethod
    def create_study_group(self, group: models.StudyGroup) -> models.StudyGroup:
        """Persist a new group with its members.

        Raises `ValidationError` when the id or subject is already taken.
        """

    @abstractmethod
    def get_study_groups(self) -> List[models.StudyGroup]:
        """Return every stored group ordered by id."""

    @abstractmethod
    def search_study_groups(self, subject: models.Subject) -> List[models.StudyGroup]:
        """Return the groups for `subject` ordered by id."""

    @abstractmethod
    def join_study_group(self, group_id: int, user_id: int) -> Optional[models.StudyGroup]:
        """Add a user to a group and return the updated group.

        Returns `None` if either the group or the user does not exist and
        raises `ValidationError` if the user is already a member.
        """

    @abstractmethod
    def leave_study_group(self, group_id: int, user_id: int) -> Optional[models.StudyGroup]:
        """Remove a user from a group and return the updated group.

        Returns `None` if either the group or the user does not exist.
        """

    @abstractmethod
    def delete_study_group(self, group_id: int) -> None:
        """Delete a group and its memberships. Absent ids are ignored."""

    @abstractmethod
    def get_study_group(self, group_id: int) -> Optional[models.StudyGroup]:
        """Return a group by id or `None`."""


class UserRepository(ABC):
    """Persistence contract for `User` records."""

    @abstractmethod
    def create_user(self, user: models.User) -> models.User:
        """Persist a new user. Raises `ValidationError` if the id is taken."""

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """Delete a user. Absent ids are ignored."""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[models.User]:
        """Return a user by id or `None`."""

    @abstractmethod
    def get_users(self) -> List[models.User]:
        """Return every user ordered by id."""


class SqlStudyGroupRepository(StudyGroupRepository):
    """`StudyGroupRepository` backed by a SQLModel session."""
    def __init__(self, session: Session):
        self.session = session

    def create_study_group(self, group: models.StudyGroup) -> models.StudyGroup:
        """Insert the group and its member rows in one commit.

        The unique constraint on `subject` backs up the service's
        existence check when two requests race for the same subject.
        """
        self.session.add(group)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ValidationError('study group conflicts with an existing group') from e
        self.session.refresh(group)
        return group

    def get_study_groups(self) -> List[models.StudyGroup]:
        stmt = select(models.StudyGroup).order_by(models.StudyGroup.id)
        return list(self.session.exec(stmt).all())

    def search_study_groups(self, subject: models.Subject) -> List[models.StudyGroup]:
        stmt = select(models.StudyGroup).where(models.StudyGroup.subject == subject).order_by(models.StudyGroup.id)
        return list(self.session.exec(stmt).all())

    def join_study_group(self, group_id: int, user_id: int) -> Optional[models.StudyGroup]:
        group = self.session.get(models.StudyGroup, group_id)
        user = self.session.get(models.User, user_id)
        if group is None or user is None:
            return None
        group.add_user(user)
        self.session.add(group)
        try:
            self.session.commit()
        except IntegrityError as e:
            # a concurrent join stored the same membership first
            self.session.rollback()
            raise ValidationError(f'user {user_id} is already a member of study group {group_id}') from e
        self.session.refresh(group)
        return group

    def leave_study_group(self, group_id: int, user_id: int) -> Optional[models.StudyGroup]:
        group = self.session.get(models.StudyGroup, group_id)
        user = self.session.get(models.User, user_id)
        if group is None or user is None:
            return None
        group.remove_user(user)
        return self._save(group)

    def delete_study_group(self, group_id: int) -> None:
        group = self.session.get(models.StudyGroup, group_id)
        if group is None:
            return
        self.session.delete(group)
        self.session.commit()

    def get_study_group(self, group_id: int) -> Optional[models.StudyGroup]:
        return self.session.get(models.StudyGroup, group_id)

    def _save(self, group: models.StudyGroup) -> models.StudyGroup:
        self.session.add(group)
        self.session.commit()
        self.session.refresh(group)
        return group


class SqlUserRepository(UserRepository):
    """`UserRepository` backed by a SQLModel session."""
    def __init__(self, session: Session):
        self.session = session

    def create_user(self, user: models.User) -> models.User:
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ValidationError(f'user {user.id} already exists') from e
        self.session.refresh(user)
        return user

    def delete_user(self, user_id: int) -> None:
        user = self.session.get(models.User, user_id)
        if user is None:
            return
        self.session.delete(user)
        self.session.commit()

    def get_user(self, user_id: int) -> Optional[models.User]:
        return self.session.get(models.User, user_id)

    def get_users(self) -> List[models.User]:
        return list(self.session.exec(select(models.User).order_by(models.User.id)).all())


class InMemoryUserRepository(UserRepository):
    """Dict-backed `UserRepository`. Thread-safe."""
    def __init__(self):
        self._users: Dict[int, models.User] = {}
        self._lock = threading.Lock()

    def create_user(self, user: models.User) -> models.User:
        with self._lock:
            if user.id in self._users:
                raise ValidationError(f'user {user.id} already exists')
            self._users[user.id] = user
        return user

    def delete_user(self, user_id: int) -> None:
        with self._lock:
            self._users.pop(user_id, None)

    def get_user(self, user_id: int) -> Optional[models.User]:
        return self._users.get(user_id)

    def get_users(self) -> List[models.User]:
        with self._lock:
            return [self._users[k] for k in sorted(self._users)]


class InMemoryStudyGroupRepository(StudyGroupRepository):
    """Dict-backed `StudyGroupRepository`.

    Subject and id uniqueness are checked under the store lock, so
    concurrent creates for one subject cannot both succeed. Users are
    resolved through the `InMemoryUserRepository` passed in.
    """
    def __init__(self, users: InMemoryUserRepository):
        self._groups: Dict[int, models.StudyGroup] = {}
        self._users = users
        self._lock = threading.Lock()

    def create_study_group(self, group: models.StudyGroup) -> models.StudyGroup:
        with self._lock:
            if group.id is None:
                group.id = max(self._groups, default=0) + 1
            if group.id in self._groups:
                raise ValidationError(f'study group {group.id} already exists')
            if any(g.subject == group.subject for g in self._groups.values()):
                raise ValidationError(f'a study group for {group.subject.value} already exists')
            self._groups[group.id] = group
        return group

    def get_study_groups(self) -> List[models.StudyGroup]:
        with self._lock:
            return [self._groups[k] for k in sorted(self._groups)]

    def search_study_groups(self, subject: models.Subject) -> List[models.StudyGroup]:
        return [g for g in self.get_study_groups() if g.subject == subject]

    def join_study_group(self, group_id: int, user_id: int) -> Optional[models.StudyGroup]:
        user = self._users.get_user(user_id)
        with self._lock:
            group = self._groups.get(group_id)
            if group is None or user is None:
                return None
            if group.has_user(user_id):
                raise ValidationError(f'user {user_id} is already a member of study group {group_id}')
            group.add_user(user)
        return group

    def leave_study_group(self, group_id: int, user_id: int) -> Optional[models.StudyGroup]:
        user = self._users.get_user(user_id)
        with self._lock:
            group = self._groups.get(group_id)
            if group is None or user is None:
                return None
            group.remove_user(user)
        return group

    def delete_study_group(self, group_id: int) -> None:
        with self._lock:
            self._groups.pop(group_id, None)

    def get_study_group(self, group_id: int) -> Optional[models.StudyGroup]:
        return self._groups.get(group_id)
