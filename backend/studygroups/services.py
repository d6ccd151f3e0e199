"""Business logic services used by HTTP controllers.

This module holds the study group and user services. Services are
intentionally thin: they validate requests against the business rules,
delegate persistence to the injected repositories and raise
`errors.ValidationError` / `errors.NotFoundError` on failure. They know
nothing about HTTP.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from . import models
from .config import settings
from .errors import NotFoundError, ValidationError
from .repositories import StudyGroupRepository, UserRepository
from .utils.datetime_utils import to_utc, utc_now

NAME_MIN_LENGTH = 5
NAME_MAX_LENGTH = 30

logger = logging.getLogger("studygroups.services")


class StudyGroupService:
    """Create, list, search, join, leave and delete study groups."""
    def __init__(
        self,
        group_repo: StudyGroupRepository,
        user_repo: UserRepository,
        clock: Callable[[], datetime] = utc_now,
        window_hours: Optional[float] = None,
    ):
        self.group_repo = group_repo
        self.user_repo = user_repo
        self.clock = clock
        self.window_hours = window_hours if window_hours is not None else settings.CREATE_DATE_WINDOW_HOURS
        self.window = timedelta(hours=self.window_hours)

    def create_study_group(self, draft: models.StudyGroup, member_ids: Sequence[int] = ()) -> models.StudyGroup:
        """Validate `draft` and persist it.

        Checks run in order and the first failure wins: name length,
        creation date window, free subject, free id, then every member
        (users already on the draft plus `member_ids`) must exist.
        Nothing is stored when a check fails.
        """
        name = draft.name or ''
        if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
            raise ValidationError(
                f'name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters'
            )
        now = to_utc(self.clock())
        created = to_utc(draft.create_date)
        if abs(created - now) > self.window:
            raise ValidationError(f'create_date must be within {self.window_hours:g} hours of the current time')
        if self.group_repo.search_study_groups(draft.subject):
            raise ValidationError(f'a study group for {draft.subject.value} already exists')
        if draft.id is not None and self.group_repo.get_study_group(draft.id) is not None:
            raise ValidationError(f'study group {draft.id} already exists')

        wanted = [m.user_id for m in draft.members] + list(member_ids)
        members = []
        for user_id in wanted:
            user = self.user_repo.get_user(user_id)
            if user is None:
                raise NotFoundError('user', user_id)
            members.append(user)
        draft.members = []
        for user in members:
            draft.add_user(user)
        draft.create_date = created

        group = self.group_repo.create_study_group(draft)
        logger.info("study group %s created for %s with %d member(s)", group.id, group.subject.value, len(members))
        return group

    def get_study_groups(self) -> List[models.StudyGroup]:
        return self.group_repo.get_study_groups()

    def search_study_groups(self, subject: str) -> List[models.StudyGroup]:
        """Return the groups whose subject matches `subject`.

        Unknown subject names match nothing.
        """
        parsed = models.Subject.parse(subject)
        if parsed is None:
            return []
        return self.group_repo.search_study_groups(parsed)

    def get_study_group(self, group_id: int) -> models.StudyGroup:
        group = self.group_repo.get_study_group(group_id)
        if group is None:
            raise NotFoundError('study group', group_id)
        return group

    def join_study_group(self, group_id: int, user_id: int) -> models.StudyGroup:
        """Add a user to a group.

        Raises `NotFoundError` for a missing group or user and
        `ValidationError` when the user is already a member.
        """
        group = self.get_study_group(group_id)
        self._require_user(user_id)
        if group.has_user(user_id):
            raise ValidationError(f'user {user_id} is already a member of study group {group_id}')
        updated = self.group_repo.join_study_group(group_id, user_id)
        if updated is None:
            # removed between the checks and the write
            raise NotFoundError('study group', group_id)
        logger.info("user %s joined study group %s", user_id, group_id)
        return updated

    def leave_study_group(self, group_id: int, user_id: int) -> models.StudyGroup:
        """Remove a user from a group.

        Raises `NotFoundError` for a missing group, a missing user, or a
        user who is not a member of the group.
        """
        group = self.get_study_group(group_id)
        self._require_user(user_id)
        if not group.has_user(user_id):
            raise NotFoundError('membership', user_id, f'user {user_id} is not a member of study group {group_id}')
        updated = self.group_repo.leave_study_group(group_id, user_id)
        if updated is None:
            raise NotFoundError('study group', group_id)
        logger.info("user %s left study group %s", user_id, group_id)
        return updated

    def delete_study_group(self, group_id: int) -> None:
        """Delete a group. Deleting an absent group is a no-op."""
        self.group_repo.delete_study_group(group_id)
        logger.info("study group %s deleted", group_id)

    def _require_user(self, user_id: int) -> models.User:
        user = self.user_repo.get_user(user_id)
        if user is None:
            raise NotFoundError('user', user_id)
        return user


class UserService:
    """Create, fetch and delete users."""
    def __init__(self, user_repo: UserRepository, group_repo: StudyGroupRepository):
        self.user_repo = user_repo
        self.group_repo = group_repo

    def create_user(self, user: models.User) -> models.User:
        if not user.name or not user.name.strip():
            raise ValidationError('name must not be empty')
        if self.user_repo.get_user(user.id) is not None:
            raise ValidationError(f'user {user.id} already exists')
        created = self.user_repo.create_user(user)
        logger.info("user %s created", created.id)
        return created

    def get_user(self, user_id: int) -> models.User:
        user = self.user_repo.get_user(user_id)
        if user is None:
            raise NotFoundError('user', user_id)
        return user

    def get_users(self) -> List[models.User]:
        return self.user_repo.get_users()

    def delete_user(self, user_id: int) -> None:
        """Delete a user after removing them from every group they joined.

        Deleting an absent user is a no-op.
        """
        for group in self.group_repo.get_study_groups():
            if group.has_user(user_id):
                self.group_repo.leave_study_group(group.id, user_id)
        self.user_repo.delete_user(user_id)
        logger.info("user %s deleted", user_id)
