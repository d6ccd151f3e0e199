from datetime import datetime, timedelta, timezone

import pytest

from studygroups.errors import NotFoundError, ValidationError
from studygroups.models import StudyGroup, Subject, User
from studygroups.repositories import InMemoryStudyGroupRepository, InMemoryUserRepository
from studygroups.services import StudyGroupService, UserService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def users():
    repo = InMemoryUserRepository()
    for uid, name in ((1, "John"), (2, "Miguel"), (3, "Anton")):
        repo.create_user(User(id=uid, name=name))
    return repo


@pytest.fixture
def groups(users):
    return InMemoryStudyGroupRepository(users)


@pytest.fixture
def svc(groups, users):
    return StudyGroupService(groups, users, clock=lambda: NOW, window_hours=12)


def _draft(group_id=None, name="Math-123", subject=Subject.MATH, when=NOW):
    return StudyGroup(id=group_id, name=name, subject=subject, create_date=when)


def test_create_study_group_persists_with_members(svc):
    group = svc.create_study_group(_draft(group_id=10), member_ids=[1])
    assert group.id == 10
    stored = svc.get_study_groups()
    assert len(stored) == 1
    assert [u.id for u in stored[0].users] == [1]
    assert stored[0].create_date == NOW


def test_create_assigns_id_when_missing(svc):
    first = svc.create_study_group(_draft())
    second = svc.create_study_group(_draft(subject=Subject.PHYSICS, name="Phys-100"))
    assert (first.id, second.id) == (1, 2)


@pytest.mark.parametrize("name", ["", "Mat", "Math", "M" * 31, "Math-123" + "t" * 30])
def test_create_rejects_name_length(svc, name):
    with pytest.raises(ValidationError):
        svc.create_study_group(_draft(name=name))
    assert svc.get_study_groups() == []


@pytest.mark.parametrize("name", ["Maths", "M" * 30])
def test_create_accepts_name_length_bounds(svc, name):
    assert svc.create_study_group(_draft(name=name)).name == name


@pytest.mark.parametrize("hours", [-14, 14, -12.01, 12.01])
def test_create_rejects_date_outside_window(svc, hours):
    with pytest.raises(ValidationError):
        svc.create_study_group(_draft(when=NOW + timedelta(hours=hours)))
    assert svc.get_study_groups() == []


@pytest.mark.parametrize("hours", [-12, -11, 0, 11, 12])
def test_create_accepts_date_inside_window(svc, hours):
    group = svc.create_study_group(_draft(when=NOW + timedelta(hours=hours)))
    assert group.create_date == NOW + timedelta(hours=hours)


def test_create_reads_naive_date_as_utc(svc):
    group = svc.create_study_group(_draft(when=datetime(2026, 3, 1, 2, 0)))
    assert group.create_date == datetime(2026, 3, 1, 2, 0, tzinfo=timezone.utc)


def test_create_normalises_offset_dates_to_utc(svc):
    plus_two = timezone(timedelta(hours=2))
    group = svc.create_study_group(_draft(when=datetime(2026, 3, 1, 14, 0, tzinfo=plus_two)))
    assert group.create_date == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_second_group_for_subject_is_rejected(svc):
    svc.create_study_group(_draft(group_id=1))
    with pytest.raises(ValidationError):
        svc.create_study_group(_draft(group_id=2, name="Math-456"))
    assert svc.get_study_group(1).name == "Math-123"
    with pytest.raises(NotFoundError):
        svc.get_study_group(2)


def test_subject_is_free_again_after_delete(svc):
    svc.create_study_group(_draft(group_id=1))
    svc.delete_study_group(1)
    assert svc.create_study_group(_draft(group_id=2)).id == 2


def test_duplicate_id_is_rejected(svc):
    svc.create_study_group(_draft(group_id=1))
    with pytest.raises(ValidationError):
        svc.create_study_group(_draft(group_id=1, subject=Subject.CHEMISTRY, name="Chem-100"))
    assert len(svc.get_study_groups()) == 1


def test_name_is_checked_before_date(svc):
    with pytest.raises(ValidationError, match="name"):
        svc.create_study_group(_draft(name="Ma", when=NOW + timedelta(hours=20)))


def test_date_is_checked_before_subject(svc):
    svc.create_study_group(_draft(group_id=1))
    with pytest.raises(ValidationError, match="create_date"):
        svc.create_study_group(_draft(group_id=2, when=NOW - timedelta(hours=20)))


def test_create_with_unknown_member_stores_nothing(svc):
    with pytest.raises(NotFoundError):
        svc.create_study_group(_draft(), member_ids=[1, 99])
    assert svc.get_study_groups() == []


def test_create_drops_repeated_members(svc):
    group = svc.create_study_group(_draft(), member_ids=[2, 1, 2])
    assert [u.id for u in group.users] == [2, 1]


def test_search_matches_subject_case_insensitively(svc):
    svc.create_study_group(_draft(group_id=1))
    svc.create_study_group(_draft(group_id=2, subject=Subject.PHYSICS, name="Phys-100"))
    for query in ("Math", "math", "MATH"):
        assert [g.id for g in svc.search_study_groups(query)] == [1]
    assert svc.search_study_groups("Chemistry") == []
    assert svc.search_study_groups("Biology") == []


def test_join_groups_for_different_subjects(svc):
    svc.create_study_group(_draft(group_id=1), member_ids=[1])
    svc.create_study_group(_draft(group_id=2, subject=Subject.CHEMISTRY, name="Chem-100"), member_ids=[2])
    assert [u.id for u in svc.join_study_group(1, 3).users] == [1, 3]
    assert [u.id for u in svc.join_study_group(2, 3).users] == [2, 3]


def test_join_twice_is_rejected_and_membership_unchanged(svc):
    svc.create_study_group(_draft(group_id=1), member_ids=[1])
    with pytest.raises(ValidationError):
        svc.join_study_group(1, 1)
    assert [u.id for u in svc.get_study_group(1).users] == [1]


def test_join_missing_group(svc):
    with pytest.raises(NotFoundError) as exc:
        svc.join_study_group(42, 1)
    assert exc.value.entity == "study group"


def test_join_missing_user(svc):
    svc.create_study_group(_draft(group_id=1), member_ids=[1])
    with pytest.raises(NotFoundError) as exc:
        svc.join_study_group(1, 99)
    assert exc.value.entity == "user"
    assert [u.id for u in svc.get_study_group(1).users] == [1]


def test_leave_removes_member(svc):
    svc.create_study_group(_draft(group_id=1), member_ids=[1, 2])
    assert [u.id for u in svc.leave_study_group(1, 2).users] == [1]


def test_leave_group_never_joined(svc):
    svc.create_study_group(_draft(group_id=1), member_ids=[1])
    with pytest.raises(NotFoundError) as exc:
        svc.leave_study_group(1, 3)
    assert exc.value.entity == "membership"


def test_leave_missing_group(svc):
    with pytest.raises(NotFoundError):
        svc.leave_study_group(42, 1)


def test_leave_missing_user(svc):
    svc.create_study_group(_draft(group_id=1), member_ids=[1])
    with pytest.raises(NotFoundError):
        svc.leave_study_group(1, 99)


def test_delete_is_idempotent(svc):
    svc.create_study_group(_draft(group_id=1))
    svc.delete_study_group(1)
    svc.delete_study_group(1)
    assert svc.get_study_groups() == []


def test_create_date_window_is_configurable(groups, users):
    svc = StudyGroupService(groups, users, clock=lambda: NOW, window_hours=1)
    with pytest.raises(ValidationError, match="1 hours"):
        svc.create_study_group(_draft(when=NOW + timedelta(hours=2)))


def test_in_memory_store_rejects_racing_subject(groups):
    groups.create_study_group(_draft(group_id=1))
    with pytest.raises(ValidationError):
        groups.create_study_group(_draft(group_id=2, name="Math-456"))


def test_delete_user_leaves_all_groups(svc, groups, users):
    svc.create_study_group(_draft(group_id=1), member_ids=[1, 2])
    svc.create_study_group(_draft(group_id=2, subject=Subject.PHYSICS, name="Phys-100"), member_ids=[2])
    UserService(users, groups).delete_user(2)
    assert users.get_user(2) is None
    assert [u.id for u in svc.get_study_group(1).users] == [1]
    assert svc.get_study_group(2).users == []


def test_user_service_rejects_duplicate_and_blank(users, groups):
    user_svc = UserService(users, groups)
    with pytest.raises(ValidationError):
        user_svc.create_user(User(id=1, name="Mike"))
    with pytest.raises(ValidationError):
        user_svc.create_user(User(id=4, name="  "))
    with pytest.raises(NotFoundError):
        user_svc.get_user(4)
    assert [u.id for u in user_svc.get_users()] == [1, 2, 3]


def test_in_memory_store_rejects_repeated_join(groups):
    groups.create_study_group(_draft(group_id=1))
    groups.join_study_group(1, 1)
    with pytest.raises(ValidationError):
        groups.join_study_group(1, 1)
    assert [u.id for u in groups.get_study_group(1).users] == [1]
