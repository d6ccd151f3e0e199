"""CLI script to load demo users and study groups into the backend DB.
Usage: python scripts/seed_demo.py [--file seed.json]

The JSON file holds {"users": [{"id", "name"}], "study_groups": [{"id",
"name", "subject", "user_ids"}]}. Study groups are stamped with the
current time. Records that already exist are reported and skipped.
"""
import sys
import json
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `studygroups` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from studygroups.database import engine, create_db_and_tables
from studygroups import models, repositories, services
from studygroups.errors import StudyGroupError
from studygroups.utils.datetime_utils import utc_now

DEMO = {
    'users': [
        {'id': 1, 'name': 'John'},
        {'id': 2, 'name': 'Miguel'},
        {'id': 3, 'name': 'Anton'},
    ],
    'study_groups': [
        {'id': 1, 'name': 'Math-101', 'subject': 'Math', 'user_ids': [1, 2]},
        {'id': 2, 'name': 'Chem-201', 'subject': 'Chemistry', 'user_ids': [3]},
    ],
}


def main(seed_file: Optional[pathlib.Path] = None, db_engine=engine) -> dict:
    """Create the users and groups described by `seed_file` (or the demo set).

    Returns counts of created and skipped records and prints one line
    per record for a quick CLI feedback loop.
    """
    data = json.loads(seed_file.read_text(encoding='utf-8')) if seed_file else DEMO
    create_db_and_tables()
    created = 0
    skipped = 0
    with Session(db_engine) as session:
        user_repo = repositories.SqlUserRepository(session)
        group_repo = repositories.SqlStudyGroupRepository(session)
        user_svc = services.UserService(user_repo, group_repo)
        group_svc = services.StudyGroupService(group_repo, user_repo)
        for u in data.get('users', []):
            try:
                user_svc.create_user(models.User(id=u['id'], name=u['name']))
                created += 1
                print(f"Created user {u['id']}")
            except StudyGroupError as e:
                skipped += 1
                print(f"Skipped user {u['id']}: {e}")
        for g in data.get('study_groups', []):
            subject = models.Subject.parse(g['subject'])
            if subject is None:
                skipped += 1
                print(f"Skipped study group {g.get('id')}: unknown subject {g['subject']}")
                continue
            draft = models.StudyGroup(id=g.get('id'), name=g['name'], subject=subject, create_date=utc_now())
            try:
                group_svc.create_study_group(draft, member_ids=g.get('user_ids', []))
                created += 1
                print(f"Created study group {g.get('id')}")
            except StudyGroupError as e:
                skipped += 1
                print(f"Skipped study group {g.get('id')}: {e}")
    print(f'Total created: {created}, skipped {skipped}')
    return {'created': created, 'skipped': skipped}

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--file', type=pathlib.Path, help='JSON seed file (defaults to the built-in demo set)')
    args = parser.parse_args()
    main(seed_file=args.file)
