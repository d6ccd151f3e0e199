"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the study groups backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Domain errors raised by services
are turned into status codes by a single exception handler.

Endpoints implemented:
- POST /users
- GET /users
- GET /users/{user_id}
- DELETE /users/{user_id}
- POST /studygroups
- GET /studygroups
- GET /studygroups/search
- GET /studygroups/{group_id}
- POST /studygroups/{group_id}/join
- POST /studygroups/{group_id}/leave
- DELETE /studygroups/{group_id}
- GET /health
"""

from fastapi import FastAPI, Depends, Path, Query, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Annotated, List
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, repositories, models
from .errors import StudyGroupError
from .schemas import ID_MAX, ID_MIN, StudyGroupIn, StudyGroupOut, UserIn, UserOut
from .utils.datetime_utils import to_iso
from .config import settings

app = FastAPI(title="Study Groups API")
logger = logging.getLogger("studygroups.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps local front-ends working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

PathId = Annotated[int, Path(ge=ID_MIN, le=ID_MAX)]
QueryId = Annotated[int, Query(ge=ID_MIN, le=ID_MAX)]


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(StudyGroupError)
async def study_group_error_handler(request: Request, exc: StudyGroupError):
    """Map domain errors to their HTTP status with a `detail` message."""
    logger.warning(
        "request_rejected %s",
        json.dumps(
            {
                "request_id": getattr(request.state, "request_id", ""),
                "path": request.url.path,
                "status_code": exc.status_code,
                "error": str(exc),
            },
            ensure_ascii=True,
        ),
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def get_study_group_service(db: Session = Depends(get_session)) -> services.StudyGroupService:
    """Build a `StudyGroupService` over SQL repositories for one request."""
    return services.StudyGroupService(
        repositories.SqlStudyGroupRepository(db),
        repositories.SqlUserRepository(db),
    )


def get_user_service(db: Session = Depends(get_session)) -> services.UserService:
    return services.UserService(
        repositories.SqlUserRepository(db),
        repositories.SqlStudyGroupRepository(db),
    )


def _user_out(user: models.User) -> UserOut:
    return UserOut(id=user.id, name=user.name)


def _study_group_out(group: models.StudyGroup) -> StudyGroupOut:
    return StudyGroupOut(
        id=group.id,
        name=group.name,
        subject=group.subject,
        create_date=to_iso(group.create_date),
        users=[_user_out(u) for u in group.users],
    )


@app.post('/users', status_code=201, response_model=UserOut)
def create_user(payload: UserIn, svc: services.UserService = Depends(get_user_service)):
    """Create a user with a caller-chosen id. Duplicate ids are rejected with 400."""
    user = svc.create_user(models.User(id=payload.id, name=payload.name))
    return _user_out(user)


@app.get('/users', response_model=List[UserOut])
def list_users(svc: services.UserService = Depends(get_user_service)):
    return [_user_out(u) for u in svc.get_users()]


@app.get('/users/{user_id}', response_model=UserOut)
def get_user(user_id: PathId, svc: services.UserService = Depends(get_user_service)):
    return _user_out(svc.get_user(user_id))


@app.delete('/users/{user_id}', status_code=204)
def delete_user(user_id: PathId, svc: services.UserService = Depends(get_user_service)):
    """Delete a user and drop them from every study group (idempotent)."""
    svc.delete_user(user_id)
    return Response(status_code=204)


@app.post('/studygroups', status_code=201, response_model=StudyGroupOut)
def create_study_group(payload: StudyGroupIn, svc: services.StudyGroupService = Depends(get_study_group_service)):
    """Create a study group.

    Returns 400 when the name is not 5-30 characters long, when
    `create_date` is more than 12 hours away from now, when the subject
    already has a group or the id is taken; 404 when a listed user does
    not exist.
    """
    draft = models.StudyGroup(
        id=payload.id,
        name=payload.name,
        subject=payload.subject,
        create_date=payload.create_date,
    )
    group = svc.create_study_group(draft, member_ids=payload.user_ids)
    return _study_group_out(group)


@app.get('/studygroups', response_model=List[StudyGroupOut])
def list_study_groups(svc: services.StudyGroupService = Depends(get_study_group_service)):
    """List every study group ordered by id."""
    return [_study_group_out(g) for g in svc.get_study_groups()]


@app.get('/studygroups/search', response_model=List[StudyGroupOut])
def search_study_groups(subject: str, svc: services.StudyGroupService = Depends(get_study_group_service)):
    """List the study groups for `subject` (case-insensitive).

    An unknown subject yields an empty list.
    """
    return [_study_group_out(g) for g in svc.search_study_groups(subject)]


@app.get('/studygroups/{group_id}', response_model=StudyGroupOut)
def get_study_group(group_id: PathId, svc: services.StudyGroupService = Depends(get_study_group_service)):
    return _study_group_out(svc.get_study_group(group_id))


@app.post('/studygroups/{group_id}/join', response_model=StudyGroupOut)
def join_study_group(group_id: PathId, user_id: QueryId, svc: services.StudyGroupService = Depends(get_study_group_service)):
    """Add `user_id` to the group.

    404 when the group or user is missing, 400 when already a member.
    """
    return _study_group_out(svc.join_study_group(group_id, user_id))


@app.post('/studygroups/{group_id}/leave', response_model=StudyGroupOut)
def leave_study_group(group_id: PathId, user_id: QueryId, svc: services.StudyGroupService = Depends(get_study_group_service)):
    """Remove `user_id` from the group.

    404 when the group or user is missing or the user is not a member.
    """
    return _study_group_out(svc.leave_study_group(group_id, user_id))


@app.delete('/studygroups/{group_id}', status_code=204)
def delete_study_group(group_id: PathId, svc: services.StudyGroupService = Depends(get_study_group_service)):
    """Delete a study group. Absent ids also return 204."""
    svc.delete_study_group(group_id)
    return Response(status_code=204)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
