"""FastAPI dependencies wiring sessions, storage and the change feed into services."""

from fastapi import Depends
from fastapi.requests import HTTPConnection
from sqlmodel import Session

from .database import get_db
from .identity import HttpIdentityProvider, IdentityProvider
from .security import get_current_user
from .schemas.auth import SessionUser
from .services.board import TaskBoard
from .services.live import ChangeFeed
from .services.profile import ProfileService
from .services.task_mutation import TaskMutationService
from .services.task_query import TaskQueryService
from .storage import ObjectStorage


def get_storage(conn: HTTPConnection) -> ObjectStorage:
    return conn.app.state.storage


def get_change_feed(conn: HTTPConnection) -> ChangeFeed:
    return conn.app.state.change_feed


def get_identity_provider() -> IdentityProvider:
    return HttpIdentityProvider()


def get_task_queries(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> TaskQueryService:
    return TaskQueryService(db, storage)


def get_task_mutations(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    feed: ChangeFeed = Depends(get_change_feed),
) -> TaskMutationService:
    return TaskMutationService(db, storage, feed)


def get_task_board(
    current_user: SessionUser = Depends(get_current_user),
    queries: TaskQueryService = Depends(get_task_queries),
    mutations: TaskMutationService = Depends(get_task_mutations),
    feed: ChangeFeed = Depends(get_change_feed),
) -> TaskBoard:
    return TaskBoard(current_user.id, queries, mutations, feed)


def get_profile_service(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> ProfileService:
    return ProfileService(db, storage)
