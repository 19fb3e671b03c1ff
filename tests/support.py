import asyncio

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cache_layer import AcademicStore
from database import init_db
from exam_types import ExamTypeRegistry


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_store(**kwargs):
    return AcademicStore(session_factory=make_session_factory(), exam_types=ExamTypeRegistry(), **kwargs)


def run(coro):
    return asyncio.run(coro)
