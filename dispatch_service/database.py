import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings


_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# None when REDIS_URL is not configured; the calendar is then always read from the database
redis_pool = redis.ConnectionPool.from_url(settings.REDIS_URL) if settings.REDIS_URL else None


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_redis_client():
    if redis_pool is None:
        yield None
        return
    client = redis.Redis(connection_pool=redis_pool)
    try:
        yield client
    finally:
        client.close()


Base = declarative_base()
