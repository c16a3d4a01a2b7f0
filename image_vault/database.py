from sqlmodel import SQLModel, create_engine, Session
from .config import settings

# Choose engine options based on database scheme
db_url = settings.DATABASE_URL
engine_kwargs = {}

if settings.uses_sqlite:
    # SQLite specific connect args; "timeout" bounds waits on a locked database
    engine_kwargs.update({
        "connect_args": {"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS}
    })
else:
    # Better resiliency for managed Postgres
    engine_kwargs.update({
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": settings.DB_TIMEOUT_SECONDS,
    })

engine = create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)

def create_db_and_tables(bind=None):
    # Import models so their tables are registered on the metadata
    from .db import models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
