from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from talentflow.core.config import settings

_engine_kwargs = {"pool_pre_ping": True}
if settings.DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    _engine_kwargs.update(pool_size=10, max_overflow=20)

# Create SQLAlchemy engine
engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for models
Base = declarative_base()


def get_db():
    """
    Dependency function to get database session.
    Used in FastAPI endpoints with Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Initialize database.

    Imports the models so they register on ``Base.metadata`` and creates any
    missing tables.
    """
    from talentflow.models import candidate, job, application  # noqa: F401
    Base.metadata.create_all(bind=engine)
