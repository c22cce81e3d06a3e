from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from weatherbird.config import settings

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {},
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    import weatherbird.models.weather  # noqa: F401
    import weatherbird.models.district  # noqa: F401
    Base.metadata.create_all(bind=engine)
