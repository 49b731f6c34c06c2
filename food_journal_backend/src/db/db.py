from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.config import DATABASE_URL

SessionLocal = sessionmaker(autoflush=False)
engine = None


# PUBLIC_INTERFACE
def configure_engine(url: str = DATABASE_URL, **kwargs):
    """
    (Re)bind the session factory to a new engine and return it.
    Extra keyword arguments are passed to create_engine (poolclass, connect_args...).
    """
    global engine
    engine = create_engine(url, echo=False, future=True, **kwargs)
    SessionLocal.configure(bind=engine)
    return engine


configure_engine()


# PUBLIC_INTERFACE
def get_db():
    """
    Yields a SQLAlchemy session for use in dependency injection.
    Closes the session after use.
    Example usage (FastAPI):
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
