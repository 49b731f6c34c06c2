import datetime
import logging
from operator import attrgetter
from typing import Optional, List

from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.api.errors import DuplicateUsername, InvalidCredentials, NotFound, ServerError, ValidationError
from src.api.streak import day_index, utc_today
from src.config import BCRYPT_ROUNDS
from src.db.models import User, Note

logger = logging.getLogger("food_journal.core")

# Password hashing setup
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

# ==== Pydantic Schemas ====

# PUBLIC_INTERFACE
class UserCreate(BaseModel):
    """Schema for user creation (signup) input."""
    username: str
    password: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None

# PUBLIC_INTERFACE
class UserRead(BaseModel):
    """Schema for the logged-in user shown on pages (without password)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    firstname: Optional[str] = None

# PUBLIC_INTERFACE
class NoteCreate(BaseModel):
    """Input schema for creating a note."""
    title: str
    note: str

# PUBLIC_INTERFACE
class NoteRead(BaseModel):
    """Returned data for a note, as consumed by templates and the streak analyzer."""
    model_config = ConfigDict(from_attributes=True)

    title: str
    note: str
    created_at: datetime.date
    day_diff_from_epoch: Optional[int] = None

    @property
    def day_index(self) -> int:
        if self.day_diff_from_epoch is None:
            return day_index(self.created_at)
        return self.day_diff_from_epoch

    @property
    def calendar_day(self) -> str:
        return self.created_at.isoformat()

# ==== Utility functions ====

# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash the plain password."""
    return pwd_context.hash(password)

# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against stored hash."""
    return pwd_context.verify(plain_password, hashed_password)

# PUBLIC_INTERFACE
def require_fields(message: str, *values: Optional[str]) -> None:
    """Raise ValidationError(message) unless every value is a non-empty string."""
    if not all(values):
        raise ValidationError(message)

def _database_error(db: Session, action: str) -> ServerError:
    db.rollback()
    logger.exception("Error %s", action)
    return ServerError()

# === CRUD for Users and Notes (used by API routes) ===

# PUBLIC_INTERFACE
def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """Get a user by ID, or None if not found."""
    return db.get(User, user_id)

# PUBLIC_INTERFACE
def get_user_by_username(db: Session, username: str) -> Optional[User]:
    """Get a user by username."""
    return db.query(User).filter(User.username == username).first()

# PUBLIC_INTERFACE
def create_user(db: Session, user: UserCreate) -> User:
    """Create a new user, raises DuplicateUsername if the username is taken."""
    try:
        if get_user_by_username(db, user.username):
            raise DuplicateUsername()
        db_user = User(
            username=user.username,
            password=get_password_hash(user.password),
            firstname=user.firstname,
            lastname=user.lastname,
        )
        db.add(db_user)
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same username
        db.rollback()
        raise DuplicateUsername()
    except SQLAlchemyError:
        raise _database_error(db, "registering user")
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.username)
    return db_user

# PUBLIC_INTERFACE
def authenticate_user(db: Session, username: Optional[str], password: Optional[str]) -> User:
    """Authenticate user by username and password; raises NotFound or InvalidCredentials."""
    try:
        user = get_user_by_username(db, username) if username else None
    except SQLAlchemyError:
        raise _database_error(db, "logging in")
    if user is None:
        logger.info("Login failed: unknown username %r", username)
        raise NotFound()
    if not password or not verify_password(password, user.password):
        logger.info("Login failed: wrong password for %r", username)
        raise InvalidCredentials()
    return user

# PUBLIC_INTERFACE
def create_note(db: Session, user_id: int, note: NoteCreate, day: Optional[datetime.date] = None) -> Note:
    """Create a note dated today (UTC) for the user, with its day index derived once here."""
    day = day or utc_today()
    db_note = Note(
        user_id=user_id,
        title=note.title,
        note=note.note,
        created_at=day,
        day_diff_from_epoch=day_index(day),
    )
    try:
        db.add(db_note)
        db.commit()
    except SQLAlchemyError:
        raise _database_error(db, "saving note")
    db.refresh(db_note)
    logger.info("Saved note %d for user %d", db_note.id, user_id)
    return db_note

# PUBLIC_INTERFACE
def get_user_notes(db: Session, user_id: int) -> List[NoteRead]:
    """
    All dated notes of the user, most recent day first.
    Rows without a created_at cannot be placed on a day and are left out.
    """
    rows = (
        db.query(Note)
        .filter(Note.user_id == user_id, Note.created_at.is_not(None))
        .order_by(Note.day_diff_from_epoch.desc().nulls_last(), Note.created_at.desc(), Note.id.desc())
        .all()
    )
    notes = [NoteRead.model_validate(row) for row in rows]
    # rows not backfilled yet sort by their date; the sort is stable so same-day order holds
    notes.sort(key=attrgetter("day_index"), reverse=True)
    return notes
