from sqlalchemy import Column, Integer, String, ForeignKey, Date, Text, func
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

# PUBLIC_INTERFACE
class User(Base):
    """
    Database model for a user.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    firstname = Column(String(50), nullable=True)
    lastname = Column(String(50), nullable=True)

    notes = relationship("Note", back_populates="owner", cascade="all, delete-orphan")


# PUBLIC_INTERFACE
class Note(Base):
    """
    Database model for a food journal entry.

    day_diff_from_epoch is derived from created_at once, at insert time.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title = Column(String(255), nullable=False)
    note = Column(Text, nullable=False)
    created_at = Column(Date, server_default=func.current_date())
    day_diff_from_epoch = Column(Integer, nullable=True)

    owner = relationship("User", back_populates="notes")
