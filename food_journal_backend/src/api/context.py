import logging
from typing import List, NamedTuple, Optional

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.api.core import NoteRead, UserRead, get_user_by_id, get_user_notes
from src.api.sessions import SessionData, get_current_session
from src.api.streak import StreakView, analyze_streak
from src.db.db import get_db

logger = logging.getLogger("food_journal.context")


# PUBLIC_INTERFACE
class PageContext(NamedTuple):
    """View-model every page is rendered with."""
    user: Optional[UserRead]
    notes: List[NoteRead]
    streak: StreakView

    def as_template_vars(self) -> dict:
        return {
            "user": self.user,
            "notes": self.notes,
            "gaps": self.streak.gaps,
            "has_gap": self.streak.has_gap,
            "streak": self.streak,
        }


ANONYMOUS = PageContext(user=None, notes=[], streak=StreakView([], False))


# PUBLIC_INTERFACE
def build_page_context(db: Session, session: Optional[SessionData]) -> PageContext:
    """Load the session's user and notes and compute their streak."""
    if session is None:
        return ANONYMOUS
    db_user = get_user_by_id(db, session.user_id)
    if db_user is None:
        return ANONYMOUS
    notes = get_user_notes(db, db_user.id)
    return PageContext(UserRead.model_validate(db_user), notes, analyze_streak(notes))


# PUBLIC_INTERFACE
def get_page_context(
    db: Session = Depends(get_db),
    session: Optional[SessionData] = Depends(get_current_session),
) -> PageContext:
    """
    Enrichment step run before every page handler.
    A database failure degrades to the anonymous view instead of failing the page.
    """
    try:
        return build_page_context(db, session)
    except SQLAlchemyError:
        logger.exception("Error fetching user data or notes")
        return ANONYMOUS
