import datetime
from unittest.mock import MagicMock

import pytest
from jose import jwt
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from src.api.main import app
from src.api.core import NoteCreate, create_note
from src.api.sessions import SessionStore
from src.api.streak import day_index, utc_today
from src.config import SESSION_COOKIE_NAME
from src.db.db import get_db
from src.db.models import Note, User


def broken_db():
    db = MagicMock()
    failure = OperationalError("SELECT 1", {}, Exception("connection refused"))
    db.get.side_effect = failure
    db.query.side_effect = failure
    db.commit.side_effect = failure
    return db


# --- Pages ---

@pytest.mark.parametrize("path", ["/", "/about", "/notes", "/login", "/signup"])
def test_pages_render_for_anonymous_visitors(client, path):
    response = client.get(path)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert 'href="/login"' in response.text


def test_health(client):
    assert client.get("/health").json() == {"message": "Healthy"}


def test_forgot_password_is_not_implemented(client):
    response = client.get("/forgot-password")
    assert response.status_code == 501
    assert "not yet implemented" in response.text


# --- Signup ---

def test_signup_creates_user_with_hashed_password(client, signed_up, db):
    user = db.query(User).filter(User.username == "alice").one()
    assert user.firstname == "Alice"
    assert user.lastname == "Smith"
    assert user.password != "s3cret"
    assert user.password.startswith("$2")


def test_signup_success_message(client):
    response = client.post("/signup", data={"username": "bob", "password": "pw"})
    assert response.status_code == 200
    assert "Registration successful!" in response.text


def test_signup_duplicate_username(client, signed_up, db):
    response = client.post("/signup", data={"username": "alice", "password": "other"})
    assert response.status_code == 400
    assert response.text == "Username already exists."
    assert db.query(User).filter(User.username == "alice").count() == 1


@pytest.mark.parametrize("data", [{"username": "bob"}, {"password": "pw"}, {"username": "", "password": "pw"}])
def test_signup_requires_username_and_password(client, db, data):
    response = client.post("/signup", data=data)
    assert response.status_code == 400
    assert response.text == "Username and password are required."
    assert db.query(User).count() == 0


# --- Login / logout ---

def test_login_sets_session_cookie(client, signed_up, session_store):
    response = client.post("/login", data=signed_up, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert SESSION_COOKIE_NAME in response.cookies
    assert len(session_store) == 1


def test_login_unknown_username(client, session_store):
    response = client.post("/login", data={"username": "nobody", "password": "pw"}, follow_redirects=False)
    assert response.status_code == 400
    assert "username not found!" in response.text
    assert len(session_store) == 0


def test_login_wrong_password(client, signed_up, session_store):
    response = client.post("/login", data={"username": "alice", "password": "wrong"}, follow_redirects=False)
    assert response.status_code == 400
    assert "Invalid username or password!" in response.text
    assert SESSION_COOKIE_NAME not in response.cookies
    assert len(session_store) == 0


def test_home_page_for_logged_in_user(logged_in):
    response = logged_in.get("/")
    assert response.status_code == 200
    assert "Hi, Alice" in response.text
    assert 'action="/foodNoteForm"' in response.text
    assert "No streak yet" in response.text


def test_logout_destroys_session(logged_in, session_store):
    response = logged_in.get("/logout", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert len(session_store) == 0
    assert "Hi, Alice" not in logged_in.get("/").text


def test_logout_without_session(client):
    response = client.get("/logout", follow_redirects=False)
    assert response.status_code == 302


def test_logout_with_stale_session_cookie_clears_it(client):
    client.cookies.set(SESSION_COOKIE_NAME, "garbage")
    response = client.get("/logout", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert SESSION_COOKIE_NAME in response.headers["set-cookie"]
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_logout_with_session_from_rotated_secret(client):
    old_store = SessionStore(secret="previous-secret")
    client.cookies.set(SESSION_COOKIE_NAME, old_store.create(1, "alice"))
    response = client.get("/logout", follow_redirects=False)
    assert response.status_code == 302


def test_logout_session_error_is_500(client):
    client.cookies.set(SESSION_COOKIE_NAME, jwt.encode({"user": 1}, "test-secret", algorithm="HS256"))
    response = client.get("/logout", follow_redirects=False)
    assert response.status_code == 500
    assert response.text == "Internal Server Error"


# --- Notes ---

def test_note_requires_session(client, db):
    response = client.post("/foodNoteForm", data={"FoodTitle": "toast", "FoodNote": "with jam"}, follow_redirects=False)
    assert response.status_code == 401
    assert "Unauthorized" in response.text
    assert db.query(Note).count() == 0


@pytest.mark.parametrize("data", [{"FoodTitle": "toast"}, {"FoodNote": "with jam"}, {}])
def test_note_requires_title_and_body(logged_in, db, data):
    response = logged_in.post("/foodNoteForm", data=data, follow_redirects=False)
    assert response.status_code == 400
    assert response.text == "foodTitle and FoodNote are required."
    assert db.query(Note).count() == 0


def test_note_is_saved_for_today(logged_in, db):
    response = logged_in.post("/foodNoteForm", data={"FoodTitle": "toast", "FoodNote": "with jam"}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/"

    note = db.query(Note).one()
    today = utc_today()
    assert (note.title, note.note) == ("toast", "with jam")
    assert note.created_at == today
    assert note.day_diff_from_epoch == day_index(today)
    assert note.owner.username == "alice"


def test_streak_shown_after_notes(logged_in, db):
    user = db.query(User).filter(User.username == "alice").one()
    today = utc_today()
    for days_ago in (0, 1, 1, 2):
        create_note(db, user.id, NoteCreate(title="meal", note="food"), day=today - datetime.timedelta(days=days_ago))

    page = logged_in.get("/").text
    assert "3 day streak" in page
    assert "You missed a day" not in page
    assert (today - datetime.timedelta(days=2)).isoformat() in page


def test_broken_streak_is_flagged(logged_in, db):
    user = db.query(User).filter(User.username == "alice").one()
    today = utc_today()
    for days_ago in (0, 5):
        create_note(db, user.id, NoteCreate(title="meal", note="food"), day=today - datetime.timedelta(days=days_ago))

    page = logged_in.get("/").text
    assert "1 day streak" in page
    assert "You missed a day" in page


def test_notes_page_lists_history(logged_in, db):
    user = db.query(User).filter(User.username == "alice").one()
    create_note(db, user.id, NoteCreate(title="pancakes", note="maple syrup"), day=datetime.date(2020, 1, 1))
    page = logged_in.get("/notes").text
    assert "pancakes" in page
    assert "2020-01-01" in page


# --- Database failures ---

def test_pages_degrade_to_anonymous_on_database_error(client, session_store):
    client.cookies.set(SESSION_COOKIE_NAME, session_store.create(1, "alice"))
    app.dependency_overrides[get_db] = broken_db
    response = client.get("/")
    assert response.status_code == 200
    assert 'href="/login"' in response.text


def test_note_database_error_is_generic_500(client, session_store):
    client.cookies.set(SESSION_COOKIE_NAME, session_store.create(1, "alice"))
    app.dependency_overrides[get_db] = broken_db
    response = client.post("/foodNoteForm", data={"FoodTitle": "toast", "FoodNote": "jam"}, follow_redirects=False)
    assert response.status_code == 500
    assert response.text == "Internal server error"


def test_signup_database_error_is_generic_500(client):
    app.dependency_overrides[get_db] = broken_db
    response = client.post("/signup", data={"username": "bob", "password": "pw"})
    assert response.status_code == 500
    assert response.text == "Internal server error"


def test_undated_legacy_note_does_not_break_pages(logged_in, db):
    user = db.query(User).filter(User.username == "alice").one()
    create_note(db, user.id, NoteCreate(title="toast", note="jam"))
    db.execute(
        text("INSERT INTO notes (user_id, title, note, created_at, day_diff_from_epoch) VALUES (:uid, 'old', 'x', NULL, NULL)"),
        {"uid": user.id},
    )
    db.commit()

    response = logged_in.get("/")
    assert response.status_code == 200
    assert "Hi, Alice" in response.text
    assert "1 day streak" in response.text
