import datetime
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from src import config
from src.api.context import PageContext, get_page_context
from src.api.core import NoteCreate, UserCreate, authenticate_user, create_note, create_user, require_fields
from src.api.errors import Unauthorized
from src.api.sessions import SessionData, SessionStore, get_current_session, get_session_store
from src.db import db as database
from src.db.db import get_db
from src.db.migrations import run_migrations

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("food_journal")

BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

FORGOT_PASSWORD_PAGE = """
<html>
    <head><title>Feature Not Implemented</title></head>
    <body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
        <h1>Forgot Password</h1>
        <p>This feature is not yet implemented.</p>
        <p>Please contact the admin or software engineer for assistance.</p>
        <a href="/">Back to homepage</a>.
    </body>
</html>
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not run_migrations(database.engine):
        logger.error("Schema migration failed, continuing with the existing schema")
    logger.info("Server listening on port %d", config.PORT)
    yield


app = FastAPI(
    title="Food Journal",
    description="Log daily food notes and keep your streak going.",
    version="1.0",
    lifespan=lifespan,
)

if config.SESSION_SECRET == "notsosecret":
    logger.warning("SESSION_SECRET is not set, using the insecure default")
app.state.session_store = SessionStore(
    secret=config.SESSION_SECRET,
    algorithm=config.SESSION_ALGORITHM,
    max_age=datetime.timedelta(minutes=config.SESSION_MAX_AGE_MINUTES),
)

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every expected failure is answered with its message as a small HTML body."""
    return HTMLResponse(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))


def render(request: Request, template: str, context: PageContext):
    return templates.TemplateResponse(request, template, context.as_template_vars())


@app.get("/health", tags=["health"])
def health_check():
    """Health check root."""
    return {"message": "Healthy"}

# --- Pages ---

@app.get("/", response_class=HTMLResponse)
def index(request: Request, context: PageContext = Depends(get_page_context)):
    return render(request, "index.html", context)

@app.get("/about", response_class=HTMLResponse)
def about(request: Request, context: PageContext = Depends(get_page_context)):
    return render(request, "about.html", context)

@app.get("/notes", response_class=HTMLResponse)
def notes(request: Request, context: PageContext = Depends(get_page_context)):
    return render(request, "notes.html", context)

@app.get("/login", response_class=HTMLResponse)
def login_form(request: Request, context: PageContext = Depends(get_page_context)):
    return render(request, "login.html", context)

@app.get("/signup", response_class=HTMLResponse)
def signup_form(request: Request, context: PageContext = Depends(get_page_context)):
    return render(request, "signup.html", context)

@app.get("/forgot-password", response_class=HTMLResponse)
def forgot_password():
    """Password reset is not offered."""
    return HTMLResponse(FORGOT_PASSWORD_PAGE, status_code=status.HTTP_501_NOT_IMPLEMENTED)

# --- Authentication ---

# PUBLIC_INTERFACE
@app.post("/signup", response_class=HTMLResponse)
def signup(
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    firstName: Optional[str] = Form(None),
    lastName: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    """Register a new user. Username must be unique."""
    require_fields("Username and password are required.", username, password)
    create_user(db, UserCreate(username=username, password=password, firstname=firstName, lastname=lastName))
    return 'Registration successful! You can now <a href="/">log in</a>.'

# PUBLIC_INTERFACE
@app.post("/login")
def login(
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Check the credentials and open a session cookie."""
    user = authenticate_user(db, username, password)
    token = store.create(user.id, user.username)
    logger.info("User %s logged in", user.username)
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_MAX_AGE_MINUTES * 60,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return response

# PUBLIC_INTERFACE
@app.get("/logout")
def logout(request: Request, store: SessionStore = Depends(get_session_store)):
    """Destroy the session and go back home."""
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if token and store.destroy(token):
        logger.info("Session closed")
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return response

# --- Notes ---

# PUBLIC_INTERFACE
@app.post("/foodNoteForm")
def food_note_form(
    FoodTitle: Optional[str] = Form(None),
    FoodNote: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    session: Optional[SessionData] = Depends(get_current_session),
):
    """Save today's food note for the logged-in user."""
    if session is None:
        raise Unauthorized()
    require_fields("foodTitle and FoodNote are required.", FoodTitle, FoodNote)
    create_note(db, session.user_id, NoteCreate(title=FoodTitle, note=FoodNote))
    return RedirectResponse("/", status_code=status.HTTP_302_FOUND)


def run():
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("src.api.main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
