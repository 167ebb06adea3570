import logging

from fastapi import FastAPI, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.errors import NotFoundError, UnauthorizedError, ValidationError, register_error_handlers
from shared.log import configure_logging
from shared.validation import Rule, validated, required, is_email, min_length, matches, parse_id
from .db import Base, engine, get_db
from .models import User
from .schemas import UserCreate, LoginIn, UserOut, UserProfile, TokenOut
from .auth import hash_password, verify_password, create_access_token, gravatar_url, get_current_user_id


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Users Service")
register_error_handlers(app)


REGISTER_RULES = [
    Rule("name", required, "Name is required"),
    Rule("email", is_email, "Please include a valid email"),
    Rule("password", min_length(6), "Password must be 6 or more characters"),
    Rule("password2", matches("password"), "Passwords do not match"),
]

LOGIN_RULES = [
    Rule("email", is_email, "Please include a valid email"),
    Rule("password", required, "Password is required"),
]


@app.on_event("startup")
async def on_startup():
    Base.metadata.create_all(bind=engine)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


@app.post("/users", response_model=TokenOut)
def register(user_in: UserCreate = Depends(validated(UserCreate, REGISTER_RULES)), db: Session = Depends(get_db)):
    email = _normalize_email(user_in.email)
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("User already exists", field="email")
    user = User(
        name=user_in.name.strip(),
        email=email,
        avatar=gravatar_url(email),
        password_hash=hash_password(user_in.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another registration for the same email committed first
        db.rollback()
        raise ValidationError("User already exists", field="email")
    db.refresh(user)
    logger.info("Registered user %s", user.user_id)
    return TokenOut(access_token=create_access_token(subject=str(user.user_id)))


@app.post("/auth", response_model=TokenOut)
def login(credentials: LoginIn = Depends(validated(LoginIn, LOGIN_RULES)), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == _normalize_email(credentials.email)).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    return TokenOut(access_token=create_access_token(subject=str(user.user_id)))


@app.get("/auth", response_model=UserOut)
def current_user(current_user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    user = db.get(User, current_user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserOut.model_validate(user)


@app.get("/users/{user_id}", response_model=UserProfile)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """
    Public profile lookup. The posts service calls this to snapshot a
    user's name and avatar onto posts and comments.
    """
    pk = parse_id(user_id)
    user = db.get(User, pk) if pk is not None else None
    if not user:
        raise NotFoundError("User not found")
    return UserProfile.model_validate(user)
