from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from passlib.context import CryptContext
from pydantic import BaseModel
import logging

from ..settings import Settings, get_settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..errors import commit
from ..models import User
from ..sessions import SessionStore

router = APIRouter(tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
logger = logging.getLogger(__name__)


def make_password_context(settings: Settings) -> CryptContext:
	return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)


class Credentials(BaseModel):
	email: Optional[str] = None
	password: Optional[str] = None


def user_payload(user: User) -> Dict[str, Any]:
	return {"id": user.id, "email": user.email, "is_admin": bool(user.is_admin)}


def get_session_store(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> SessionStore:
	return SessionStore(db, ttl_hours=settings.session_ttl_hours)


def get_optional_user(
	request: Request,
	store: SessionStore = Depends(get_session_store),
	settings: Settings = Depends(get_settings),
) -> Optional[User]:
	return store.resolve(request.cookies.get(settings.session_cookie_name))


def require_user(user: Optional[User] = Depends(get_optional_user)) -> User:
	if user is None:
		raise HTTPException(status_code=401, detail="Unauthorised")
	return user


def require_admin(user: User = Depends(require_user)) -> User:
	if not user.is_admin:
		raise HTTPException(status_code=403, detail="Admin only")
	return user


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
	response.set_cookie(
		settings.session_cookie_name,
		token,
		max_age=settings.session_ttl_hours * 60 * 60,
		path="/",
		httponly=True,
		samesite="lax",
		secure=settings.session_cookie_secure,
	)


def _clear_session_cookie(response: Response, settings: Settings) -> None:
	response.delete_cookie(
		settings.session_cookie_name,
		path="/",
		httponly=True,
		samesite="lax",
		secure=settings.session_cookie_secure,
	)


@router.get("/me")
def me(user: Optional[User] = Depends(get_optional_user)):
	return {"user": user_payload(user) if user else None}


@router.post("/register")
def register(
	req: Credentials,
	request: Request,
	response: Response,
	db: Session = Depends(get_db),
	store: SessionStore = Depends(get_session_store),
	settings: Settings = Depends(get_settings),
):
	if not req.email or not req.password:
		raise HTTPException(status_code=400, detail="Email and password are required.")
	email = req.email.strip().lower()
	if not email or len(req.password) < settings.password_min_length:
		raise HTTPException(
			status_code=400,
			detail=f"Please provide a valid email and a password of {settings.password_min_length}+ characters.",
		)
	# bcrypt cannot hash NUL bytes
	if "\x00" in req.password:
		raise HTTPException(status_code=400, detail="Password contains an invalid character.")
	pwd_context: CryptContext = request.app.state.pwd_context
	row = User(
		email=email,
		password_hash=pwd_context.hash(req.password),
		is_admin=email in settings.admin_email_set,
	)
	db.add(row)
	commit(db, unique_field="email", message="An account with that email already exists.")
	logger.info("Registered user %s (admin=%s)", row.id, row.is_admin)
	token = store.create(row.id)
	_set_session_cookie(response, settings, token)
	return {"ok": True, "user": user_payload(row)}


@router.post("/login")
def login(
	req: Credentials,
	request: Request,
	response: Response,
	db: Session = Depends(get_db),
	store: SessionStore = Depends(get_session_store),
	settings: Settings = Depends(get_settings),
):
	if not req.email or not req.password:
		raise HTTPException(status_code=400, detail="Email and password are required.")
	email = req.email.strip().lower()
	pwd_context: CryptContext = request.app.state.pwd_context
	user = db.query(User).filter(User.email == email).first()
	if user is None or "\x00" in req.password or not pwd_context.verify(req.password, user.password_hash):
		raise HTTPException(status_code=401, detail="Incorrect email or password.")
	token = store.create(user.id)
	_set_session_cookie(response, settings, token)
	return {"ok": True, "user": user_payload(user)}


@router.post("/logout")
def logout(
	request: Request,
	response: Response,
	store: SessionStore = Depends(get_session_store),
	settings: Settings = Depends(get_settings),
):
	store.revoke(request.cookies.get(settings.session_cookie_name))
	_clear_session_cookie(response, settings)
	return {"ok": True}
