from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
import logging

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..errors import BadRequest, NotFound, Unauthorized, VerbaError
from ..models import User

router = APIRouter(prefix="/auth", tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class UserOut(BaseModel):
	id: int
	name: str
	email: str
	goal: Optional[str] = None
	level: Optional[str] = None

	@classmethod
	def from_row(cls, row: User) -> "UserOut":
		return cls(id=row.id, name=row.name, email=row.email, goal=row.goal, level=row.level)


class AuthResponse(BaseModel):
	message: str
	token: str
	user: UserOut


class RegisterRequest(BaseModel):
	name: str
	email: str
	password: str


class LoginRequest(BaseModel):
	email: str
	password: str


class EmailTaken(VerbaError):
	status_code = 409
	detail = "Email already registered"


def _truncate(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_truncate(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_truncate(plain_password), hashed_password)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
	row = db.query(User).filter(User.email == email.strip().lower()).first()
	if row and verify_password(password, row.password_hash):
		return row
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def token_for(user: User) -> str:
	return create_access_token({"sub": str(user.id)})


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	if not token:
		raise Unauthorized()
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		user_id = int(payload.get("sub"))
	except (JWTError, TypeError, ValueError):
		raise Unauthorized("Invalid token")
	user = db.get(User, user_id)
	if user is None:
		raise NotFound("User not found")
	return user


@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	name = (req.name or "").strip()
	email = (req.email or "").strip().lower()
	password = req.password or ""
	if not name or not email or not password:
		raise BadRequest("name, email and password are required")
	existing = db.query(User).filter(User.email == email).first()
	if existing:
		raise EmailTaken()
	row = User(name=name, email=email, password_hash=hash_password(password))
	db.add(row)
	db.commit()
	db.refresh(row)
	return AuthResponse(message="Account created", token=token_for(row), user=UserOut.from_row(row))


@router.post("/login", response_model=AuthResponse)
async def login(req: LoginRequest, db: Session = Depends(get_db)):
	user = authenticate_user(db, req.email, req.password)
	if not user:
		raise Unauthorized("Incorrect email or password")
	return AuthResponse(message="Logged in", token=token_for(user), user=UserOut.from_row(user))


@router.post("/token", response_model=Token)
async def issue_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise Unauthorized("Incorrect email or password")
	return Token(access_token=token_for(user))


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
	return UserOut.from_row(user)
