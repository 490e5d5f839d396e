import hmac
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.config import Settings
from app.core.errors import ConflictError, ForbiddenError, UnauthorizedError
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import Identity, LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_TOKEN = "Not authorized, token failed"


class AuthService:
    """
    Credential handling.

    Responsibilities:
      - register accounts (bcrypt-hashed passwords, unique username/email)
      - verify email/password and issue HS256 access tokens
      - verify access tokens into an Identity(id, role)
    """

    def __init__(self, repo: UserRepository, settings: Settings):
        self.repo = repo
        self.secret = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALG
        self.expires = timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
        self.admin_registration_key = settings.ADMIN_REGISTRATION_KEY

    # ----- Passwords -----

    @staticmethod
    def hash_password(plain_password: str) -> str:
        return pwd_context.hash(plain_password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    # ----- Tokens -----

    def create_access_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "sub": str(user.id),
            "role": user.role,
            "iat": int(now.timestamp()),
            "exp": now + self.expires,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Identity:
        """
        Decode and verify an access token.

        Expired, malformed and badly signed tokens all produce the same
        Unauthorized error.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return Identity(id=uuid.UUID(payload["sub"]), role=payload["role"])
        except (JWTError, KeyError, ValueError, TypeError, PydanticValidationError):
            raise UnauthorizedError(INVALID_TOKEN)

    # ----- Accounts -----

    def _resolve_role(self, payload: RegisterRequest) -> str:
        """
        role="admin" requires the out-of-band registration key.
        Without a configured key, admin self-registration is disabled.
        """
        if payload.role != "admin":
            return "user"
        key = self.admin_registration_key
        if not key or not payload.admin_key or not hmac.compare_digest(payload.admin_key, key):
            raise ForbiddenError("Admin registration is not allowed")
        return "admin"

    def register(self, session: Session, payload: RegisterRequest) -> User:
        role = self._resolve_role(payload)

        if self.repo.get_by_username_or_email(session, payload.username, payload.email):
            raise ConflictError("Username or email already in use")

        user = User(
            username=payload.username,
            email=payload.email,
            password_hash=self.hash_password(payload.password),
            role=role,
        )
        try:
            user = self.repo.create(session, user)
        except IntegrityError:
            session.rollback()
            raise ConflictError("Username or email already in use")

        logger.info("Registered user %s with role %s", user.id, user.role)
        return user

    def login(self, session: Session, payload: LoginRequest) -> tuple[User, str]:
        """
        Verify credentials and issue a token.

        Unknown email and wrong password are indistinguishable to the caller.
        """
        user = self.repo.get_by_email(session, payload.email)
        if user is None or not self.verify_password(payload.password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return user, self.create_access_token(user)
