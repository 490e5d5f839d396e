from sqlmodel import Session, or_, select

from app.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def get_by_username_or_email(
        self,
        session: Session,
        username: str,
        email: str,
    ) -> User | None:
        """Return any User holding this username or this email."""
        stmt = select(User).where(or_(User.username == username, User.email == email))
        return session.exec(stmt).first()

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
