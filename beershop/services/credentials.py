"""Credential store: registration, password hashing and authentication."""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from beershop.core.errors import DuplicateCredential, Forbidden, InvalidCredentials
from beershop.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from beershop.models.user import ROLES, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """
    Owns user records and password verification.

    The unique index on users.email is authoritative for duplicates; the
    pre-insert lookup only spares a bcrypt round for the common case.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, raw_password: str) -> str:
        return hash_password(raw_password, rounds=self.rounds)

    def verify(self, raw_password: str, password_hash: str) -> bool:
        return verify_password(raw_password, password_hash)

    def find_by_email(self, db: Session, email: str) -> User | None:
        return (
            db.query(User)
            .filter(func.lower(User.email) == normalize_email(email))
            .filter(User.deleted_at.is_(None))
            .first()
        )

    def register(
        self,
        db: Session,
        *,
        name: str | None,
        email: str,
        raw_password: str,
        address: str | None = None,
        profile_pic: str | None = None,
        role: str = "user",
    ) -> int:
        """Create a user and return its id. Raises DuplicateCredential if the email is taken."""
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        email = normalize_email(email)
        # Soft-deleted rows still hold their email under the unique index.
        existing = db.query(User.id).filter(func.lower(User.email) == email).first()
        if existing is not None:
            raise DuplicateCredential()

        user = User(
            name=name,
            email=email,
            password_hash=self.hash(raw_password),
            role=role,
            address=address,
            profile_pic=profile_pic,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as e:
            # Lost the race against a concurrent registration with the same email.
            db.rollback()
            logger.info("Registration rejected by unique constraint")
            raise DuplicateCredential() from e
        db.refresh(user)
        logger.info("User registered", extra={"user_id": user.id, "role": user.role})
        return user.id

    def authenticate(self, db: Session, email: str, raw_password: str) -> User:
        """Return the user for valid credentials; the error never says which part was wrong."""
        user = self.find_by_email(db, email)
        if user is None:
            # Spend the same bcrypt work as a real check so unknown emails are not faster.
            self.verify(raw_password, self._get_dummy_hash())
            raise InvalidCredentials()
        if not self.verify(raw_password, user.password_hash):
            raise InvalidCredentials()
        if user.role == "blocked":
            logger.warning("Blocked account attempted login", extra={"user_id": user.id})
            raise Forbidden("Account is blocked")
        return user

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("dummy-password-for-timing")
        return self._dummy_hash
