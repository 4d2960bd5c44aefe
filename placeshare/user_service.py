"""
User accounts: listing, sign up and log in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from placeshare.config import Settings
from placeshare.db import DbClient, DuplicateEmailError, StoreError, UserRecord
from placeshare.errors import InvalidCredentials, PersistenceError, ValidationError
from placeshare.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(email: Optional[str]) -> str:
    if not isinstance(email, str):
        raise ValidationError()
    cleaned = email.strip().lower()
    if not EMAIL_PATTERN.match(cleaned):
        raise ValidationError()
    return cleaned


@dataclass
class AuthResult:
    user_id: str
    email: str
    token: str

    def as_dict(self) -> dict:
        return {"userId": self.user_id, "email": self.email, "token": self.token}


class UserService:
    def __init__(self, db: DbClient, settings: Settings):
        self.db = db
        self.settings = settings

    def list_users(self) -> list[UserRecord]:
        return self.db.list_users()

    def signup(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        image_ref: str,
    ) -> AuthResult:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError()
        email = normalize_email(email)
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError()

        if self.db.get_user_by_email(email) is not None:
            raise ValidationError("User exists already, please login instead.")

        try:
            user = self.db.create_user(
                name=name.strip(),
                email=email,
                password_hash=hash_password(password),
                image=image_ref,
            )
        except DuplicateEmailError as exc:
            raise ValidationError("User exists already, please login instead.") from exc
        except StoreError as exc:
            logger.error("Signing up %s failed: %s", email, exc)
            raise PersistenceError("Signing up failed, please try again later.") from exc

        logger.info("Signed up user %s", user.user_id)
        return self._issue(user)

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        if not isinstance(email, str) or not isinstance(password, str):
            raise InvalidCredentials()
        user = self.db.get_user_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return self._issue(user)

    def _issue(self, user: UserRecord) -> AuthResult:
        token = create_access_token(user.user_id, user.email, self.settings)
        return AuthResult(user_id=user.user_id, email=user.email, token=token)
