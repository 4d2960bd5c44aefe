"""
Document store abstraction with a SQLAlchemy implementation and an in-memory test implementation.

Both implementations keep the two collections (users and places) in sync:
creating a place appends its id to the owner's place list and deleting it
pulls the id back out, and each of those pairs of writes is applied as one
atomic unit.
"""

from __future__ import annotations

import copy
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Protocol

from sqlalchemy import JSON, Column, ForeignKey, String, create_engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class StoreError(Exception):
    """Raised when the underlying store fails to apply a write."""


class DuplicateEmailError(StoreError):
    """Raised when a user with the same email already exists."""


class MissingOwnerError(StoreError):
    """Raised when a place references a user that does not exist."""


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class PlaceRecord:
    place_id: str
    title: str
    description: str
    address: str
    location: dict
    image: str
    creator: str

    def as_dict(self) -> dict:
        return {
            "id": self.place_id,
            "title": self.title,
            "description": self.description,
            "address": self.address,
            "location": dict(self.location),
            "image": self.image,
            "creator": self.creator,
        }


@dataclass
class UserRecord:
    user_id: str
    name: str
    email: str
    password_hash: str
    image: str
    places: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        # The password hash never leaves the store layer through here.
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "image": self.image,
            "places": list(self.places),
        }


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self, name: str, email: str, password_hash: str, image: str
    ) -> UserRecord:
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def list_users(self) -> list[UserRecord]:
        ...

    def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        ...

    def list_places_by_creator(self, user_id: str) -> list[PlaceRecord]:
        ...

    def insert_place_for_owner(self, place: PlaceRecord) -> PlaceRecord:
        """Persist ``place`` and append its id to the creator's place list atomically."""
        ...

    def update_place_fields(
        self, place_id: str, *, title: str, description: str
    ) -> Optional[PlaceRecord]:
        ...

    def remove_place_from_owner(self, place_id: str) -> Optional[PlaceRecord]:
        """Delete the place and pull its id from the creator's list atomically."""
        ...

    def close(self) -> None:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests.

    Multi-record writes run under a lock against a snapshot that is restored
    if any write in the unit raises, so readers never see half of a unit.
    Records are copied on the way in and out.
    """

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.places: Dict[str, PlaceRecord] = {}
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            users_snapshot = copy.deepcopy(self.users)
            places_snapshot = copy.deepcopy(self.places)
            try:
                yield
            except Exception:
                self.users = users_snapshot
                self.places = places_snapshot
                raise

    # Single-record writes. Kept separate so every write of a unit goes
    # through one place.
    def _put_user(self, user: UserRecord) -> None:
        self.users[user.user_id] = copy.deepcopy(user)

    def _put_place(self, place: PlaceRecord) -> None:
        self.places[place.place_id] = copy.deepcopy(place)

    def _drop_place(self, place_id: str) -> None:
        del self.places[place_id]

    def create_user(
        self, name: str, email: str, password_hash: str, image: str
    ) -> UserRecord:
        with self._transaction():
            if any(u.email == email for u in self.users.values()):
                raise DuplicateEmailError(email)
            record = UserRecord(
                user_id=new_id(),
                name=name,
                email=email,
                password_hash=password_hash,
                image=image,
            )
            self._put_user(record)
            return copy.deepcopy(record)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            user = self.users.get(user_id)
            return copy.deepcopy(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.email == email:
                    return copy.deepcopy(user)
            return None

    def list_users(self) -> list[UserRecord]:
        with self._lock:
            return [copy.deepcopy(u) for u in self.users.values()]

    def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        with self._lock:
            place = self.places.get(place_id)
            return copy.deepcopy(place) if place else None

    def list_places_by_creator(self, user_id: str) -> list[PlaceRecord]:
        with self._lock:
            return [
                copy.deepcopy(p) for p in self.places.values() if p.creator == user_id
            ]

    def insert_place_for_owner(self, place: PlaceRecord) -> PlaceRecord:
        with self._transaction():
            owner = self.users.get(place.creator)
            if owner is None:
                raise MissingOwnerError(place.creator)
            self._put_place(place)
            self._put_user(replace(owner, places=[*owner.places, place.place_id]))
            return copy.deepcopy(place)

    def update_place_fields(
        self, place_id: str, *, title: str, description: str
    ) -> Optional[PlaceRecord]:
        with self._transaction():
            place = self.places.get(place_id)
            if place is None:
                return None
            updated = replace(place, title=title, description=description)
            self._put_place(updated)
            return copy.deepcopy(updated)

    def remove_place_from_owner(self, place_id: str) -> Optional[PlaceRecord]:
        with self._transaction():
            place = self.places.get(place_id)
            if place is None:
                return None
            self._drop_place(place_id)
            owner = self.users.get(place.creator)
            if owner is not None:
                remaining = [pid for pid in owner.places if pid != place_id]
                self._put_user(replace(owner, places=remaining))
            return copy.deepcopy(place)

    def close(self) -> None:
        return None


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            image=row.image,
            places=list(row.places or []),
        )

    def _to_place_record(self, row: "PlaceRow") -> PlaceRecord:
        return PlaceRecord(
            place_id=row.id,
            title=row.title,
            description=row.description,
            address=row.address,
            location=dict(row.location or {}),
            image=row.image,
            creator=row.creator,
        )

    def create_user(
        self, name: str, email: str, password_hash: str, image: str
    ) -> UserRecord:
        row = UserRow(
            id=new_id(),
            name=name,
            email=email,
            password_hash=password_hash,
            image=image,
            places=[],
        )
        try:
            with self.Session() as session, session.begin():
                session.add(row)
        except IntegrityError as exc:
            raise DuplicateEmailError(email) from exc
        except SQLAlchemyError as exc:
            raise StoreError("creating user failed") from exc
        return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def list_users(self) -> list[UserRecord]:
        with self.Session() as session:
            rows = session.execute(select(UserRow)).scalars().all()
            return [self._to_user_record(row) for row in rows]

    def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        with self.Session() as session:
            row = session.get(PlaceRow, place_id)
            return self._to_place_record(row) if row else None

    def list_places_by_creator(self, user_id: str) -> list[PlaceRecord]:
        with self.Session() as session:
            stmt = select(PlaceRow).where(PlaceRow.creator == user_id)
            rows = session.execute(stmt).scalars().all()
            return [self._to_place_record(row) for row in rows]

    def insert_place_for_owner(self, place: PlaceRecord) -> PlaceRecord:
        try:
            with self.Session() as session, session.begin():
                owner = session.get(UserRow, place.creator, with_for_update=True)
                if owner is None:
                    raise MissingOwnerError(place.creator)
                session.add(
                    PlaceRow(
                        id=place.place_id,
                        title=place.title,
                        description=place.description,
                        address=place.address,
                        location=dict(place.location),
                        image=place.image,
                        creator=place.creator,
                    )
                )
                # Reassign so the JSON column is flagged as changed.
                owner.places = [*(owner.places or []), place.place_id]
        except SQLAlchemyError as exc:
            raise StoreError("creating place failed") from exc
        return replace(place)

    def update_place_fields(
        self, place_id: str, *, title: str, description: str
    ) -> Optional[PlaceRecord]:
        try:
            with self.Session() as session, session.begin():
                row = session.get(PlaceRow, place_id)
                if row is None:
                    return None
                row.title = title
                row.description = description
                session.flush()
                return self._to_place_record(row)
        except SQLAlchemyError as exc:
            raise StoreError("updating place failed") from exc

    def remove_place_from_owner(self, place_id: str) -> Optional[PlaceRecord]:
        try:
            with self.Session() as session, session.begin():
                row = session.get(PlaceRow, place_id, with_for_update=True)
                if row is None:
                    return None
                record = self._to_place_record(row)
                owner = session.get(UserRow, row.creator, with_for_update=True)
                session.delete(row)
                if owner is not None:
                    owner.places = [
                        pid for pid in (owner.places or []) if pid != place_id
                    ]
        except SQLAlchemyError as exc:
            raise StoreError("deleting place failed") from exc
        return record

    def close(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    image = Column(String, nullable=False)
    places = Column(JSON, nullable=False, default=list)


class PlaceRow(Base):
    __tablename__ = "places"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    address = Column(String, nullable=False)
    location = Column(JSON, nullable=False)
    image = Column(String, nullable=False)
    creator = Column(String, ForeignKey("users.id"), nullable=False, index=True)
