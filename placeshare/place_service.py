"""
Place operations: lookups, and the validated, owner-checked mutations.

Creating and deleting a place touch two records (the place and its owner's
place list). Those pairs of writes are delegated to the store as one atomic
unit; this module only decides whether they may happen.
"""

from __future__ import annotations

import logging
from typing import Optional

from placeshare.db import DbClient, MissingOwnerError, PlaceRecord, StoreError, new_id
from placeshare.errors import NotFound, PersistenceError, Unauthorized, ValidationError
from placeshare.geocoding import Geocoder
from placeshare.storage import StorageClient

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 5


def _require_text(value: Optional[str], min_length: int = 1) -> str:
    if not isinstance(value, str):
        raise ValidationError()
    cleaned = value.strip()
    if len(cleaned) < min_length:
        raise ValidationError()
    return cleaned


def validate_place_text(
    title: Optional[str], description: Optional[str]
) -> tuple[str, str]:
    return (
        _require_text(title),
        _require_text(description, MIN_DESCRIPTION_LENGTH),
    )


class PlaceService:
    def __init__(
        self,
        db: DbClient,
        geocoder: Geocoder,
        storage: StorageClient,
        *,
        empty_user_places_is_404: bool = True,
    ):
        self.db = db
        self.geocoder = geocoder
        self.storage = storage
        self.empty_user_places_is_404 = empty_user_places_is_404

    def get_by_id(self, place_id: str) -> PlaceRecord:
        place = self.db.get_place(place_id)
        if place is None:
            raise NotFound("Could not find a place for that id.")
        return place

    def list_by_user(self, user_id: str) -> list[PlaceRecord]:
        places = self.db.list_places_by_creator(user_id)
        if not places and self.empty_user_places_is_404:
            raise NotFound("Could not find places for the provided user id.")
        return places

    def create(
        self,
        owner_id: str,
        title: Optional[str],
        description: Optional[str],
        address: Optional[str],
        image_ref: str,
    ) -> PlaceRecord:
        title, description = validate_place_text(title, description)
        address = _require_text(address)

        location = self.geocoder.geocode(address)

        if self.db.get_user(owner_id) is None:
            raise NotFound("Could not find user for provided id.")

        place = PlaceRecord(
            place_id=new_id(),
            title=title,
            description=description,
            address=address,
            location=location,
            image=image_ref,
            creator=owner_id,
        )
        try:
            created = self.db.insert_place_for_owner(place)
        except MissingOwnerError as exc:
            raise NotFound("Could not find user for provided id.") from exc
        except StoreError as exc:
            logger.error("Creating place for user %s failed: %s", owner_id, exc)
            raise PersistenceError("Creating place failed, please try again.") from exc

        logger.info("Created place %s for user %s", created.place_id, owner_id)
        return created

    def update(
        self,
        requester_id: str,
        place_id: str,
        title: Optional[str],
        description: Optional[str],
    ) -> PlaceRecord:
        title, description = validate_place_text(title, description)

        place = self.get_by_id(place_id)
        if place.creator != requester_id:
            raise Unauthorized("You are not allowed to edit this place.")

        try:
            updated = self.db.update_place_fields(
                place_id, title=title, description=description
            )
        except StoreError as exc:
            logger.error("Updating place %s failed: %s", place_id, exc)
            raise PersistenceError(
                "Something went wrong, could not update place."
            ) from exc
        if updated is None:
            # Deleted between the read and the write.
            raise NotFound("Could not find a place for that id.")
        return updated

    def delete(self, requester_id: str, place_id: str) -> str:
        place = self.get_by_id(place_id)
        owner = self.db.get_user(place.creator)
        owner_id = owner.user_id if owner else place.creator
        if owner_id != requester_id:
            raise Unauthorized("You are not allowed to delete this place.")

        try:
            removed = self.db.remove_place_from_owner(place_id)
        except StoreError as exc:
            logger.error("Deleting place %s failed: %s", place_id, exc)
            raise PersistenceError(
                "Something went wrong, could not delete place."
            ) from exc
        if removed is None:
            raise NotFound("Could not find a place for that id.")

        self._discard_image(removed.image)
        logger.info("Deleted place %s of user %s", place_id, requester_id)
        return "Deleted place."

    def _discard_image(self, path: str) -> None:
        try:
            self.storage.delete(path)
        except OSError as exc:
            # The data change is already committed; only the file lingers.
            logger.warning("Could not delete image %s: %s", path, exc)
