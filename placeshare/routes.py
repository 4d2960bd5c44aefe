"""
HTTP routes for the places API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from placeshare.config import Settings
from placeshare.dependencies import (
    get_app_settings,
    get_place_service,
    get_requester_id,
    get_storage_client,
    get_user_service,
)
from placeshare.errors import ImageStorageError, ValidationError
from placeshare.images import check_image
from placeshare.place_service import PlaceService
from placeshare.schemas import (
    AuthResponse,
    LoginPayload,
    MessageResponse,
    PlaceResponse,
    PlacesResponse,
    UpdatePlacePayload,
    UsersResponse,
)
from placeshare.storage import StorageClient
from placeshare.user_service import UserService

logger = logging.getLogger(__name__)

places_router = APIRouter(prefix="/places", tags=["places"])
users_router = APIRouter(prefix="/users", tags=["users"])


async def _store_upload(
    image: UploadFile | None, storage: StorageClient, settings: Settings
) -> str:
    if image is None:
        raise ValidationError("An image is required.")
    data = await image.read()
    checked = check_image(data, image.content_type, settings.max_image_bytes)
    try:
        return storage.save(checked.data, checked.extension)
    except OSError as exc:
        logger.exception("Storing upload %s failed", image.filename)
        raise ImageStorageError() from exc


def _discard_upload(storage: StorageClient, path: str) -> None:
    try:
        storage.delete(path)
    except OSError as exc:
        logger.warning("Could not remove upload %s after a failed request: %s", path, exc)


@places_router.get("/user/{user_id}", response_model=PlacesResponse)
def get_places_by_user_id(
    user_id: str, service: PlaceService = Depends(get_place_service)
):
    places = service.list_by_user(user_id)
    return PlacesResponse(places=[place.as_dict() for place in places])


@places_router.get("/{place_id}", response_model=PlaceResponse)
def get_place_by_id(place_id: str, service: PlaceService = Depends(get_place_service)):
    return PlaceResponse(place=service.get_by_id(place_id).as_dict())


@places_router.post("", response_model=PlaceResponse, status_code=201)
async def create_place(
    title: str | None = Form(None),
    description: str | None = Form(None),
    address: str | None = Form(None),
    image: UploadFile | None = File(None),
    requester_id: str = Depends(get_requester_id),
    service: PlaceService = Depends(get_place_service),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_app_settings),
):
    image_path = await _store_upload(image, storage, settings)
    try:
        place = service.create(requester_id, title, description, address, image_path)
    except Exception:
        _discard_upload(storage, image_path)
        raise
    return PlaceResponse(place=place.as_dict())


@places_router.patch("/{place_id}", response_model=PlaceResponse)
def update_place(
    place_id: str,
    payload: UpdatePlacePayload,
    requester_id: str = Depends(get_requester_id),
    service: PlaceService = Depends(get_place_service),
):
    place = service.update(requester_id, place_id, payload.title, payload.description)
    return PlaceResponse(place=place.as_dict())


@places_router.delete("/{place_id}", response_model=MessageResponse)
def delete_place(
    place_id: str,
    requester_id: str = Depends(get_requester_id),
    service: PlaceService = Depends(get_place_service),
):
    return MessageResponse(message=service.delete(requester_id, place_id))


@users_router.get("", response_model=UsersResponse)
def get_users(service: UserService = Depends(get_user_service)):
    return UsersResponse(users=[user.as_dict() for user in service.list_users()])


@users_router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    name: str | None = Form(None),
    email: str | None = Form(None),
    password: str | None = Form(None),
    image: UploadFile | None = File(None),
    service: UserService = Depends(get_user_service),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_app_settings),
):
    image_path = await _store_upload(image, storage, settings)
    try:
        result = service.signup(name, email, password, image_path)
    except Exception:
        _discard_upload(storage, image_path)
        raise
    return AuthResponse(**result.as_dict())


@users_router.post("/login", response_model=AuthResponse)
def login(payload: LoginPayload, service: UserService = Depends(get_user_service)):
    result = service.login(payload.email, payload.password)
    return AuthResponse(**result.as_dict())
