"""
Dependency wiring for the FastAPI app.

The store, image storage and geocoder are built once per process by
``build_backends`` (called from the app lifespan) and kept on
``app.state``. Request handlers reach them only through the functions below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from placeshare.config import Settings
from placeshare.db import DbClient, InMemoryDbClient, PostgresDbClient
from placeshare.errors import AuthenticationFailed
from placeshare.geocoding import Geocoder, GoogleGeocoder, StaticGeocoder
from placeshare.place_service import PlaceService
from placeshare.security import decode_access_token
from placeshare.storage import (
    InMemoryStorageClient,
    LocalStorageClient,
    S3StorageClient,
    StorageClient,
)
from placeshare.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Backends:
    db: DbClient
    storage: StorageClient
    geocoder: Geocoder

    def close(self) -> None:
        self.db.close()


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.database_url:
        return InMemoryDbClient()
    return PostgresDbClient(settings.database_url)


def build_storage_client(settings: Settings) -> StorageClient:
    if settings.use_in_memory_backends:
        return InMemoryStorageClient()
    if settings.s3_bucket:
        return S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return LocalStorageClient(settings.upload_dir)


def build_geocoder(settings: Settings) -> Geocoder:
    if settings.google_api_key and not settings.use_in_memory_backends:
        return GoogleGeocoder(api_key=settings.google_api_key)
    return StaticGeocoder()


def build_backends(settings: Settings) -> Backends:
    backends = Backends(
        db=build_db_client(settings),
        storage=build_storage_client(settings),
        geocoder=build_geocoder(settings),
    )
    logger.info(
        "Backends: db=%s storage=%s geocoder=%s",
        backends.db.__class__.__name__,
        backends.storage.__class__.__name__,
        backends.geocoder.__class__.__name__,
    )
    return backends


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backends(request: Request) -> Backends:
    return request.app.state.backends


def get_storage_client(backends: Backends = Depends(get_backends)) -> StorageClient:
    return backends.storage


def get_place_service(
    backends: Backends = Depends(get_backends),
    settings: Settings = Depends(get_app_settings),
) -> PlaceService:
    return PlaceService(
        backends.db,
        backends.geocoder,
        backends.storage,
        empty_user_places_is_404=settings.empty_user_places_is_404,
    )


def get_user_service(
    backends: Backends = Depends(get_backends),
    settings: Settings = Depends(get_app_settings),
) -> UserService:
    return UserService(backends.db, settings)


bearer_scheme = HTTPBearer(auto_error=False)


def get_requester_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Return the authenticated user id from the ``Bearer`` token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed()
    return decode_access_token(credentials.credentials, settings)["userId"]
