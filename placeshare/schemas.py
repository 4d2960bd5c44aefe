"""
Pydantic schemas for the places API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class Location(BaseModel):
    lat: float
    lng: float


class Place(BaseModel):
    id: str
    title: str
    description: str
    address: str
    location: Location
    image: str
    creator: str


class User(BaseModel):
    id: str
    name: str
    email: str
    image: str
    places: list[str]


class PlaceResponse(BaseModel):
    place: Place


class PlacesResponse(BaseModel):
    places: list[Place]


class UsersResponse(BaseModel):
    users: list[User]


class MessageResponse(BaseModel):
    message: str


class AuthResponse(BaseModel):
    userId: str
    email: str
    token: str


class UpdatePlacePayload(BaseModel):
    # Anything other than title/description is accepted and ignored.
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None


class LoginPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
