"""
Error taxonomy shared by the services and the HTTP surface.

Every error carries a human-readable message and the status code the API
answers with. The app maps them to ``{"message": ...}`` JSON bodies.
"""

from __future__ import annotations


class HttpError(Exception):
    """Base error with a client-facing message and an HTTP status code."""

    status_code: int = 500
    default_message: str = "An unknown error occurred!"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, {self.status_code})"


class ValidationError(HttpError):
    status_code = 422
    default_message = "Invalid inputs passed, please check your data."


class Unauthorized(HttpError):
    """The requester is authenticated but does not own the resource."""

    status_code = 401
    default_message = "You are not allowed to modify this place."


class AuthenticationFailed(HttpError):
    status_code = 401
    default_message = "Authentication failed!"


class InvalidCredentials(HttpError):
    status_code = 403
    default_message = "Invalid credentials, could not log you in."


class NotFound(HttpError):
    status_code = 404
    default_message = "Could not find the requested resource."


class GeocodeError(HttpError):
    status_code = 422
    default_message = "Could not find location for the specified address."


class PersistenceError(HttpError):
    status_code = 500
    default_message = "Something went wrong, please try again later."


class ImageStorageError(HttpError):
    status_code = 500
    default_message = "Storing the uploaded image failed, please try again."
