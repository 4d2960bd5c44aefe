"""
Backend package for the places sharing API.

This package provides a FastAPI application that lets users sign up,
log in and manage geocoded places with an uploaded image. Persistence,
image storage and geocoding sit behind small protocols so that tests and
local runs can swap in in-memory implementations.
"""
