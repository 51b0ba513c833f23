"""Core module for the mindmesh application."""

from .types import Actor, FirestoreDocument, UserSession

__all__ = ["Actor", "FirestoreDocument", "UserSession"]
