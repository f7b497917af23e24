"""Firebase-backed collaborators: identity tokens, image storage, item directory.

The Admin SDK is synchronous, so every call is pushed onto a worker thread.
"""

import asyncio
from typing import Any, Iterable, Protocol

import firebase_admin
from firebase_admin import auth, credentials, exceptions as firebase_exceptions, firestore, storage
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from config import (
    FIREBASE_CLIENT_EMAIL,
    FIREBASE_PRIVATE_KEY,
    FIREBASE_PROJECT_ID,
    FIREBASE_STORAGE_BUCKET,
)
from errors import AuthenticationError
from log import get_logger

log = get_logger("firebase")

ITEMS_COLLECTION = "items"
LOCATIONS_COLLECTION = "pakkets"


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> str:
        """Return the uid the token belongs to, or raise AuthenticationError."""
        ...


class ImageStore(Protocol):
    async def delete(self, path: str) -> bool: ...


class ItemDirectory(Protocol):
    async def find_items_by_name(self, name: str, limit: int = 10) -> list[dict[str, Any]]: ...

    async def get_locations(self, location_ids: Iterable[str]) -> dict[str, dict[str, Any]]: ...


def init_firebase() -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if FIREBASE_PRIVATE_KEY and FIREBASE_CLIENT_EMAIL:
        cred = credentials.Certificate(
            {
                "type": "service_account",
                "project_id": FIREBASE_PROJECT_ID,
                "client_email": FIREBASE_CLIENT_EMAIL,
                "private_key": FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
    else:
        log.info("No service account in environment; using application default credentials")
        cred = credentials.ApplicationDefault()

    options: dict[str, str] = {}
    if FIREBASE_PROJECT_ID:
        options["projectId"] = FIREBASE_PROJECT_ID
    if FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = FIREBASE_STORAGE_BUCKET
    return firebase_admin.initialize_app(cred, options)


class FirebaseTokenVerifier:
    def __init__(self, app: firebase_admin.App):
        self.app = app

    async def verify(self, token: str) -> str:
        try:
            decoded = await asyncio.to_thread(auth.verify_id_token, token, self.app)
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            log.warning("Token verification failed: %s", exc)
            raise AuthenticationError("Invalid or expired token")
        uid = decoded.get("uid")
        if not uid:
            raise AuthenticationError("Invalid or expired token")
        return uid


class FirebaseImageStore:
    def __init__(self, app: firebase_admin.App):
        self.app = app

    def _delete(self, path: str) -> None:
        storage.bucket(app=self.app).blob(path).delete()

    async def delete(self, path: str) -> bool:
        try:
            await asyncio.to_thread(self._delete, path)
        except (ValueError, google_exceptions.GoogleAPIError) as exc:
            log.error("Error deleting image %s from storage: %s", path, exc)
            return False
        log.info("Deleted image: %s", path)
        return True


class FirestoreItemDirectory:
    """Items live in per-tenant "items" sub-collections, locations in "pakkets"."""

    def __init__(self, app: firebase_admin.App):
        self.db = firestore.client(app)

    def _exact(self, name: str, limit: int) -> list[dict[str, Any]]:
        query = (
            self.db.collection_group(ITEMS_COLLECTION)
            .where(filter=FieldFilter("name", "==", name))
            .limit(limit)
        )
        return [{"id": doc.id, **(doc.to_dict() or {})} for doc in query.stream()]

    def _prefix(self, name: str, limit: int) -> list[dict[str, Any]]:
        query = (
            self.db.collection_group(ITEMS_COLLECTION)
            .order_by("name")
            .start_at({"name": name})
            .end_at({"name": f"{name}\uf8ff"})
            .limit(limit)
        )
        return [{"id": doc.id, **(doc.to_dict() or {})} for doc in query.stream()]

    async def find_items_by_name(self, name: str, limit: int = 10) -> list[dict[str, Any]]:
        """Exact name matches first; a prefix search only when there are none."""
        name = name.strip()
        matches = await asyncio.to_thread(self._exact, name, limit)
        if matches:
            return matches
        try:
            return await asyncio.to_thread(self._prefix, name, limit)
        except google_exceptions.FailedPrecondition:
            log.warning("Prefix search failed (missing index). Skipping prefix lookup.")
            return []

    def _location(self, location_id: str) -> tuple[str, dict[str, Any] | None]:
        snap = self.db.collection(LOCATIONS_COLLECTION).document(location_id).get()
        return location_id, (snap.to_dict() if snap.exists else None)

    async def get_locations(self, location_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        results = await asyncio.gather(*(asyncio.to_thread(self._location, i) for i in location_ids))
        return {location_id: data for location_id, data in results if data is not None}
