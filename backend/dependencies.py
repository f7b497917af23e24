"""FastAPI dependency providers.

Collaborators are created in the app lifespan and kept on app.state; tests
swap them out through app.dependency_overrides.
"""

import httpx
from fastapi import Depends, HTTPException, Request

from collectors import CollectorService
from errors import AuthenticationError
from firebase_adapters import ImageStore, ItemDirectory, TokenVerifier
from vision_llm import VisionClient


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(503, f"{name} not initialized")
    return value


def get_http_client(request: Request) -> httpx.AsyncClient:
    return _state(request, "http_client")


def get_vision_client(request: Request) -> VisionClient:
    return _state(request, "vision_client")


def get_collector_service(request: Request) -> CollectorService:
    return _state(request, "collector_service")


def get_token_verifier(request: Request) -> TokenVerifier:
    return _state(request, "token_verifier")


def get_image_store(request: Request) -> ImageStore:
    return _state(request, "image_store")


def get_item_directory(request: Request) -> ItemDirectory:
    return _state(request, "item_directory")


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


async def authenticated_uid(
    request: Request,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str:
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError("No valid authorization header found")
    return await verifier.verify(token)
