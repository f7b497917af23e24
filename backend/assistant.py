"""Read-only Actions Builder webhook: "where is my <item>?".

Items are looked up by name across all tenants; only matches whose location
the caller belongs to are spoken back.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import bearer_token, get_item_directory, get_token_verifier
from errors import AuthenticationError
from firebase_adapters import ItemDirectory, TokenVerifier
from log import get_logger
from models import AssistantPrompt, AssistantPromptBlock, AssistantResponse

log = get_logger("assistant")

router = APIRouter()

MAX_MATCHES = 10
MAX_SPOKEN_MATCHES = 3

TEMPLATES = {
    "nl": {
        "missing_item": "Welke item zoek je?",
        "found": "Je {name} ligt in {location}.",
        "not_found": "Ik heb geen {name} gevonden.",
        "multiple_matches": "Ik heb meerdere matches voor {name}: {matches}.",
        "no_access": "Ik heb geen toegang tot je items.",
        "unknown_location": "onbekende locatie",
        "error": "Er ging iets mis.",
    },
    "en": {
        "missing_item": "Which item are you looking for?",
        "found": "Your {name} is in {location}.",
        "not_found": "I could not find {name}.",
        "multiple_matches": "I found multiple matches for {name}: {matches}.",
        "no_access": "I do not have access to your items.",
        "unknown_location": "unknown location",
        "error": "Something went wrong.",
    },
}


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def assistant_locale(body: dict) -> str:
    locale = _dict(body.get("user")).get("locale") or _dict(body.get("session")).get("languageCode") or "en"
    return "nl" if str(locale).lower().startswith("nl") else "en"


def requested_item_name(body: dict) -> str | None:
    slot = _dict(_dict(_dict(body.get("intent")).get("params")).get("itemName"))
    for key in ("resolved", "original", "value"):
        value = slot.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def speak(text: str) -> AssistantResponse:
    return AssistantResponse(prompt=AssistantPromptBlock(firstSimple=AssistantPrompt(speech=text, text=text)))


def has_access(location: dict | None, uid: str) -> bool:
    if not location:
        return False
    uids = location.get("uids") if isinstance(location.get("uids"), list) else []
    return uid in uids or bool(_dict(location.get("memberRoles")).get(uid))


async def answer(
    body: dict,
    token: str | None,
    verifier: TokenVerifier,
    directory: ItemDirectory,
) -> AssistantResponse:
    templates = TEMPLATES[assistant_locale(body)]

    item_name = requested_item_name(body)
    if not item_name:
        return speak(templates["missing_item"])

    if token is None:
        return speak(templates["no_access"])
    try:
        uid = await verifier.verify(token)
    except AuthenticationError:
        return speak(templates["no_access"])

    matches = await directory.find_items_by_name(item_name, MAX_MATCHES)
    if not matches:
        return speak(templates["not_found"].format(name=item_name))

    parent_ids = list(dict.fromkeys(m.get("parentId") for m in matches if m.get("parentId")))
    locations = await directory.get_locations(parent_ids)

    accessible = []
    for match in matches:
        location = locations.get(match.get("parentId")) if match.get("parentId") else None
        if not has_access(location, uid):
            continue
        accessible.append(
            {
                "name": match.get("name") or item_name,
                "location": location.get("name") or templates["unknown_location"],
            }
        )

    if not accessible:
        return speak(templates["no_access"])
    if len(accessible) == 1:
        return speak(templates["found"].format(**accessible[0]))

    spoken = ", ".join(f"{m['name']} ({m['location']})" for m in accessible[:MAX_SPOKEN_MATCHES])
    return speak(templates["multiple_matches"].format(name=item_name, matches=spoken))


@router.post("/assistant/webhook", response_model=AssistantResponse)
async def assistant_webhook(
    request: Request,
    body: dict | None = Body(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
    directory: ItemDirectory = Depends(get_item_directory),
):
    body = body or {}
    try:
        return await answer(body, bearer_token(request), verifier, directory)
    except Exception:
        log.exception("Assistant webhook error")
        fallback = TEMPLATES[assistant_locale(body)]["error"]
        return JSONResponse(status_code=500, content=speak(fallback).model_dump())
