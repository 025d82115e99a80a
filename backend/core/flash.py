"""One-shot user messages carried in a signed cookie until the next read."""

import time
from typing import List, Optional

from fastapi import Request, Response

from core.config import settings
from core.signing import SignedSerializer, signer

FLASH_COOKIE_NAME = "hb_flash"
FLASH_LIFETIME_SECONDS = 10 * 60

FLASH_INFO = "info"
FLASH_SUCCESS = "success"
FLASH_ERROR = "error"
FLASH_LEVELS = (FLASH_INFO, FLASH_SUCCESS, FLASH_ERROR)


def decode_flashes(token: Optional[str], serializer: SignedSerializer = signer, now: Optional[float] = None) -> List[dict]:
    """Flash items from a cookie value; empty for a missing, tampered or expired cookie."""
    payload = serializer.loads(token)
    if not isinstance(payload, dict):
        return []
    exp = payload.get("exp") or 0
    now = time.time() if now is None else now
    if exp > 0 and now > exp:
        return []
    items = payload.get("items") or []
    return [
        {"level": item.get("level", FLASH_INFO), "message": item.get("message", "")}
        for item in items
        if isinstance(item, dict)
    ]


def encode_flashes(items: List[dict], serializer: SignedSerializer = signer, now: Optional[float] = None) -> str:
    now = time.time() if now is None else now
    return serializer.sign({"exp": int(now) + FLASH_LIFETIME_SECONDS, "items": items})


def add_flash(request: Request, response: Response, level: str, message: str) -> None:
    message = (message or "").strip()
    if not message:
        return
    if level not in FLASH_LEVELS:
        level = FLASH_INFO

    # Several flashes in one request: keep appending to what this request already set.
    pending = getattr(request.state, "flashes", None)
    if pending is None:
        pending = decode_flashes(request.cookies.get(FLASH_COOKIE_NAME))
    pending.append({"level": level, "message": message})
    request.state.flashes = pending

    response.set_cookie(
        FLASH_COOKIE_NAME,
        encode_flashes(pending),
        max_age=FLASH_LIFETIME_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


def pop_flashes(request: Request, response: Response) -> List[dict]:
    items = decode_flashes(request.cookies.get(FLASH_COOKIE_NAME))
    clear_flashes(response)
    return items


def clear_flashes(response: Response) -> None:
    response.delete_cookie(
        FLASH_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
