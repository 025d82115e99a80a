from fastapi import APIRouter, Request, Response
from typing import List

from core.flash import pop_flashes
from schemas.users import FlashMessage

router = APIRouter()


@router.get("/", response_model=List[FlashMessage])
async def get_flashes(request: Request, response: Response):
    """Pending one-shot messages; reading them clears them"""
    return pop_flashes(request, response)
