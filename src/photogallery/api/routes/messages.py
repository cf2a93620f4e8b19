"""Guestbook messages on a public gallery."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...services.guestbook import GuestbookService
from ..dependencies import get_guestbook

router = APIRouter(prefix="/api/galleries", tags=["messages"])


class MessageRequest(BaseModel):
    name: str = ""
    message: str = ""


@router.get("/{username}/messages")
def list_messages(
    username: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    guestbook: GuestbookService = Depends(get_guestbook),
):
    messages = guestbook.list_messages(username, limit=limit)
    return JSONResponse({"messages": [entry.to_dict() for entry in messages]})


@router.post("/{username}/messages")
def post_message(username: str, payload: MessageRequest, guestbook: GuestbookService = Depends(get_guestbook)):
    entry = guestbook.post_message(username, payload.name, payload.message)
    return JSONResponse({"message": entry.to_dict()}, status_code=201)
