"""Note routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from readlater.api.dependencies import get_note_store, get_user_id
from readlater.models.dto import (
    MessageResponse,
    NoteCreateRequest,
    NoteListResponse,
    NoteResponse,
    NoteUpdateRequest,
)
from readlater.store.notes import NoteStore

router = APIRouter()


@router.get("/article/{article_id}", response_model=NoteListResponse, summary="List an article's notes")
async def list_notes(
    article_id: str,
    user_id: str = Depends(get_user_id),
    store: NoteStore = Depends(get_note_store),
) -> NoteListResponse:
    return NoteListResponse(notes=store.list_for_article(user_id, article_id))


@router.post(
    "/article/{article_id}",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a note",
)
async def create_note(
    article_id: str,
    request: NoteCreateRequest,
    user_id: str = Depends(get_user_id),
    store: NoteStore = Depends(get_note_store),
) -> NoteResponse:
    note = store.create(user_id, article_id, request.note_text, highlight_id=request.highlight_id)
    return NoteResponse(note=note, message="Note created successfully")


@router.put("/{note_id}", response_model=NoteResponse, summary="Edit a note")
async def update_note(
    note_id: str,
    request: NoteUpdateRequest,
    user_id: str = Depends(get_user_id),
    store: NoteStore = Depends(get_note_store),
) -> NoteResponse:
    note = store.update(user_id, note_id, request.note_text)
    return NoteResponse(note=note, message="Note updated successfully")


@router.delete("/{note_id}", response_model=MessageResponse, summary="Delete a note")
async def delete_note(
    note_id: str,
    user_id: str = Depends(get_user_id),
    store: NoteStore = Depends(get_note_store),
) -> MessageResponse:
    store.delete(user_id, note_id)
    return MessageResponse(message="Note deleted successfully")


__all__ = ["router"]
