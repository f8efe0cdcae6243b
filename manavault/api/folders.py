"""Deck folder endpoints. Decks are filed into folders from the deck routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.db import (
    count_decks_by_folder,
    create_folder,
    delete_folder,
    folder_to_model,
    list_folders,
    update_folder,
)
from manavault.db.database import get_session
from manavault.models.deck import DeckFolder

router = APIRouter(prefix="/folders", tags=["folders"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]


class FolderResponse(BaseModel):
    id: int | None
    name: str
    description: str
    color: str
    icon: str
    position: int
    deck_count: int = 0

    @classmethod
    def from_folder(cls, folder: DeckFolder, deck_count: int = 0) -> "FolderResponse":
        return cls(
            id=folder.id,
            name=folder.name,
            description=folder.description,
            color=folder.color,
            icon=folder.icon,
            position=folder.position,
            deck_count=deck_count,
        )


class FolderListResponse(BaseModel):
    user_id: str
    folders: list[FolderResponse]


class CreateFolderRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    color: str = Field(default="#6366f1", max_length=16)
    icon: str = Field(default="folder", max_length=32)


class UpdateFolderRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    color: str | None = Field(default=None, max_length=16)
    icon: str | None = Field(default=None, max_length=32)
    position: int | None = Field(default=None, ge=0)


def _not_found(user_id: str, folder_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Folder {folder_id} not found for user {user_id}",
    )


@router.get("/{user_id}", response_model=FolderListResponse)
async def get_folders(user_id: str, session: SessionDep) -> FolderListResponse:
    """A user's folders in display order, with how many decks each holds."""
    rows = await list_folders(session, user_id)
    counts = await count_decks_by_folder(session, user_id)
    return FolderListResponse(
        user_id=user_id,
        folders=[FolderResponse.from_folder(folder_to_model(r), counts.get(r.id, 0)) for r in rows],
    )


@router.post("/{user_id}", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def add_folder(
    user_id: str, request: CreateFolderRequest, session: SessionDep
) -> FolderResponse:
    folder = DeckFolder(
        user_id=user_id,
        name=request.name,
        description=request.description,
        color=request.color,
        icon=request.icon,
    )
    await create_folder(session, folder)
    return FolderResponse.from_folder(folder)


@router.patch("/{user_id}/{folder_id}", response_model=FolderResponse)
async def edit_folder(
    user_id: str,
    folder_id: int,
    request: UpdateFolderRequest,
    session: SessionDep,
) -> FolderResponse:
    changes = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None
    }
    row = await update_folder(session, user_id, folder_id, changes)
    if row is None:
        raise _not_found(user_id, folder_id)

    counts = await count_decks_by_folder(session, user_id)
    return FolderResponse.from_folder(folder_to_model(row), counts.get(folder_id, 0))


@router.delete("/{user_id}/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_folder(user_id: str, folder_id: int, session: SessionDep) -> None:
    """Delete a folder. The decks in it are kept and become unfiled."""
    if not await delete_folder(session, user_id, folder_id):
        raise _not_found(user_id, folder_id)
