from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Query

from ..errors import CharacterStoreError, InvalidArgument, NotFound
from ..schemas import Character, CharacterResponse
from ..services import character_svc

router = APIRouter(prefix="/api/v1/characters", tags=["characters"])


@router.get("", response_model=List[CharacterResponse], response_model_exclude_none=True)
def api_characters(
    type: str = Query("hr", description="hr (hiragana) | kt (katakana)"),
    locale: str = Query("en", description="en (English) | ru (Russian)"),
):
    """All characters of one alphabet, ordered by id."""
    try:
        return character_svc.list_characters(type, locale)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=e.message)
    except CharacterStoreError:
        raise HTTPException(status_code=500, detail="failed to get characters")


@router.get("/row-column", response_model=List[CharacterResponse], response_model_exclude_none=True)
def api_characters_row_column(
    type: str = Query("hr"),
    locale: str = Query("en"),
    character: str = Query("", description="consonant or vowel group, e.g. k / a"),
):
    """
    One row (consonant group) or column (vowel group) of the table.
    Only the classifier that matched is present in each item.
    """
    if not character:
        raise HTTPException(status_code=400, detail="character parameter is required")
    try:
        return character_svc.list_by_row_column(type, locale, character)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=e.message)
    except CharacterStoreError:
        raise HTTPException(status_code=500, detail="failed to get characters")


@router.get("/{char_id}", response_model=Character, response_model_exclude_none=True)
def api_character_by_id(char_id: str, locale: str = Query("en")):
    try:
        cid = int(char_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid id parameter")
    try:
        return character_svc.get_character(cid, locale)
    except NotFound:
        raise HTTPException(status_code=404, detail="character not found")
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=e.message)
    except CharacterStoreError:
        raise HTTPException(status_code=500, detail="failed to get character")
