from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Query

from ..errors import CharacterStoreError, InsufficientData, InvalidArgument
from ..schemas import ReadingTestItem, WritingTestItem
from ..services import character_svc

router = APIRouter(prefix="/api/v1/tests", tags=["tests"])

MAX_TEST_COUNT = 46  # 五十音表总行数


@router.get("/{alphabet}/reading", response_model=List[ReadingTestItem])
def api_reading_test(
    alphabet: str,
    locale: str = Query("en"),
    count: int = Query(character_svc.TEST_COUNT, ge=0, le=MAX_TEST_COUNT),
):
    """Random characters with their reading and two wrong glyph options each."""
    try:
        return character_svc.reading_test(alphabet, locale, count)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=e.message)
    except InsufficientData as e:
        raise HTTPException(status_code=409, detail=e.message)
    except CharacterStoreError:
        raise HTTPException(status_code=500, detail="failed to get reading test")


@router.get("/{alphabet}/writing", response_model=List[WritingTestItem])
def api_writing_test(
    alphabet: str,
    locale: str = Query("en"),
    count: int = Query(character_svc.TEST_COUNT, ge=0, le=MAX_TEST_COUNT),
):
    try:
        return character_svc.writing_test(alphabet, locale, count)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=e.message)
    except CharacterStoreError:
        raise HTTPException(status_code=500, detail="failed to get writing test")
