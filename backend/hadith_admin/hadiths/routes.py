"""Hadith JSON API routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database import get_db
from ..dependencies import get_current_user
from .schemas import HadithCreateRequest, HadithRecord, HadithUpdateRequest
from .service import create_hadith, delete_hadith, get_hadith, list_hadiths, update_hadith

router = APIRouter(prefix="/hadiths", tags=["hadiths"])


def _serialize(hadith) -> dict:
    return HadithRecord.model_validate(hadith).model_dump(mode="json")


@router.get("")
def list_api(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return JSONResponse([_serialize(h) for h in list_hadiths(db)])


@router.post("")
def create_api(
    payload: HadithCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    hadith = create_hadith(db, payload)
    db.commit()
    return JSONResponse(_serialize(hadith), status_code=201)


@router.put("/{hadith_id}")
def update_api(
    hadith_id: str,
    payload: HadithUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    hadith = get_hadith(db, hadith_id)
    if not hadith:
        return JSONResponse({"error": "Hadith not found"}, status_code=404)
    update_hadith(db, hadith, payload)
    db.commit()
    return JSONResponse(_serialize(hadith))


@router.delete("/{hadith_id}")
def delete_api(
    hadith_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not delete_hadith(db, hadith_id):
        return JSONResponse({"error": "Hadith not found"}, status_code=404)
    db.commit()
    return JSONResponse({"ok": True})
