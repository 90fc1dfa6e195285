"""Hadith service: CRUD for daily hadith entries."""

from uuid import UUID

from sqlalchemy.orm import Session

from .models import Hadith
from .schemas import HadithCreateRequest, HadithUpdateRequest


def _to_uuid(value: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(value)
    except (ValueError, AttributeError):
        return None


def list_hadiths(db: Session) -> list[Hadith]:
    return db.query(Hadith).order_by(Hadith.created_at.desc()).all()


def get_hadith(db: Session, hadith_id: str) -> Hadith | None:
    uid = _to_uuid(hadith_id)
    if uid is None:
        return None
    return db.query(Hadith).filter(Hadith.id == uid).first()


def create_hadith(db: Session, payload: HadithCreateRequest) -> Hadith:
    hadith = Hadith(
        text=payload.text,
        narrator=payload.narrator,
        source=payload.source,
        date=payload.date,
    )
    db.add(hadith)
    db.flush()
    return hadith


def update_hadith(db: Session, hadith: Hadith, payload: HadithUpdateRequest) -> Hadith:
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(hadith, field, value)
    db.flush()
    return hadith


def delete_hadith(db: Session, hadith_id: str) -> bool:
    hadith = get_hadith(db, hadith_id)
    if not hadith:
        return False
    db.delete(hadith)
    db.flush()
    return True
