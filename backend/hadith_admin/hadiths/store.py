"""Hadith collection store used by the job processor."""

from ..record_store import SqlRecordStore
from .models import Hadith
from .schemas import HadithRecord


class HadithStore(SqlRecordStore[Hadith, HadithRecord]):
    model = Hadith
    record = HadithRecord
    name = "hadiths"
