# File: dispatchwatch/features/post_processing/data/repository.py
from typing import Iterable, List
from dispatchwatch.core.database.connection import SessionLocal
from .sql_models import TranscriptionDictionaryModel
from ..domain.interfaces import IDictionaryRepository
from ..domain.models import DictionaryEntry


class PostgresDictionaryRepo(IDictionaryRepository):
    def active_entries(self) -> List[DictionaryEntry]:
        with SessionLocal() as db:
            rows = (
                db.query(TranscriptionDictionaryModel)
                .filter(TranscriptionDictionaryModel.is_active.is_(True))
                .order_by(TranscriptionDictionaryModel.id.asc())
                .all()
            )
            return [DictionaryEntry(r.id, r.wrong_word, r.correct_word, r.category) for r in rows]

    def increment_usage(self, entry_ids: Iterable[int]) -> None:
        ids = list(entry_ids)
        if not ids:
            return
        with SessionLocal() as db:
            try:
                db.query(TranscriptionDictionaryModel).filter(
                    TranscriptionDictionaryModel.id.in_(ids)
                ).update(
                    {TranscriptionDictionaryModel.usage_count: TranscriptionDictionaryModel.usage_count + 1},
                    synchronize_session=False
                )
                db.commit()
            except Exception as e:
                db.rollback()
                raise e

    def add_entry(self, wrong_word: str, correct_word: str, category: str = None) -> int:
        with SessionLocal() as db:
            try:
                row = TranscriptionDictionaryModel(wrong_word=wrong_word, correct_word=correct_word, category=category)
                db.add(row)
                db.commit()
                return row.id
            except Exception as e:
                db.rollback()
                raise e
