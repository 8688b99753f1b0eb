# File: dispatchwatch/features/post_processing/data/sql_models.py

from sqlalchemy import Column, String, Integer, Boolean, DateTime
from dispatchwatch.core.database.base import Base, utc_now


class TranscriptionDictionaryModel(Base):
    """
    Operator-maintained wrong -> correct term table.
    Matching is whole-word and case-insensitive.
    """
    __tablename__ = "transcription_dictionary"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wrong_word = Column(String, nullable=False, index=True)
    correct_word = Column(String, nullable=False)
    category = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
