"""Question model definitions."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, event

from analytics_api.core.timeutils import utcnow
from analytics_api.database import Base

MIN_OPTIONS = 2
MAX_OPTIONS = 10
DIFFICULTIES = ('easy', 'medium', 'hard')


class Question(Base):
    """Multiple-choice question. ``options`` is a list of ``{"text", "key"?}`` dicts."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    text = Column(String(4096), nullable=False, index=True)
    options = Column(JSON, nullable=False)
    correct_option_index = Column(Integer, nullable=False)
    difficulty = Column(String, nullable=False, default='easy')
    tags = Column(JSON, nullable=False, default=list)
    created_by = Column(Integer, nullable=True)
    created_by_type = Column(String(16), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


def validate_question(question: Question) -> None:
    options = question.options
    if not isinstance(options, list) or not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValueError(f'A question must have between {MIN_OPTIONS} and {MAX_OPTIONS} options.')

    index = question.correct_option_index
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(options):
        raise ValueError('correctOptionIndex must be a valid index within options array.')


@event.listens_for(Question, 'before_insert')
def _check_before_insert(mapper, connection, target: Question) -> None:
    validate_question(target)
    now = utcnow()
    if target.created_at is None:
        target.created_at = now
    target.updated_at = target.created_at


@event.listens_for(Question, 'before_update')
def _check_before_update(mapper, connection, target: Question) -> None:
    validate_question(target)
    target.updated_at = utcnow()
