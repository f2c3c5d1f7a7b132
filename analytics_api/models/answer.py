"""Answer model definitions."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from analytics_api.core.timeutils import utcnow
from analytics_api.database import Base


class Answer(Base):
    """A principal's response to a question.

    ``is_correct`` is computed once at submission and never re-scored.
    Users and admins have separate id sequences, so ``(principal_type, user_id)``
    identifies the answering principal.
    """
    __tablename__ = "answers"
    __table_args__ = (
        Index('ix_answers_question_created', 'question_id', 'created_at'),
    )

    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    principal_type = Column(String(16), nullable=False, default='user')
    user_id = Column(Integer, nullable=False, index=True)
    username = Column(String, nullable=True)
    selected_option_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    meta = Column(JSON, nullable=False, default=dict)
