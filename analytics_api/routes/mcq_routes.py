from datetime import datetime
from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from analytics_api.auth.dependencies import get_current_principal, require_admin
from analytics_api.auth.principal import Principal
from analytics_api.database import get_db
from analytics_api.models.answer import Answer
from analytics_api.models.question import MAX_OPTIONS, MIN_OPTIONS, Question
from analytics_api.services import notifications, side_effects

router = APIRouter(tags=['mcq'])

MAX_OPTION_TEXT_LENGTH = 1024
MAX_OPTION_KEY_LENGTH = 8
MIN_QUESTION_TEXT_LENGTH = 3
MAX_QUESTION_TEXT_LENGTH = 4096


class QuestionOption(BaseModel):
    text: str
    key: str | None = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        normalized = value.strip()
        if not 1 <= len(normalized) <= MAX_OPTION_TEXT_LENGTH:
            raise ValueError(f'Option text must be between 1 and {MAX_OPTION_TEXT_LENGTH} characters.')
        return normalized

    @field_validator('key')
    @classmethod
    def validate_key(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        if len(normalized) > MAX_OPTION_KEY_LENGTH:
            raise ValueError(f'Option key must be {MAX_OPTION_KEY_LENGTH} characters or fewer.')
        return normalized


class CreateQuestionRequest(BaseModel):
    text: str
    options: list[QuestionOption]
    correct_option_index: int = Field(alias='correctOptionIndex')
    difficulty: Literal['easy', 'medium', 'hard'] = 'easy'
    tags: list[str] = []

    class Config:
        populate_by_name = True

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        normalized = value.strip()
        if not MIN_QUESTION_TEXT_LENGTH <= len(normalized) <= MAX_QUESTION_TEXT_LENGTH:
            raise ValueError(
                f'Question text must be between {MIN_QUESTION_TEXT_LENGTH} and {MAX_QUESTION_TEXT_LENGTH} characters.'
            )
        return normalized

    @field_validator('options')
    @classmethod
    def validate_option_count(cls, value: list[QuestionOption]) -> list[QuestionOption]:
        if not MIN_OPTIONS <= len(value) <= MAX_OPTIONS:
            raise ValueError(f'A question must have between {MIN_OPTIONS} and {MAX_OPTIONS} options.')
        return value

    @field_validator('tags')
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        tags: list[str] = []
        for tag in value:
            normalized = tag.strip()
            if normalized and normalized not in tags:
                tags.append(normalized)
        return tags

    @model_validator(mode='after')
    def validate_correct_option_index(self) -> 'CreateQuestionRequest':
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError('correctOptionIndex is out of range')
        return self


class QuestionResponse(BaseModel):
    id: int
    text: str
    options: list[QuestionOption]
    difficulty: str
    tags: list[str]
    created_by: int | None = None
    created_by_type: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuestionDetailResponse(QuestionResponse):
    correct_option_index: int = Field(alias='correctOptionIndex')

    class Config:
        from_attributes = True
        populate_by_name = True


class SubmitAnswerRequest(BaseModel):
    question_id: int
    selected_option_index: int = Field(alias='selectedOptionIndex')

    class Config:
        populate_by_name = True


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    principal_type: str
    user_id: int
    username: str | None = None
    selected_option_index: int = Field(alias='selectedOptionIndex')
    is_correct: bool = Field(alias='isCorrect')
    created_at: datetime
    meta: dict = {}

    class Config:
        from_attributes = True
        populate_by_name = True


def principal_id(principal: Principal) -> int:
    if not principal.id.isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid token subject')
    return int(principal.id)


def score_answer(question: Question, selected_option_index: int) -> bool:
    if not 0 <= selected_option_index < len(question.options):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='selectedOptionIndex out of range',
        )
    return selected_option_index == question.correct_option_index


@router.post(
    '/questions',
    response_model=QuestionDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_question(
    data: CreateQuestionRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    question = Question(
        text=data.text,
        options=[option.model_dump(exclude_none=True) for option in data.options],
        correct_option_index=data.correct_option_index,
        difficulty=data.difficulty,
        tags=data.tags,
        created_by=int(principal.id) if principal.id.isdigit() else None,
        created_by_type=principal.subject_type,
    )
    db.add(question)
    try:
        db.commit()
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    db.refresh(question)
    return QuestionDetailResponse.model_validate(question)


@router.get('/questions', response_model=list[QuestionResponse])
def list_questions(db: Session = Depends(get_db)):
    questions = db.query(Question).order_by(Question.created_at.desc(), Question.id.desc()).all()
    return [QuestionResponse.model_validate(question) for question in questions]


@router.post('/answers', response_model=AnswerResponse, status_code=status.HTTP_201_CREATED)
def submit_answer(
    data: SubmitAnswerRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    user_id = principal_id(principal)

    question = db.get(Question, data.question_id)
    if question is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid question_id')

    is_correct = score_answer(question, data.selected_option_index)

    answer = Answer(
        question_id=question.id,
        principal_type=principal.subject_type,
        user_id=user_id,
        username=principal.username,
        selected_option_index=data.selected_option_index,
        is_correct=is_correct,
        meta={'ua': request.headers.get('user-agent', '')},
    )
    db.add(answer)
    db.commit()
    db.refresh(answer)

    response = AnswerResponse.model_validate(answer)
    background_tasks.add_task(
        side_effects.publish,
        notifications.NEW_ANSWER,
        response.model_dump(by_alias=True, exclude={'meta'}),
    )
    background_tasks.add_task(
        side_effects.record_user_event,
        user_id,
        principal.username,
        'answer',
        {'question_id': question.id, 'isCorrect': is_correct},
        principal.subject_type,
    )
    return response
