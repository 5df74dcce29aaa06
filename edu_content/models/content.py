from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    CHAPTER = "CHAPTER"
    SECTION = "SECTION"
    PAGE = "PAGE"
    EXERCISE = "EXERCISE"


class QuestionStatus(str, Enum):
    DRAFT = "DRAFT"
    LIVE = "LIVE"


class QuestionType(str, Enum):
    MCQ = "MCQ"
    STRUCTURED = "STRUCTURED"
    ESSAY = "ESSAY"
    PROOF = "PROOF"


class ResourceType(str, Enum):
    TEXTBOOK = "TEXTBOOK"
    PAST_PAPER = "PAST_PAPER"
    STUDY_GUIDE = "STUDY_GUIDE"


class Curriculum(str, Enum):
    CAPS = "CAPS"
    IEB = "IEB"


class ResourceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Resource(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    type: ResourceType
    subject: str
    grade: int
    curriculum: Curriculum
    year: int
    publisher: Optional[str] = None
    edition: Optional[str] = None
    term: Optional[int] = None
    cover_image: Optional[str] = None
    status: ResourceStatus = ResourceStatus.ACTIVE


class ContentNode(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    resource_id: str
    type: ContentType
    title: str
    number: Optional[str] = None
    page_number: Optional[int] = None
    description: Optional[str] = None
    parent_id: Optional[str] = None
    order: int = 0


class ContentWithCounts(ContentNode):
    child_count: int = 0
    question_count: int = 0


class Question(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    resource_id: str
    content_id: str
    question_number: str
    exercise_number: Optional[int] = None
    order: int = 0
    status: QuestionStatus = QuestionStatus.DRAFT
    type: QuestionType
    content: Dict[str, Any] = {}


class NavigationTarget(BaseModel):
    content_id: str
    question_id: Optional[str] = None


class ResourceCreate(BaseModel):
    title: str = Field(min_length=1)
    type: ResourceType
    subject: str = Field(min_length=1)
    grade: int = Field(ge=1, le=12)
    curriculum: Curriculum
    year: int
    publisher: Optional[str] = None
    edition: Optional[str] = None
    term: Optional[int] = Field(default=None, ge=1, le=4)
    cover_image: Optional[str] = None
    status: ResourceStatus = ResourceStatus.ACTIVE


class ResourceUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    type: Optional[ResourceType] = None
    subject: Optional[str] = Field(default=None, min_length=1)
    grade: Optional[int] = Field(default=None, ge=1, le=12)
    curriculum: Optional[Curriculum] = None
    year: Optional[int] = None
    publisher: Optional[str] = None
    edition: Optional[str] = None
    term: Optional[int] = Field(default=None, ge=1, le=4)
    cover_image: Optional[str] = None
    status: Optional[ResourceStatus] = None


class ResourcePage(BaseModel):
    resources: List[Resource]
    total: int
    pages: int


class ContentCreate(BaseModel):
    title: str = Field(min_length=1)
    type: ContentType
    number: Optional[str] = None
    parent_id: Optional[str] = None
    order: Optional[int] = None
    page_number: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None


class ContentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    type: Optional[ContentType] = None
    number: Optional[str] = None
    parent_id: Optional[str] = None
    order: Optional[int] = None
    page_number: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None


class QuestionCreate(BaseModel):
    question_number: str = Field(min_length=1)
    type: QuestionType
    exercise_number: Optional[int] = None
    order: Optional[int] = None
    status: QuestionStatus = QuestionStatus.DRAFT
    content: Dict[str, Any] = {}


class QuestionUpdate(BaseModel):
    question_number: Optional[str] = Field(default=None, min_length=1)
    type: Optional[QuestionType] = None
    exercise_number: Optional[int] = None
    order: Optional[int] = None
    status: Optional[QuestionStatus] = None
    content: Optional[Dict[str, Any]] = None
