from .content import (
    ContentCreate,
    ContentNode,
    ContentType,
    ContentUpdate,
    ContentWithCounts,
    Curriculum,
    NavigationTarget,
    Question,
    QuestionCreate,
    QuestionStatus,
    QuestionType,
    QuestionUpdate,
    Resource,
    ResourceCreate,
    ResourcePage,
    ResourceStatus,
    ResourceType,
    ResourceUpdate,
)
