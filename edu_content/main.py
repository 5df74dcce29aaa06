from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .core.config_manager import load_config
from .core.errors import (
    CascadeDeleteError,
    InvalidTreeOperation,
    NotFound,
    ReferentialIntegrityError,
    StoreError,
)
from .db import SqlContentStore, create_session_factory, create_sqlite_engine, init_db
from .models import (
    ContentCreate,
    ContentUpdate,
    Curriculum,
    QuestionCreate,
    QuestionStatus,
    QuestionUpdate,
    ResourceCreate,
    ResourceStatus,
    ResourceType,
    ResourceUpdate,
)
from .tree import (
    delete_subtree,
    first_question_id,
    get_children_with_counts,
    get_node,
    last_question_id,
    next_content_id,
    next_order,
    next_question,
    next_question_order,
    previous_content_id,
    previous_question,
    resolve_breadcrumb,
)
from .tree import authoring


load_dotenv()

# logging and CORS have to be in place before the app starts serving
_boot_config = load_config()
logging.basicConfig(
    level=getattr(logging, _boot_config.logging.level.upper(), logging.INFO),
    format=_boot_config.logging.format,
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Edu Content")
app.add_middleware(
    CORSMiddleware,
    allow_origins=_boot_config.gateway.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class StatusPayload(BaseModel):
    status: QuestionStatus


class ResourceStatusPayload(BaseModel):
    status: ResourceStatus


@app.on_event("startup")
def startup():
    config = load_config()
    sqlite_path = Path(config.storage.sqlite_path)
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_sqlite_engine(str(sqlite_path))
    init_db(engine)
    session_factory = create_session_factory(engine)

    app.state.config = config
    app.state.store = SqlContentStore(session_factory)
    logger.info("content store ready at %s", sqlite_path)


@app.exception_handler(NotFound)
def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidTreeOperation)
def invalid_operation_handler(request: Request, exc: InvalidTreeOperation):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ReferentialIntegrityError)
def integrity_handler(request: Request, exc: ReferentialIntegrityError):
    logger.error("integrity error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(CascadeDeleteError)
def cascade_handler(request: Request, exc: CascadeDeleteError):
    logger.error("cascade delete on %s failed at %s: %s", request.url.path, exc.node_id, exc.__cause__)
    status_code = 409 if isinstance(exc.__cause__, ReferentialIntegrityError) else 503
    # every delete endpoint runs its cascade in one transaction
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"message": str(exc), "node_id": exc.node_id, "rolled_back": exc.deleted}},
    )


@app.exception_handler(StoreError)
def store_error_handler(request: Request, exc: StoreError):
    logger.error("store error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "content store unavailable"})


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/resources")
def list_resources(
    subject: str | None = None,
    grade: int | None = Query(default=None, ge=1, le=12),
    curriculum: Curriculum | None = None,
    status: ResourceStatus | None = None,
    resource_type: ResourceType | None = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=15, ge=1, le=100),
):
    return authoring.list_resources(
        app.state.store,
        subject=subject,
        grade=grade,
        curriculum=curriculum,
        status=status,
        resource_type=resource_type,
        page=page,
        limit=limit,
    )


@app.get("/api/subjects")
def suggest_subjects(q: str = ""):
    return {"subjects": authoring.suggest_subjects(app.state.store, q)}


@app.post("/api/resources")
def create_resource(payload: ResourceCreate):
    return authoring.create_resource(app.state.store, payload)


@app.get("/api/resources/{resource_id}")
def get_resource(resource_id: str):
    return authoring.get_resource(app.state.store, resource_id)


@app.patch("/api/resources/{resource_id}")
def update_resource(resource_id: str, payload: ResourceUpdate):
    return authoring.update_resource(app.state.store, resource_id, payload)


@app.put("/api/resources/{resource_id}/status")
def set_resource_status(resource_id: str, payload: ResourceStatusPayload):
    return authoring.set_resource_status(app.state.store, resource_id, payload.status)


@app.delete("/api/resources/{resource_id}")
def delete_resource(resource_id: str):
    deleted = authoring.delete_resource(app.state.store, resource_id, app.state.config.navigation.max_depth)
    return {"resource_id": resource_id, "status": "deleted", "deleted": deleted}


@app.get("/api/resources/{resource_id}/contents")
def get_resource_contents(resource_id: str):
    store = app.state.store
    resource = authoring.get_resource(store, resource_id)
    return {"resource": resource, "contents": get_children_with_counts(store, resource_id=resource_id)}


@app.post("/api/resources/{resource_id}/contents")
def add_content(resource_id: str, payload: ContentCreate):
    return authoring.add_content(app.state.store, resource_id, payload, app.state.config.authoring)


@app.get("/api/resources/{resource_id}/next-order")
def get_next_order(resource_id: str, parent_id: str | None = None):
    store = app.state.store
    authoring.get_resource(store, resource_id)
    if parent_id is not None:
        get_node(store, parent_id)
    return {"resource_id": resource_id, "parent_id": parent_id, "order": next_order(store, parent_id, resource_id)}


@app.get("/api/contents/{content_id}")
def get_content(content_id: str):
    return get_node(app.state.store, content_id)


@app.patch("/api/contents/{content_id}")
def update_content(content_id: str, payload: ContentUpdate):
    return authoring.update_content(app.state.store, content_id, payload, app.state.config.authoring)


@app.delete("/api/contents/{content_id}")
def delete_content(content_id: str):
    store = app.state.store
    with store.transaction():
        deleted = delete_subtree(store, content_id, app.state.config.navigation.max_depth)
    return {"content_id": content_id, "status": "deleted", "deleted": deleted}


@app.get("/api/contents/{content_id}/breadcrumb")
def get_breadcrumb(content_id: str):
    max_depth = app.state.config.navigation.max_depth
    return {"content_id": content_id, "breadcrumb": resolve_breadcrumb(app.state.store, content_id, max_depth)}


@app.get("/api/contents/{content_id}/children")
def get_children(content_id: str):
    store = app.state.store
    content = get_node(store, content_id)
    return {"content": content, "children": get_children_with_counts(store, parent_id=content_id)}


@app.get("/api/contents/{content_id}/next")
def get_next_content(content_id: str):
    max_depth = app.state.config.navigation.max_depth
    return {"content_id": content_id, "next_content_id": next_content_id(app.state.store, content_id, max_depth)}


@app.get("/api/contents/{content_id}/previous")
def get_previous_content(content_id: str):
    return {"content_id": content_id, "previous_content_id": previous_content_id(app.state.store, content_id)}


@app.get("/api/contents/{content_id}/questions")
def list_questions(content_id: str):
    store = app.state.store
    get_node(store, content_id)
    return {"content_id": content_id, "questions": store.find_questions_by_content(content_id)}


@app.post("/api/contents/{content_id}/questions")
def add_question(content_id: str, payload: QuestionCreate):
    return authoring.add_question(app.state.store, content_id, payload, app.state.config.authoring)


@app.get("/api/contents/{content_id}/questions/first")
def get_first_question(content_id: str):
    store = app.state.store
    get_node(store, content_id)
    return {"content_id": content_id, "question_id": first_question_id(store, content_id)}


@app.get("/api/contents/{content_id}/questions/last")
def get_last_question(content_id: str):
    store = app.state.store
    get_node(store, content_id)
    return {"content_id": content_id, "question_id": last_question_id(store, content_id)}


@app.get("/api/contents/{content_id}/questions/next-order")
def get_next_question_order(content_id: str):
    store = app.state.store
    get_node(store, content_id)
    return {"content_id": content_id, "order": next_question_order(store, content_id)}


@app.get("/api/questions/{question_id}")
def get_question(question_id: str):
    question = app.state.store.find_question(question_id)
    if question is None:
        raise NotFound("question", question_id)
    return question


@app.patch("/api/questions/{question_id}")
def update_question(question_id: str, payload: QuestionUpdate):
    return authoring.update_question(app.state.store, question_id, payload)


@app.put("/api/questions/{question_id}/status")
def set_question_status(question_id: str, payload: StatusPayload):
    return authoring.set_question_status(app.state.store, question_id, payload.status)


@app.delete("/api/questions/{question_id}")
def delete_question(question_id: str):
    authoring.delete_question(app.state.store, question_id)
    return {"question_id": question_id, "status": "deleted"}


@app.get("/api/questions/{question_id}/next")
def get_next_question(question_id: str):
    max_depth = app.state.config.navigation.max_depth
    return {"question_id": question_id, "target": next_question(app.state.store, question_id, max_depth)}


@app.get("/api/questions/{question_id}/previous")
def get_previous_question(question_id: str):
    return {"question_id": question_id, "target": previous_question(app.state.store, question_id)}
