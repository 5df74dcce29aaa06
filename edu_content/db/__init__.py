from .sqlite import create_sqlite_engine, create_session_factory, init_db, session_scope
from .models import Base, Content, Question, Resource
from .store import ContentStore, SqlContentStore
