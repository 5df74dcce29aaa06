from .config_manager import load_config
from .config_models import AppConfig
from .errors import (
    CascadeDeleteError,
    ContentTreeError,
    CorruptTreeWarning,
    InvalidTreeOperation,
    NotFound,
    ReferentialIntegrityError,
    StoreError,
)
