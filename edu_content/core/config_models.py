from __future__ import annotations

from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    sqlite_path: str = Field(default="./data/sqlite/content.db")


class GatewayConfig(BaseModel):
    cors_origins: list[str] = ["http://localhost:3000"]


class NavigationConfig(BaseModel):
    # upper bound on parent hops; only reached by a corrupted (cyclic) store
    max_depth: int = Field(default=32, ge=1)


class AuthoringConfig(BaseModel):
    max_tree_depth: int = Field(default=4, ge=1)
    allow_mixed_nodes: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig(BaseModel):
    storage: StorageConfig = StorageConfig()
    gateway: GatewayConfig = GatewayConfig()
    navigation: NavigationConfig = NavigationConfig()
    authoring: AuthoringConfig = AuthoringConfig()
    logging: LoggingConfig = LoggingConfig()
