from enum import Enum
from functools import cached_property
from os.path import abspath

from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator

from memo.persistence.istore import IStore


class ModeEnum(str, Enum):
    MEMORY = "memory"
    """Use memory store, not shared between processes."""
    REDIS = "redis"
    """Use Redis store, shared between processes through the server."""
    SQLITE = "sqlite"
    """Use SQLite store, shared between processes through the file."""


class MemoryModel(BaseModel, frozen=True):
    @cached_property
    def instance(self) -> IStore:
        from memo.persistence.memory import (
            MemoryStore,
        )

        return MemoryStore(self)


class SqliteModel(BaseModel, frozen=True):
    path: str = ".local/memo.db"
    table: str = Field(default="store", pattern=r"^[a-zA-Z_][a-zA-Z0-9_]*$")

    def full_path(self) -> str:
        """
        Absolute path of the database file.
        """
        return abspath(self.path)

    @cached_property
    def instance(self) -> IStore:
        from memo.persistence.sqlite import (
            SqliteStore,
        )

        return SqliteStore(self)


class RedisModel(BaseModel, frozen=True):
    database: int = Field(default=0, ge=0)
    host: str
    password: SecretStr | None = None
    port: int = 6379
    prefix: str = "memo"
    ssl: bool = True

    @cached_property
    def instance(self) -> IStore:
        from memo.persistence.redis import (
            RedisStore,
        )

        return RedisStore(self)


class StoreModel(BaseModel):
    mode: ModeEnum = ModeEnum.MEMORY  # Place first as other fields depend on it for validation
    legacy: SqliteModel | None = None
    """Store used by previous versions, migrated once at load."""
    memory: MemoryModel | None = MemoryModel()  # Object is fully defined by default
    redis: RedisModel | None = None
    sqlite: SqliteModel | None = None

    @field_validator("redis")
    @classmethod
    def _validate_redis(
        cls,
        redis: RedisModel | None,
        info: ValidationInfo,
    ) -> RedisModel | None:
        if not redis and info.data.get("mode", None) == ModeEnum.REDIS:
            raise ValueError("Redis config required")
        return redis

    @field_validator("sqlite")
    @classmethod
    def _validate_sqlite(
        cls,
        sqlite: SqliteModel | None,
        info: ValidationInfo,
    ) -> SqliteModel | None:
        if not sqlite and info.data.get("mode", None) == ModeEnum.SQLITE:
            raise ValueError("SQLite config required")
        return sqlite

    @field_validator("memory")
    @classmethod
    def _validate_memory(
        cls,
        memory: MemoryModel | None,
        info: ValidationInfo,
    ) -> MemoryModel | None:
        if not memory and info.data.get("mode", None) == ModeEnum.MEMORY:
            raise ValueError("Memory config required")
        return memory

    @property
    def instance(self) -> IStore:
        if self.mode == ModeEnum.MEMORY:
            assert self.memory
            return self.memory.instance

        if self.mode == ModeEnum.SQLITE:
            assert self.sqlite
            return self.sqlite.instance

        assert self.redis
        return self.redis.instance

    @cached_property
    def legacy_instance(self) -> IStore | None:
        if not self.legacy:
            return None
        return self.legacy.instance
