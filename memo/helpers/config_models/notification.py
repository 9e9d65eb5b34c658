from enum import Enum
from functools import cached_property

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from memo.persistence.igateway import INotificationGateway


class ModeEnum(str, Enum):
    MEMORY = "memory"
    """Use the in-process gateway."""


class MemoryGatewayModel(BaseModel, frozen=True):
    authorization_granted: bool = True
    """Answer given to the authorization request."""
    capacity: int = Field(default=64, ge=1)
    """Hard ceiling of pending triggers, new triggers above it are dropped."""

    @cached_property
    def instance(self) -> INotificationGateway:
        from memo.persistence.memory_gateway import (
            MemoryGateway,
        )

        return MemoryGateway(self)


class GatewayModel(BaseModel):
    mode: ModeEnum = ModeEnum.MEMORY  # Place first as other fields depend on it for validation
    memory: MemoryGatewayModel | None = (
        MemoryGatewayModel()
    )  # Object is fully defined by default

    @field_validator("memory")
    @classmethod
    def _validate_memory(
        cls,
        memory: MemoryGatewayModel | None,
        info: ValidationInfo,
    ) -> MemoryGatewayModel | None:
        if not memory and info.data.get("mode", None) == ModeEnum.MEMORY:
            raise ValueError("Memory config required")
        return memory

    @property
    def instance(self) -> INotificationGateway:
        assert self.memory
        return self.memory.instance


class NotificationModel(BaseModel):
    capacity: int = Field(default=64, ge=1)
    """Pending triggers allowed across all lists before submissions stop."""
    gateway: GatewayModel = GatewayModel()  # Object is fully defined by default
    spread_sec: int = Field(default=30, ge=1, le=59)
    """Seconds between two item triggers of the same list."""
