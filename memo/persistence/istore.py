from abc import ABC, abstractmethod

from memo.helpers.monitoring import start_as_current_span
from memo.models.readiness import ReadinessEnum


class IStore(ABC):
    """
    Blob key-value store holding the collection.

    Implementations used by both the application and the widget renderer must be shared between processes.
    """

    @abstractmethod
    @start_as_current_span("store_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("store_get")
    async def get(self, key: str) -> bytes | None:
        pass

    @abstractmethod
    @start_as_current_span("store_set")
    async def set(
        self,
        key: str,
        value: str | bytes,
    ) -> bool:
        pass

    @abstractmethod
    @start_as_current_span("store_delete")
    async def delete(self, key: str) -> bool:
        pass
