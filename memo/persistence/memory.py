from memo.helpers.config_models.store import MemoryModel
from memo.models.readiness import ReadinessEnum
from memo.persistence.istore import IStore


class MemoryStore(IStore):
    """
    A process-local store.

    Data is lost when the process stops and is not visible to the widget renderer, use it for tests and demos.
    """

    _config: MemoryModel
    _data: dict[str, bytes]

    def __init__(self, config: MemoryModel):
        self._config = config
        self._data = {}

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the memory store.
        """
        return ReadinessEnum.OK  # Always ready, it's memory :)

    async def get(self, key: str) -> bytes | None:
        """
        Get a value from the store.

        If the key does not exist, return `None`.
        """
        return self._data.get(key, None)

    async def set(
        self,
        key: str,
        value: str | bytes,
    ) -> bool:
        self._data[key] = value.encode() if isinstance(value, str) else value
        return True

    async def delete(self, key: str) -> bool:
        """
        Delete a value from the store.

        Deleting a missing key is not an error.
        """
        self._data.pop(key, None)
        return True
