from abc import ABC, abstractmethod

from memo.helpers.monitoring import start_as_current_span
from memo.models.notification import TriggerModel
from memo.models.readiness import ReadinessEnum


class INotificationGateway(ABC):
    """
    Platform facility delivering local notifications.

    Operations are asynchronous and eventually consistent: `list_pending` may not yet reflect a `schedule` or `cancel` that just returned.
    """

    @abstractmethod
    @start_as_current_span("gateway_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("gateway_request_authorization")
    async def request_authorization(self) -> bool:
        """
        Ask the user to allow notifications.

        Returns `True` if granted.
        """
        pass

    @abstractmethod
    @start_as_current_span("gateway_schedule")
    async def schedule(self, trigger: TriggerModel) -> None:
        """
        Register a trigger, replacing any trigger with the same identifier.

        Raises on rejection. Without authorization, the call does nothing.
        """
        pass

    @abstractmethod
    @start_as_current_span("gateway_cancel")
    async def cancel(self, identifiers: list[str]) -> None:
        """
        Remove pending triggers, unknown identifiers are ignored.
        """
        pass

    @abstractmethod
    @start_as_current_span("gateway_list_pending")
    async def list_pending(self) -> list[str]:
        pass
