import asyncio
from enum import Enum

from memo.helpers.logging import logger
from memo.persistence.igateway import INotificationGateway


class AuthorizationEnum(str, Enum):
    DENIED = "denied"
    GRANTED = "granted"
    NOT_DETERMINED = "not_determined"


class PermissionGate:
    """
    Ask for notification permission at most once per process.

    A denial is final for the process lifetime, scheduling then runs in degraded mode where nothing is submitted.
    """

    _gateway: INotificationGateway
    _lock: asyncio.Lock
    _status: AuthorizationEnum

    def __init__(self, gateway: INotificationGateway):
        self._gateway = gateway
        self._lock = asyncio.Lock()
        self._status = AuthorizationEnum.NOT_DETERMINED

    @property
    def status(self) -> AuthorizationEnum:
        return self._status

    async def ensure_authorized(self) -> bool:
        if self._status == AuthorizationEnum.NOT_DETERMINED:
            async with self._lock:
                # Another caller may have asked while we were waiting
                if self._status == AuthorizationEnum.NOT_DETERMINED:
                    self._status = await self._request()
        return self._status == AuthorizationEnum.GRANTED

    async def _request(self) -> AuthorizationEnum:
        try:
            granted = await self._gateway.request_authorization()
        except Exception:
            logger.exception("Authorization request failed, considering it denied")
            return AuthorizationEnum.DENIED
        if not granted:
            logger.info("Notifications denied, scheduling disabled for this session")
            return AuthorizationEnum.DENIED
        return AuthorizationEnum.GRANTED
