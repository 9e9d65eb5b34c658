from enum import Enum

from pydantic import BaseModel


class ReadinessEnum(str, Enum):
    FAIL = "fail"
    """The service is not ready."""
    OK = "ok"
    """The service is ready."""


class ReadinessCheckModel(BaseModel):
    id: str
    status: ReadinessEnum


class ReadinessModel(BaseModel):
    checks: list[ReadinessCheckModel]
    status: ReadinessEnum

    @classmethod
    def from_checks(cls, **checks: ReadinessEnum) -> "ReadinessModel":
        """
        Build the readiness report, one failing check fails the whole service.
        """
        models = [
            ReadinessCheckModel(id=name, status=status)
            for name, status in checks.items()
        ]
        status = (
            ReadinessEnum.OK
            if all(check.status == ReadinessEnum.OK for check in models)
            else ReadinessEnum.FAIL
        )
        return cls(checks=models, status=status)
