from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class Domain(str, Enum):
    FACTORY = "factory"
    CLUSTER = "cluster"
    BUDDY = "buddy"
    CLOUD = "cloud"

    @property
    def has_authority(self) -> bool:
        """Domains that run their own root CA; cloud only holds a client CSR"""
        return self is not Domain.CLOUD


class IssueResponse(BaseModel):
    """Reply to a CSR submitted over the provisioning socket"""
    certificate: str = Field(..., description="PEM encoded certificate")
    result: Literal["success"] = "success"


class HealthResponse(BaseModel):
    status: str
    service: str
