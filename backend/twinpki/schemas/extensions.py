import ipaddress
from typing import List, Literal, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator

KeyUsageName = Literal[
    "digitalSignature",
    "nonRepudiation",
    "keyEncipherment",
    "dataEncipherment",
    "keyAgreement",
    "keyCertSign",
    "cRLSign",
    "encipherOnly",
    "decipherOnly",
]

ExtendedKeyUsageName = Literal[
    "serverAuth",
    "clientAuth",
    "codeSigning",
    "emailProtection",
    "timeStamping",
    "ocspSigning",
]


class BasicConstraintsConfig(BaseModel):
    critical: bool = True
    is_ca: bool = Field(default=False, alias="isCA")
    path_len_constraint: Optional[int] = Field(default=None, ge=0, alias="pathLenConstraint")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_path_len(self) -> "BasicConstraintsConfig":
        if self.path_len_constraint is not None and not self.is_ca:
            raise ValueError("pathLenConstraint requires isCA")
        return self


class KeyUsageConfig(BaseModel):
    critical: bool = True
    usage: Set[KeyUsageName] = Field(..., min_length=1)


class ExtendedKeyUsageConfig(BaseModel):
    critical: bool = False
    usage: Set[ExtendedKeyUsageName] = Field(..., min_length=1)


class GeneralNameConfig(BaseModel):
    """One subjectAltName entry"""
    type: Literal["dns", "ip", "email"]
    value: str = Field(..., min_length=1)

    @field_validator("type", mode="before")
    @classmethod
    def lower_type(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    @model_validator(mode="after")
    def check_ip(self) -> "GeneralNameConfig":
        if self.type == "ip":
            try:
                ipaddress.ip_address(self.value)
            except ValueError as e:
                raise ValueError(f"Invalid IP address: {self.value}") from e
        return self


class SubjectAltNameConfig(BaseModel):
    critical: bool = False
    names: List[GeneralNameConfig] = Field(..., min_length=1)


class ExtensionsConfig(BaseModel):
    """
    Extensions to place in a certificate or to request in a CSR.
    Accepts the camelCase keys (basicConstraints, keyUsage, extendedKeyUsage,
    subjectAltName) as well as the field names.
    """
    basic_constraints: Optional[BasicConstraintsConfig] = Field(default=None, alias="basicConstraints")
    key_usage: Optional[KeyUsageConfig] = Field(default=None, alias="keyUsage")
    extended_key_usage: Optional[ExtendedKeyUsageConfig] = Field(default=None, alias="extendedKeyUsage")
    subject_alt_name: Optional[SubjectAltNameConfig] = Field(default=None, alias="subjectAltName")

    class Config:
        populate_by_name = True
        extra = "forbid"

    @property
    def is_empty(self) -> bool:
        return (
            self.basic_constraints is None
            and self.key_usage is None
            and self.extended_key_usage is None
            and self.subject_alt_name is None
        )
