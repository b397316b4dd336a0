# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Request, response and result models for the Prove verification flow.

Inbound bodies use the browser's camelCase names (``phoneNumber``,
``lastFourSSN``, ``correlationId``); the snake_case field names are
accepted as well because the personal-info form posts them.  Every
validator raises ``ValueError`` with the message that ends up in the
400 envelope, so the wording lives here rather than in the API layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from fastapi.encoders import jsonable_encoder

# Digits with optional leading +, separators (space, dot, dash), bracketed
# groups and a trailing extension.  Consecutive digit runs must be split by
# a separator or a bracket so a run of digits matches exactly one way.
PHONE_PATTERN = re.compile(
    r"^(\+\s?)?(\(\+?\d+([\s\-.]\d+)?\)|\d+)"
    r"([\s\-.]?\(\d+([\s\-.]\d+)?\)|[\s\-.]\d+|(?<=\))\d+)*"
    r"(\s?(x|ext\.?)\s?\d+)?$",
    re.IGNORECASE,
)
SSN_LAST_FOUR_PATTERN = re.compile(r"^\d{4}$")


def _required(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"The {field} field is required.")
    return value


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# =============================================================================
# Inbound requests
# =============================================================================


class StartVerificationRequest(_RequestModel):
    phone_number: str = Field(..., alias="phoneNumber")
    last_four_ssn: str = Field(..., alias="lastFourSSN")
    flow_type: str = Field(..., alias="flowType")

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, v: str) -> str:
        v = _required(v, "PhoneNumber")
        if not PHONE_PATTERN.match(v):
            raise ValueError("The PhoneNumber field is not a valid phone number.")
        return v

    @field_validator("last_four_ssn")
    @classmethod
    def _ssn_last_four(cls, v: str) -> str:
        v = _required(v, "LastFourSSN")
        if not SSN_LAST_FOUR_PATTERN.match(v):
            raise ValueError("The LastFourSSN field must be exactly 4 digits.")
        return v

    @field_validator("flow_type")
    @classmethod
    def _flow_type(cls, v: str) -> str:
        return _required(v, "FlowType")


class ValidateVerificationRequest(_RequestModel):
    correlation_id: str = Field(..., alias="correlationId")

    @field_validator("correlation_id")
    @classmethod
    def _correlation_id(cls, v: str) -> str:
        return _required(v, "CorrelationId")


class Address(_RequestModel):
    address: str
    city: str
    post_code: str = Field(..., alias="postCode")

    @field_validator("address", "city", "post_code")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _required(v, _pascal(info.field_name))

    def to_provider(self) -> Dict[str, str]:
        return {"address": self.address, "city": self.city, "postalCode": self.post_code}


class Individual(_RequestModel):
    """Personal details sent to the provider on completion."""

    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email_addresses: List[str] = Field(default_factory=list, alias="emailAddresses")
    addresses: List[Address] = Field(default_factory=list)
    dob: str
    ssn: str

    @field_validator("first_name", "last_name", "dob", "ssn")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _required(v, _pascal(info.field_name))

    def to_provider(self) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "emailAddresses": list(self.email_addresses),
            "addresses": [a.to_provider() for a in self.addresses],
            "dob": self.dob,
            "ssn": self.ssn,
        }


class CompleteVerificationRequest(_RequestModel):
    correlation_id: str = Field(..., alias="correlationId")
    individual: Individual

    @field_validator("correlation_id")
    @classmethod
    def _correlation_id(cls, v: str) -> str:
        return _required(v, "CorrelationId")


def _pascal(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


# =============================================================================
# Outbound responses
# =============================================================================


class StartVerificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_token: str = Field("", alias="authToken")
    correlation_id: str = Field("", alias="correlationId")


class ApiResponse(BaseModel):
    """Uniform envelope for every /api/verification response."""

    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None

    def to_content(self) -> Dict[str, Any]:
        """JSON-ready dict that omits unset envelope members."""
        content: Dict[str, Any] = {"success": self.success}
        for key in ("data", "message", "errors"):
            value = getattr(self, key)
            if value is not None:
                content[key] = value
        return jsonable_encoder(content, by_alias=True)


# =============================================================================
# Adapter results
# =============================================================================


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    expires_in: int


@dataclass(frozen=True)
class ProviderAccepted:
    data: Dict[str, Any]


@dataclass(frozen=True)
class ProviderRejected:
    reason: str
    data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class TransportFault:
    cause: BaseException


ProviderOutcome = Union[ProviderAccepted, ProviderRejected, TransportFault]
