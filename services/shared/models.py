"""
Bucket Stack Domain Models
==========================
Pydantic models shared by the dispatcher, the lifecycle manager and the
config propagator.

Wire contract: the request body uses camelCase keys only.

  {"bucketName": "my-bucket", "customMessage": "hi"}

Snake_case or capitalized keys (BucketName) are not accepted as aliases;
they are ignored like any other unknown key, which leaves bucketName
missing and fails validation.
"""
from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# S3 naming rules: 3-63 chars, lowercase letters, digits, dots and hyphens,
# must start and end with a letter or digit.
_BUCKET_NAME = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_IP_ADDRESS = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_RESERVED_PREFIXES = ("xn--", "sthree-")
_RESERVED_SUFFIXES = ("-s3alias", "--ol-s3")


class LifecycleAction(str, Enum):
    UP = "up"
    REFRESH = "refresh"
    DESTROY = "destroy"
    CANCEL = "cancel"


class StackIdentity(BaseModel):
    """The (project, stack) pair naming one Pulumi stack."""
    model_config = ConfigDict(frozen=True)

    project_name: str = Field(min_length=1)
    stack_name: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"{self.project_name}/{self.stack_name}"


class ResourceSpec(BaseModel):
    """Caller-supplied desired state for the website bucket."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=False)

    bucket_name: str
    custom_message: str = ""

    @field_validator("bucket_name")
    @classmethod
    def _valid_bucket_name(cls, value: str) -> str:
        if not value:
            raise ValueError("bucket name must not be empty")
        if not _BUCKET_NAME.match(value):
            raise ValueError(
                "bucket name must be 3-63 characters of lowercase letters, digits, "
                "dots or hyphens, starting and ending with a letter or digit"
            )
        if ".." in value:
            raise ValueError("bucket name must not contain two adjacent periods")
        if _IP_ADDRESS.match(value):
            raise ValueError("bucket name must not be formatted as an IP address")
        if value.startswith(_RESERVED_PREFIXES) or value.endswith(_RESERVED_SUFFIXES):
            raise ValueError("bucket name uses a reserved prefix or suffix")
        return value


class LifecycleResult(BaseModel):
    action: LifecycleAction
    stack_name: str
    success: bool = True
    message: str
    website_url: str | None = None
