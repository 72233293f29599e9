"""
Config Propagator
=================
Everything a lifecycle operation needs besides the program itself:

  aws:profile              provider profile (omitted when empty)
  aws:region               provider region
  <stack>:bucketName       caller values, stack-qualified so the program
  <stack>:customMessage    could read them back with pulumi.Config()

When AWS_ENDPOINT_URL is set (LocalStack) the AWS provider is pointed at it
and told to skip the credential and account-id checks LocalStack can't
answer. Those keys use Pulumi's path syntax, so the whole map is written
with path=True.

Settings are read from the environment on every call so monkeypatch
overrides work in tests and a redeploy is never needed to change the stack.
"""
from __future__ import annotations

import os
from typing import Mapping

from pulumi import automation as auto
from pydantic import BaseModel

from shared.errors import ConfigPropagationError
from shared.models import ResourceSpec, StackIdentity

from .engine import translate_engine_error

DEFAULT_PROJECT_NAME = "pulumi_api_rest"
DEFAULT_STACK_NAME = "dev"
DEFAULT_PROFILE = "dev"
DEFAULT_REGION = "us-east-1"

# Credentials LocalStack accepts, never used against real AWS.
_LOCALSTACK_ACCESS_KEY = "test"
_LOCALSTACK_SECRET_KEY = "test"


class ServiceSettings(BaseModel):
    project_name: str = DEFAULT_PROJECT_NAME
    stack_name: str = DEFAULT_STACK_NAME
    aws_profile: str = DEFAULT_PROFILE
    aws_region: str = DEFAULT_REGION
    aws_endpoint_url: str | None = None
    work_dir: str | None = None

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        env = os.environ
        return cls(
            project_name=env.get("PULUMI_PROJECT_NAME") or DEFAULT_PROJECT_NAME,
            stack_name=env.get("PULUMI_STACK_NAME") or DEFAULT_STACK_NAME,
            aws_profile=env.get("AWS_PROFILE", DEFAULT_PROFILE),
            aws_region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            aws_endpoint_url=env.get("AWS_ENDPOINT_URL") or None,
            work_dir=env.get("PULUMI_WORK_DIR") or None,
        )

    def identity(self) -> StackIdentity:
        return StackIdentity(project_name=self.project_name, stack_name=self.stack_name)


def build_stack_config(
    stack_name: str,
    spec: ResourceSpec,
    settings: ServiceSettings,
) -> dict[str, auto.ConfigValue]:
    config = {
        "aws:region": auto.ConfigValue(value=settings.aws_region),
        f"{stack_name}:bucketName": auto.ConfigValue(value=spec.bucket_name),
        f"{stack_name}:customMessage": auto.ConfigValue(value=spec.custom_message),
    }
    if settings.aws_profile:
        config["aws:profile"] = auto.ConfigValue(value=settings.aws_profile)

    if settings.aws_endpoint_url:
        config.update({
            "aws:endpoints[0].s3": auto.ConfigValue(value=settings.aws_endpoint_url),
            "aws:accessKey": auto.ConfigValue(value=_LOCALSTACK_ACCESS_KEY),
            "aws:secretKey": auto.ConfigValue(value=_LOCALSTACK_SECRET_KEY, secret=True),
            "aws:skipCredentialsValidation": auto.ConfigValue(value="true"),
            "aws:skipRequestingAccountId": auto.ConfigValue(value="true"),
            "aws:s3UsePathStyle": auto.ConfigValue(value="true"),
        })
        config.pop("aws:profile", None)
    return config


def uses_path_keys(config: Mapping[str, auto.ConfigValue]) -> bool:
    return any("[" in key or "." in key.split(":", 1)[-1] for key in config)


def apply_stack_config(handle, config: Mapping[str, auto.ConfigValue]) -> None:
    """Write the full map onto the stack. Re-applied on every request, last writer wins."""
    try:
        if uses_path_keys(config):
            handle.set_all_config(dict(config), path=True)
        else:
            handle.set_all_config(dict(config))
    except Exception as e:
        raise translate_engine_error(e, ConfigPropagationError) from e
