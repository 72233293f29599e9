"""
Unit tests for the request models and the wire contract.
"""
import pytest
from pydantic import ValidationError

import sys
sys.path.insert(0, "services")

from shared.errors import ErrorKind, MissingOutputError, UnknownActionError
from shared.models import LifecycleAction, ResourceSpec, StackIdentity


def test_spec_binds_camel_case_keys():
    """The documented JSON keys are the wire contract."""
    spec = ResourceSpec.model_validate_json('{"bucketName": "my-bucket", "customMessage": "hi"}')
    assert spec.bucket_name == "my-bucket"
    assert spec.custom_message == "hi"


def test_spec_rejects_capitalized_keys():
    """Go-style field names are not aliases: bucketName ends up missing."""
    with pytest.raises(ValidationError) as exc_info:
        ResourceSpec.model_validate_json('{"BucketName": "my-bucket", "CustomMessage": "hi"}')
    assert exc_info.value.errors()[0]["loc"] == ("bucketName",)


def test_custom_message_defaults_to_empty():
    spec = ResourceSpec.model_validate({"bucketName": "my-bucket"})
    assert spec.custom_message == ""


@pytest.mark.parametrize("name", [
    "",
    "ab",
    "My-Bucket",
    "-bucket",
    "bucket-",
    "my..bucket",
    "192.168.1.10",
    "xn--bucket",
    "bucket-s3alias",
    "a" * 64,
    "under_score",
])
def test_invalid_bucket_names_are_rejected(name):
    with pytest.raises(ValidationError):
        ResourceSpec(bucketName=name)


@pytest.mark.parametrize("name", ["my-bucket", "abc", "site.example.com", "a" * 63, "index"])
def test_valid_bucket_names_are_accepted(name):
    assert ResourceSpec(bucketName=name).bucket_name == name


def test_spec_is_immutable():
    spec = ResourceSpec(bucketName="my-bucket", customMessage="hi")
    with pytest.raises(ValidationError):
        spec.custom_message = "changed"


def test_stack_identity_requires_both_names():
    with pytest.raises(ValidationError):
        StackIdentity(project_name="pulumi_api_rest", stack_name="")
    assert str(StackIdentity(project_name="p", stack_name="s")) == "p/s"


def test_lifecycle_actions_cover_the_four_verbs():
    assert {a.value for a in LifecycleAction} == {"up", "refresh", "destroy", "cancel"}


def test_error_kinds_map_to_distinct_status_codes():
    codes = {kind: kind.status_code for kind in ErrorKind}
    assert codes == {
        ErrorKind.VALIDATION: 400,
        ErrorKind.CONFLICT: 409,
        ErrorKind.UPSTREAM_UNAVAILABLE: 503,
        ErrorKind.INTERNAL: 500,
    }


def test_unknown_action_message():
    err = UnknownActionError("deploy")
    assert str(err) == "unknown action: deploy"
    assert err.kind is ErrorKind.VALIDATION


def test_missing_output_messages():
    assert "missing" in str(MissingOutputError("websiteUrl"))
    assert "not a string: int" in str(MissingOutputError("websiteUrl", 42))
