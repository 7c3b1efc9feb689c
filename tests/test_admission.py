import json

import pytest

from tenantctl.admission import (
    AdmissionRequest,
    Decoder,
    FieldError,
    Operation,
    Response,
    WebhookBuilder,
    aggregate,
    error_response,
    validate_namespace_name,
    validation_response,
)
from tenantctl.api import ObjectMeta, Tenant, TenantNamespace, TenantSpec


class Allow:
    def handle(self, request):
        return validation_response(True, "")


class Deny:
    def __init__(self, message):
        self.message = message

    def handle(self, request):
        return error_response(403, self.message)


def test_error_response_denies_with_code_and_message():
    response = error_response(400, ValueError("bad input"))
    assert response == Response(allowed=False, code=400, message="bad input")


def test_validation_response_carries_reason():
    assert validation_response(True, "") == Response(allowed=True)
    assert validation_response(False, "nope").reason == "nope"


@pytest.mark.parametrize("name", ["my-name", "123-abc", "a", "a" * 63])
def test_valid_namespace_names(name):
    assert validate_namespace_name(name) == []


@pytest.mark.parametrize("name", ["", "Abc", "bad_name", "-a", "a-", "a.b"])
def test_invalid_namespace_names(name):
    assert len(validate_namespace_name(name)) == 1


def test_too_long_namespace_name():
    problems = validate_namespace_name("a" * 64)
    assert len(problems) == 1
    assert "63" in problems[0]


def test_forbidden_field_error_text():
    err = FieldError.forbidden("spec.name", "cannot modify")
    assert str(err) == "spec.name: Forbidden: cannot modify"


def test_invalid_field_error_quotes_value():
    err = FieldError.invalid("metadata.namespace", "x y", "bad")
    assert str(err).startswith("metadata.namespace: ")
    assert '"x y"' in str(err)
    assert str(err).endswith(": bad")


def test_aggregate_empty_is_none():
    assert aggregate([]) is None


def test_aggregate_single_and_many():
    first = FieldError.forbidden("spec.a", "one")
    second = FieldError.forbidden("spec.b", "two")
    assert str(aggregate([first])) == str(first)
    assert str(aggregate([first, second])) == f"[{first}, {second}]"
    assert str(aggregate([first, first])) == str(first)
    assert aggregate([first, second]).errors == [first, second]


def test_decoder_round_trip_dict_and_json():
    tenant = Tenant(metadata=ObjectMeta(name="foo"),
                    spec=TenantSpec(tenant_admin_namespace_name="t1admin"))
    decoder = Decoder()
    assert decoder.decode(tenant.to_dict(), Tenant) == tenant
    assert decoder.decode(json.dumps(tenant.to_dict()), Tenant) == tenant
    assert decoder.decode(json.dumps(tenant.to_dict()).encode(), Tenant) == tenant


@pytest.mark.parametrize("raw", [None, "", b"", "{not json", "[1, 2]"])
def test_decoder_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        Decoder().decode(raw, Tenant)


def test_decoder_rejects_wrong_kind():
    with pytest.raises(ValueError):
        Decoder().decode(Tenant(metadata=ObjectMeta(name="foo")).to_dict(), TenantNamespace)


def test_builder_requires_name():
    with pytest.raises(ValueError):
        WebhookBuilder().build()


def test_builder_builds_webhook():
    webhook = (WebhookBuilder("check.x-k8s.io", "/check",
                              operations=(Operation.CREATE,), for_type=Tenant)
               .handlers(Allow())
               .build())
    assert webhook.name == "check.x-k8s.io"
    assert webhook.path == "/check"
    assert webhook.operations == (Operation.CREATE,)
    assert webhook.for_type is Tenant
    assert webhook.failure_policy == "Fail"
    assert len(webhook.handlers) == 1


def test_webhook_returns_first_denial():
    webhook = WebhookBuilder("w").handlers(Allow(), Deny("first"), Deny("second")).build()
    response = webhook.handle(AdmissionRequest(Operation.CREATE, {}))
    assert response.allowed is False
    assert response.message == "first"


def test_webhook_without_handlers_allows():
    webhook = WebhookBuilder("w").build()
    assert webhook.handle(AdmissionRequest(Operation.CREATE, {})).allowed is True