"""Validating admission webhook for Tenant objects."""

from __future__ import annotations

from .admission import (
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
from .api import Tenant

WEBHOOK_NAME = "validating-create-update-tenant"

_BAD_REQUEST = 400
_INTERNAL_SERVER_ERROR = 500
_UNPROCESSABLE_ENTITY = 422


def _show(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TenantCreateUpdateHandler:
    """Checks Tenant admin namespace names and forbids changing the spec after creation."""

    def __init__(self, decoder: Decoder | None = None) -> None:
        self.decoder = decoder if decoder is not None else Decoder()

    def validate_update(self, obj: Tenant, oldobj: Tenant) -> list[FieldError]:
        errors = []
        for attr, json_name in (("tenant_admin_namespace_name", "tenantAdminNamespaceName"),
                                ("require_namespace_prefix", "requireNamespacePrefix")):
            old, new = getattr(oldobj.spec, attr), getattr(obj.spec, attr)
            if old != new:
                errors.append(FieldError.forbidden(
                    f"spec.{json_name}",
                    f"cannot modify the {json_name} field in spec after initial creation "
                    f"(attempting to change from {_show(old)} to {_show(new)})",
                ))
        return errors

    def validate_create(self, obj: Tenant) -> list[FieldError]:
        name = obj.spec.tenant_admin_namespace_name
        return [FieldError.invalid("spec.tenantAdminNamespaceName", name, msg)
                for msg in validate_namespace_name(name)]

    def handle(self, request: AdmissionRequest) -> Response:
        try:
            obj = self.decoder.decode(request.object, Tenant)
        except ValueError as exc:
            return error_response(_BAD_REQUEST, exc)

        if request.operation is Operation.CREATE:
            errors = self.validate_create(obj)
            if errors:
                return error_response(_UNPROCESSABLE_ENTITY, aggregate(errors))
        elif request.operation is Operation.UPDATE:
            try:
                oldobj = self.decoder.decode(request.old_object, Tenant)
            except ValueError as exc:
                return error_response(_BAD_REQUEST, exc)
            errors = self.validate_update(obj, oldobj)
            if errors:
                return error_response(_INTERNAL_SERVER_ERROR, aggregate(errors))
        return validation_response(True, "")

    def inject_decoder(self, decoder: Decoder) -> None:
        self.decoder = decoder


def builders() -> dict[str, WebhookBuilder]:
    """Return the webhook builders for Tenant validation, keyed by builder name."""
    return {
        WEBHOOK_NAME: WebhookBuilder(
            WEBHOOK_NAME + ".x-k8s.io",
            "/" + WEBHOOK_NAME,
            validating=True,
            operations=(Operation.CREATE, Operation.UPDATE),
            failure_policy="Fail",
            for_type=Tenant,
        )
    }


def handler_map() -> dict[str, list[TenantCreateUpdateHandler]]:
    """Return the admission handlers for Tenant validation, keyed by builder name."""
    return {WEBHOOK_NAME: [TenantCreateUpdateHandler()]}