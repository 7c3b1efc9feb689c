"""Validating admission webhook for TenantNamespace objects."""

from __future__ import annotations

from typing import Any

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
from .api import Tenant, TenantNamespace
from .util import get_tenant_namespace_name

WEBHOOK_NAME = "validating-create-update-tenantnamespace"

_BAD_REQUEST = 400
_INTERNAL_SERVER_ERROR = 500
_UNPROCESSABLE_ENTITY = 422

_REQUIRED = "Required value"


class _RequiredError(FieldError):
    """A field error for a value that must be set."""

    def body(self) -> str:
        return f"{self.type}: {self.detail}" if self.detail else self.type


def _required(path: str, detail: str = "") -> FieldError:
    return _RequiredError(_REQUIRED, path, detail)


def _validate_object_meta(obj: TenantNamespace, path: str) -> list[FieldError]:
    """Check the metadata every namespaced object must carry."""
    errors: list[FieldError] = []
    meta = obj.metadata
    if not meta.name:
        errors.append(_required(f"{path}.name", "name or generateName is required"))
    # Names of TenantNamespace objects have no further requirements.
    if not meta.namespace:
        errors.append(_required(f"{path}.namespace"))
    else:
        errors.extend(FieldError.invalid(f"{path}.namespace", meta.namespace, msg)
                      for msg in validate_namespace_name(meta.namespace))
    return errors


class TenantNamespaceCreateUpdateHandler:
    """Checks that a TenantNamespace belongs to a tenant and names a valid namespace."""

    def __init__(self, client: Any = None, decoder: Decoder | None = None) -> None:
        self.client = client
        self.decoder = decoder if decoder is not None else Decoder()

    def validate_update(self, obj: TenantNamespace,
                        oldobj: TenantNamespace) -> list[FieldError]:
        if obj.spec.name == oldobj.spec.name:
            return []
        return [FieldError.forbidden(
            "spec.name",
            "cannot modify the name field in spec after initial creation "
            f"(attempting to change from {oldobj.spec.name} to {obj.spec.name})",
        )]

    def validate_create(self, tenants: list[Tenant],
                        obj: TenantNamespace) -> list[FieldError]:
        path = "metadata"
        errors = _validate_object_meta(obj, path)

        tenant = next((t for t in tenants
                       if t.spec.tenant_admin_namespace_name == obj.namespace), None)
        require_prefix = tenant.spec.require_namespace_prefix if tenant else False
        if tenant is None:
            errors.append(FieldError.invalid(
                f"{path}.namespace", obj.namespace,
                "namespace of tenantnamespace CR has to be a tenant admin namespace",
            ))
        name = get_tenant_namespace_name(require_prefix, obj)
        errors.extend(FieldError.invalid(f"{path}.namespace", name, msg)
                      for msg in validate_namespace_name(name))
        return errors

    def handle(self, request: AdmissionRequest) -> Response:
        try:
            obj = self.decoder.decode(request.object, TenantNamespace)
        except ValueError as exc:
            return error_response(_BAD_REQUEST, exc)

        if request.operation is Operation.CREATE:
            try:
                tenants = self.client.list(Tenant)
            except Exception:
                return error_response(
                    _INTERNAL_SERVER_ERROR,
                    "cannot validate tenantnamespace CR because client cannot get tenant list",
                )
            errors = self.validate_create(tenants, obj)
            if errors:
                return error_response(_UNPROCESSABLE_ENTITY, aggregate(errors))
        elif request.operation is Operation.UPDATE:
            try:
                oldobj = self.decoder.decode(request.old_object, TenantNamespace)
            except ValueError as exc:
                return error_response(_BAD_REQUEST, exc)
            errors = self.validate_update(obj, oldobj)
            if errors:
                return error_response(_INTERNAL_SERVER_ERROR, aggregate(errors))
        return validation_response(True, "")

    def inject_client(self, client: Any) -> None:
        self.client = client

    def inject_decoder(self, decoder: Decoder) -> None:
        self.decoder = decoder


def builders() -> dict[str, WebhookBuilder]:
    """Return the webhook builders for TenantNamespace validation, keyed by builder name."""
    return {
        WEBHOOK_NAME: WebhookBuilder(
            WEBHOOK_NAME + ".x-k8s.io",
            "/" + WEBHOOK_NAME,
            validating=True,
            operations=(Operation.CREATE, Operation.UPDATE),
            failure_policy="Fail",
            for_type=TenantNamespace,
        )
    }


def handler_map() -> dict[str, list[TenantNamespaceCreateUpdateHandler]]:
    """Return the admission handlers for TenantNamespace validation, keyed by builder name."""
    return {WEBHOOK_NAME: [TenantNamespaceCreateUpdateHandler()]}