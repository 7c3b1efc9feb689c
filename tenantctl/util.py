"""Helpers shared by the tenancy controllers and webhooks."""

from __future__ import annotations

from .api import TenantNamespace


def get_tenant_namespace_name(prefix: bool, instance: TenantNamespace) -> str:
    """Return the namespace name a TenantNamespace asks for.

    The spec name is used, or the object's own name when the spec name is
    empty. With ``prefix`` the object's namespace (the tenant admin namespace)
    and a dash are put in front.
    """
    name = instance.spec.name or instance.metadata.name
    if prefix:
        name = f"{instance.metadata.namespace}-{name}"
    return name