"""Reconciles Tenant objects by creating and claiming their tenant admin namespace."""

from __future__ import annotations

from typing import Any

from .api import (
    SCHEME_GROUP_VERSION,
    Namespace,
    NamespacedName,
    NotFoundError,
    ObjectMeta,
    ObjectStore,
    OwnerReference,
    Scheme,
    Tenant,
)
from .runtime import (
    Controller,
    EnqueueRequestForObject,
    EnqueueRequestForOwner,
    Manager,
    Request,
    Result,
)

CONTROLLER_NAME = "tenant-controller"


class TenantReconciler:
    """Makes sure a Tenant's admin namespace exists and is owned by the Tenant."""

    def __init__(self, client: ObjectStore, scheme: Scheme | None = None) -> None:
        self.client = client
        self.scheme = scheme

    def reconcile(self, request: Request) -> Result:
        # Tenant is cluster scoped: the request's namespace is ignored.
        key = NamespacedName("", request.name)
        try:
            instance = self.client.get(Tenant, key)
        except NotFoundError:
            return Result()

        admin_name = instance.spec.tenant_admin_namespace_name
        if not admin_name:
            return Result()

        expected = OwnerReference(
            api_version=str(SCHEME_GROUP_VERSION),
            kind="Tenant",
            name=instance.name,
            uid=instance.uid,
        )
        for ns in self.client.list(Namespace):
            if ns.name == admin_name:
                if expected not in ns.owner_references:
                    owners = ", ".join(f"{ref.kind}/{ref.name}" for ref in ns.owner_references)
                    raise RuntimeError(
                        f"TenantAdminNamespace {ns.name} is owned by [{owners}]"
                    )
                return Result()

        self.client.create(
            Namespace(metadata=ObjectMeta(name=admin_name, owner_references=[expected]))
        )
        return Result()


def new_reconciler(mgr: Manager) -> TenantReconciler:
    return TenantReconciler(mgr.client, mgr.scheme)


def add_reconciler(mgr: Manager, reconciler: Any) -> Controller:
    """Register a controller that watches Tenants and the namespaces they own."""
    controller = mgr.new_controller(CONTROLLER_NAME, reconciler)
    controller.watch(Tenant, EnqueueRequestForObject())
    controller.watch(Namespace, EnqueueRequestForOwner(Tenant))
    return controller


def add(mgr: Manager) -> Controller:
    return add_reconciler(mgr, new_reconciler(mgr))