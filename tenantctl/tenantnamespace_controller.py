"""Reconciles TenantNamespace objects into namespaces owned by them."""

from __future__ import annotations

import copy
import logging
import time
from typing import Any

from .api import (
    SCHEME_GROUP_VERSION,
    ConflictError,
    Namespace,
    NamespacedName,
    NotFoundError,
    ObjectMeta,
    OwnerReference,
    Scheme,
    Tenant,
    TenantNamespace,
)
from .runtime import Controller, EnqueueRequestForObject, Manager, Request, Result
from .tenantnamespace_events import TENANT_ADMIN_NAMESPACE_ANNOTATION, EnqueueTenantNamespace
from .util import get_tenant_namespace_name

log = logging.getLogger(__name__)

CONTROLLER_NAME = "tenantnamespace-controller"

# Delays between the four attempts made when an update hits a conflict.
DEFAULT_RETRY_DELAYS = (0.01, 0.05, 0.25)


class TenantNamespaceReconciler:
    """Creates the namespace a TenantNamespace asks for, or takes over an existing one."""

    def __init__(self, client: Any, scheme: Scheme | None = None,
                 retry_delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS) -> None:
        self.client = client
        self.scheme = scheme
        self.retry_delays = retry_delays

    def _update_namespace(self, ns: Namespace, admin_namespace: str,
                          owner_ref: OwnerReference) -> None:
        """Add ``owner_ref`` and the admin namespace annotation, retrying on conflicts."""
        clone = copy.deepcopy(ns)
        delays = iter(self.retry_delays)
        while True:
            clone.metadata.owner_references.append(owner_ref)
            clone.metadata.annotations[TENANT_ADMIN_NAMESPACE_ANNOTATION] = admin_namespace
            try:
                self.client.update(clone)
                return
            except ConflictError:
                try:
                    clone = self.client.get(Namespace, NamespacedName("", clone.metadata.name))
                except NotFoundError:
                    log.info("failed to fetch namespace %s on update failure",
                             clone.metadata.name)
                delay = next(delays, None)
                if delay is None:
                    raise
                time.sleep(delay)

    def reconcile(self, request: Request) -> Result:
        try:
            instance = self.client.get(TenantNamespace, request.namespaced_name)
        except NotFoundError:
            return Result()

        namespaces = self.client.list(Namespace)
        tenants = self.client.list(Tenant)

        tenant = next((t for t in tenants
                       if t.spec.tenant_admin_namespace_name == instance.namespace), None)
        if tenant is None:
            raise RuntimeError(
                f"TenantNamespace CR {instance.namespace}/{instance.name} "
                "does not belong to any tenant"
            )

        tenant_ns_name = get_tenant_namespace_name(tenant.spec.require_namespace_prefix, instance)
        expected = OwnerReference(
            api_version=str(SCHEME_GROUP_VERSION),
            kind="TenantNamespace",
            name=instance.name,
            uid=instance.uid,
        )

        for ns in namespaces:
            if ns.name != tenant_ns_name:
                continue
            for ref in ns.owner_references:
                if ref == expected:
                    return Result()
                if ref.api_version == expected.api_version and ref.kind == expected.kind:
                    raise RuntimeError(
                        f"Namespace {ns.name} is owned by another "
                        f"{ref.kind}/{ref.name} TenantNamespace CR"
                    )
            log.info("namespace %s has been created without TenantNamespace owner", ns.name)
            self._update_namespace(ns, instance.namespace, expected)
            return Result()

        self.client.create(Namespace(metadata=ObjectMeta(
            name=tenant_ns_name,
            annotations={TENANT_ADMIN_NAMESPACE_ANNOTATION: instance.namespace},
            owner_references=[expected],
        )))
        return Result()


def new_reconciler(mgr: Manager) -> TenantNamespaceReconciler:
    return TenantNamespaceReconciler(mgr.client, mgr.scheme)


def add_reconciler(mgr: Manager, reconciler: Any) -> Controller:
    """Register a controller watching TenantNamespaces and the namespaces they own."""
    controller = mgr.new_controller(CONTROLLER_NAME, reconciler)
    controller.watch(TenantNamespace, EnqueueRequestForObject())
    controller.watch(Namespace, EnqueueTenantNamespace())
    return controller


def add(mgr: Manager) -> Controller:
    return add_reconciler(mgr, new_reconciler(mgr))