"""Maps namespace deletions back to the TenantNamespace objects that own them."""

from __future__ import annotations

import logging
from typing import Any

from .api import GroupKind, NamespacedName, Scheme, TenantNamespace, parse_group_version
from .runtime import Event, EventType, Request

log = logging.getLogger(__name__)

TENANT_ADMIN_NAMESPACE_ANNOTATION = "x-k8s.io/tenantAdminNamespace"


class EnqueueTenantNamespace:
    """Enqueues the owning TenantNamespace when a namespace it owns changes.

    Only deletions are watched for now; creation, update and generic events
    are accepted but enqueue nothing.
    """

    watched: frozenset[EventType] = frozenset({EventType.DELETE})

    def __init__(self, group_kind: GroupKind | None = None) -> None:
        self.group_kind = group_kind or GroupKind("", "")

    def _enqueue(self, kind: EventType, event: Event, queue: list[Request]) -> list[Request]:
        """Enqueue owner requests for ``event`` if events of ``kind`` are watched."""
        if kind not in self.watched:
            return []
        requests = self.owner_requests(event.obj)
        queue.extend(requests)
        return requests

    def create(self, event: Event, queue: list[Request]) -> list[Request]:
        """Handle a namespace creation; return the requests enqueued."""
        return self._enqueue(EventType.CREATE, event, queue)

    def delete(self, event: Event, queue: list[Request]) -> list[Request]:
        """Handle a namespace deletion; return the requests enqueued."""
        return self._enqueue(EventType.DELETE, event, queue)

    def generic(self, event: Event, queue: list[Request]) -> list[Request]:
        """Handle a generic namespace event; return the requests enqueued."""
        return self._enqueue(EventType.GENERIC, event, queue)

    def update(self, event: Event, queue: list[Request]) -> list[Request]:
        """Handle a namespace update; return the requests enqueued."""
        return self._enqueue(EventType.UPDATE, event, queue)

    def handle(self, event: Event, queue: list[Request]) -> list[Request]:
        handlers = {
            EventType.CREATE: self.create,
            EventType.DELETE: self.delete,
            EventType.GENERIC: self.generic,
            EventType.UPDATE: self.update,
        }
        return handlers[event.type](event, queue)

    def owner_requests(self, obj: Any) -> list[Request]:
        """Return requests for the TenantNamespace owners of ``obj``.

        The owner's namespace comes from the tenant admin namespace annotation;
        without it, or with an unparsable owner apiVersion, nothing is returned.
        """
        requests = []
        for ref in obj.metadata.owner_references:
            try:
                group_version = parse_group_version(ref.api_version)
            except ValueError:
                log.error("could not parse OwnerReference APIVersion %r", ref.api_version)
                return []
            if ref.kind == self.group_kind.kind and group_version.group == self.group_kind.group:
                admin_namespace = obj.metadata.annotations.get(TENANT_ADMIN_NAMESPACE_ANNOTATION, "")
                if not admin_namespace:
                    log.error("could not find tenant admin namespace key in annotation "
                              "of namespace %s", obj.metadata.name)
                    return []
                requests.append(Request(NamespacedName(admin_namespace, ref.name)))
        return requests

    def inject_scheme(self, scheme: Scheme) -> None:
        kinds = scheme.object_kinds(TenantNamespace)
        self.group_kind = GroupKind(kinds[0].group, kinds[0].kind)