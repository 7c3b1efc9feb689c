"""A small controller runtime: watch events, work queues, controllers and a manager."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .api import (
    CORE_GROUP_VERSION,
    Namespace,
    NamespacedName,
    ObjectStore,
    Scheme,
    add_to_scheme,
    parse_group_version,
)

log = logging.getLogger(__name__)


class EventType(enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    GENERIC = "generic"


@dataclass(frozen=True)
class Event:
    """A change to an object; ``old`` is set for updates when known."""

    type: EventType
    obj: Any
    old: Any = None


@dataclass(frozen=True)
class Request:
    """Identifies the object a reconciler should look at."""

    namespaced_name: NamespacedName

    @property
    def name(self) -> str:
        return self.namespaced_name.name

    @property
    def namespace(self) -> str:
        return self.namespaced_name.namespace

    def __str__(self) -> str:
        return str(self.namespaced_name)


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile; ask for the request to be queued again if set."""

    requeue: bool = False
    requeue_after: float = 0.0


class Reconciler(Protocol):
    def reconcile(self, request: Request) -> Result: ...


class EventHandler(Protocol):
    def handle(self, event: Event, queue: list[Request]) -> None: ...


def _request_for(obj: Any) -> Request:
    return Request(NamespacedName(obj.metadata.namespace, obj.metadata.name))


def _kind_name(kind: str | type) -> str:
    return kind if isinstance(kind, str) else kind.KIND  # type: ignore[attr-defined]


class EnqueueRequestForObject:
    """Enqueues a request for the object the event is about."""

    def handle(self, event: Event, queue: list[Request]) -> None:
        for obj in (event.old, event.obj):
            if obj is not None:
                queue.append(_request_for(obj))


class EnqueueRequestForOwner:
    """Enqueues requests for the owners of the given type named in an object's owner references."""

    def __init__(self, owner_type: type) -> None:
        self.owner_type = owner_type
        self._group = parse_group_version(owner_type.API_VERSION).group  # type: ignore[attr-defined]

    def handle(self, event: Event, queue: list[Request]) -> None:
        for obj in (event.old, event.obj):
            if obj is not None:
                queue.extend(self._owner_requests(obj))

    def _owner_requests(self, obj: Any) -> list[Request]:
        namespace = obj.metadata.namespace if self.owner_type.NAMESPACED else ""  # type: ignore[attr-defined]
        requests = []
        for ref in obj.metadata.owner_references:
            try:
                group_version = parse_group_version(ref.api_version)
            except ValueError:
                log.error("could not parse OwnerReference APIVersion %r", ref.api_version)
                return []
            if ref.kind == self.owner_type.KIND and group_version.group == self._group:  # type: ignore[attr-defined]
                requests.append(Request(NamespacedName(namespace, ref.name)))
        return requests


class Controller:
    """Turns watched events into queued requests and hands them to a reconciler."""

    def __init__(self, name: str, reconciler: Reconciler, scheme: Scheme | None = None) -> None:
        if not name:
            raise ValueError("must specify a name for the controller")
        if reconciler is None:
            raise ValueError("must specify a reconciler")
        self.name = name
        self.reconciler = reconciler
        self.scheme = scheme
        self.queue: list[Request] = []
        self._watches: list[tuple[str, EventHandler]] = []

    def watch(self, kind: str | type, handler: EventHandler) -> None:
        """Route events about objects of ``kind`` through ``handler``."""
        inject = getattr(handler, "inject_scheme", None)
        if inject is not None and self.scheme is not None:
            inject(self.scheme)
        self._watches.append((_kind_name(kind), handler))

    def _enqueue(self, request: Request) -> None:
        if request not in self.queue:
            self.queue.append(request)

    def handle(self, event: Event) -> None:
        kind = _kind_name(type(event.obj))
        for watched, handler in self._watches:
            if watched != kind:
                continue
            found: list[Request] = []
            handler.handle(event, found)
            for request in found:
                self._enqueue(request)

    def run_pending(self) -> list[tuple[Request, Exception | None]]:
        """Reconcile every request queued so far.

        Failed requests, and those whose result asks for it, are queued again.
        Returns each processed request with the error it raised, if any.
        """
        pending, self.queue = self.queue, []
        outcomes: list[tuple[Request, Exception | None]] = []
        for request in pending:
            try:
                result = self.reconciler.reconcile(request)
            except Exception as exc:
                log.error("reconciler %s failed for %s: %s", self.name, request, exc)
                self._enqueue(request)
                outcomes.append((request, exc))
                continue
            if result.requeue or result.requeue_after > 0:
                self._enqueue(request)
            outcomes.append((request, None))
        return outcomes


class Manager:
    """Owns the client, the scheme and the controllers, and feeds them store events."""

    def __init__(self, client: ObjectStore | None = None, scheme: Scheme | None = None) -> None:
        self.client = client if client is not None else ObjectStore()
        if scheme is None:
            scheme = Scheme()
            scheme.register(CORE_GROUP_VERSION, Namespace)
            add_to_scheme(scheme)
        self.scheme = scheme
        self.controllers: list[Controller] = []
        self.client.watchers.append(self._on_change)

    def new_controller(self, name: str, reconciler: Reconciler) -> Controller:
        controller = Controller(name, reconciler, self.scheme)
        self.controllers.append(controller)
        return controller

    def dispatch(self, event: Event) -> None:
        for controller in list(self.controllers):
            controller.handle(event)

    def _on_change(self, operation: str, obj: Any) -> None:
        self.dispatch(Event(EventType(operation), obj))