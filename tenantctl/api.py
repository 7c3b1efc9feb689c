"""Tenancy API types, scheme registration and an in-memory object store."""

from __future__ import annotations

import copy
import itertools
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar

GROUP = "tenancy.x-k8s.io"
VERSION = "v1alpha1"


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""


class AlreadyExistsError(ValueError):
    """Raised when creating an object whose key is already taken."""


class ConflictError(RuntimeError):
    """Raised when an update carries a stale resource version."""


@dataclass(frozen=True)
class GroupResource:
    group: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.group}" if self.group else self.resource


@dataclass(frozen=True)
class GroupKind:
    group: str
    kind: str

    def __str__(self) -> str:
        return f"{self.kind}.{self.group}" if self.group else self.kind


@dataclass(frozen=True)
class GroupVersion:
    group: str
    version: str

    def __str__(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def with_resource(self, resource: str) -> GroupResource:
        """Return the group-qualified resource name for this group."""
        return GroupResource(self.group, resource)


SCHEME_GROUP_VERSION = GroupVersion(GROUP, VERSION)
CORE_GROUP_VERSION = GroupVersion("", "v1")


def resource(resource: str) -> GroupResource:
    """Return the group-qualified resource for the tenancy group."""
    return SCHEME_GROUP_VERSION.with_resource(resource)


def parse_group_version(api_version: str) -> GroupVersion:
    """Parse an ``apiVersion`` string such as ``group/version`` or ``v1``."""
    if not api_version or api_version == "/":
        return GroupVersion("", "")
    parts = api_version.split("/")
    if len(parts) == 1:
        return GroupVersion("", parts[0])
    if len(parts) == 2:
        return GroupVersion(parts[0], parts[1])
    raise ValueError(f"unexpected GroupVersion string: {api_version}")


@dataclass(frozen=True)
class NamespacedName:
    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class OwnerReference:
    api_version: str
    kind: str
    name: str
    uid: str

    def to_dict(self) -> dict[str, str]:
        return {"apiVersion": self.api_version, "kind": self.kind,
                "name": self.name, "uid": self.uid}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OwnerReference:
        return cls(data.get("apiVersion", ""), data.get("kind", ""),
                   data.get("name", ""), data.get("uid", ""))


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(default_factory=list)


_META_SCALARS = (("name", "name"), ("namespace", "namespace"),
                 ("uid", "uid"), ("resource_version", "resourceVersion"))


def _meta_to_dict(meta: ObjectMeta) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for attr, key in _META_SCALARS:
        if value := getattr(meta, attr):
            out[key] = value
    if meta.labels:
        out["labels"] = dict(meta.labels)
    if meta.annotations:
        out["annotations"] = dict(meta.annotations)
    if meta.owner_references:
        out["ownerReferences"] = [ref.to_dict() for ref in meta.owner_references]
    return out


def _meta_from_dict(data: dict[str, Any]) -> ObjectMeta:
    return ObjectMeta(
        **{attr: data.get(key, "") for attr, key in _META_SCALARS},
        labels=dict(data.get("labels") or {}),
        annotations=dict(data.get("annotations") or {}),
        owner_references=[OwnerReference.from_dict(r)
                          for r in data.get("ownerReferences") or []],
    )


def _check_type_meta(cls: type, data: dict[str, Any]) -> None:
    kind = data.get("kind")
    if kind and kind != cls.KIND:
        raise ValueError(f"expected kind {cls.KIND}, got {kind}")
    api_version = data.get("apiVersion")
    if api_version and api_version != cls.API_VERSION:
        raise ValueError(f"expected apiVersion {cls.API_VERSION}, got {api_version}")


class _Object:
    """Shared accessors for objects that carry an ``ObjectMeta``."""

    KIND: ClassVar[str]
    API_VERSION: ClassVar[str]
    NAMESPACED: ClassVar[bool]
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def uid(self) -> str:
        return self.metadata.uid

    @property
    def owner_references(self) -> list[OwnerReference]:
        return self.metadata.owner_references

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels


@dataclass
class Namespace(_Object):
    KIND: ClassVar[str] = "Namespace"
    API_VERSION: ClassVar[str] = str(CORE_GROUP_VERSION)
    NAMESPACED: ClassVar[bool] = False

    metadata: ObjectMeta = field(default_factory=ObjectMeta)


@dataclass
class TenantSpec:
    tenant_admin_namespace_name: str = ""
    require_namespace_prefix: bool = False


@dataclass
class Tenant(_Object):
    """Cluster-scoped tenant, optionally owning a tenant admin namespace."""

    KIND: ClassVar[str] = "Tenant"
    API_VERSION: ClassVar[str] = str(SCHEME_GROUP_VERSION)
    NAMESPACED: ClassVar[bool] = False

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: TenantSpec = field(default_factory=TenantSpec)

    def to_dict(self) -> dict[str, Any]:
        spec: dict[str, Any] = {}
        if self.spec.tenant_admin_namespace_name:
            spec["tenantAdminNamespaceName"] = self.spec.tenant_admin_namespace_name
        if self.spec.require_namespace_prefix:
            spec["requireNamespacePrefix"] = True
        return {"apiVersion": self.API_VERSION, "kind": self.KIND,
                "metadata": _meta_to_dict(self.metadata), "spec": spec, "status": {}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tenant:
        _check_type_meta(cls, data)
        spec = data.get("spec") or {}
        return cls(
            metadata=_meta_from_dict(data.get("metadata") or {}),
            spec=TenantSpec(
                tenant_admin_namespace_name=spec.get("tenantAdminNamespaceName", ""),
                require_namespace_prefix=bool(spec.get("requireNamespacePrefix", False)),
            ),
        )


@dataclass
class TenantNamespaceSpec:
    name: str = ""


@dataclass
class TenantNamespace(_Object):
    """Namespaced request for a tenant namespace, living in a tenant admin namespace."""

    KIND: ClassVar[str] = "TenantNamespace"
    API_VERSION: ClassVar[str] = str(SCHEME_GROUP_VERSION)
    NAMESPACED: ClassVar[bool] = True

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: TenantNamespaceSpec = field(default_factory=TenantNamespaceSpec)

    def to_dict(self) -> dict[str, Any]:
        spec = {"name": self.spec.name} if self.spec.name else {}
        return {"apiVersion": self.API_VERSION, "kind": self.KIND,
                "metadata": _meta_to_dict(self.metadata), "spec": spec, "status": {}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TenantNamespace:
        _check_type_meta(cls, data)
        spec = data.get("spec") or {}
        return cls(
            metadata=_meta_from_dict(data.get("metadata") or {}),
            spec=TenantNamespaceSpec(name=spec.get("name", "")),
        )


class Scheme:
    """Maps object types to the group, version and kind they are served under."""

    def __init__(self) -> None:
        self._kinds: dict[type, list[tuple[GroupVersion, str]]] = {}

    def register(self, group_version: GroupVersion, *args: type) -> None:
        for cls in args:
            entry = (group_version, cls.__name__)
            known = self._kinds.setdefault(cls, [])
            if entry not in known:
                known.append(entry)

    def object_kinds(self, obj: object) -> list[GroupKind]:
        """Return the group kinds an object (or type) is registered under."""
        cls = obj if isinstance(obj, type) else type(obj)
        try:
            entries = self._kinds[cls]
        except KeyError:
            raise LookupError(f"no kind is registered for the type {cls.__name__}") from None
        return [GroupKind(gv.group, kind) for gv, kind in entries]


_SCHEME_BUILDERS: tuple[Callable[[Scheme], None], ...] = (
    lambda scheme: scheme.register(SCHEME_GROUP_VERSION, Tenant, TenantNamespace),
)


def add_to_scheme(scheme: Scheme) -> None:
    """Register every tenancy resource with ``scheme``."""
    for builder in _SCHEME_BUILDERS:
        builder(scheme)


def _kind_of(kind: str | type | object) -> str:
    if isinstance(kind, str):
        return kind
    return kind.KIND  # type: ignore[union-attr]


class ObjectStore:
    """An in-memory API store for tenancy objects and namespaces.

    Callables in ``watchers`` are called with an operation name
    (``"create"``, ``"update"`` or ``"delete"``) and a copy of the object.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str, str], _Object] = {}
        self._versions = itertools.count(1)
        self.watchers: list[Callable[[str, Any], None]] = []

    @staticmethod
    def _key(obj: _Object) -> tuple[str, str, str]:
        namespace = obj.metadata.namespace if obj.NAMESPACED else ""
        return (obj.KIND, namespace, obj.metadata.name)

    def _notify(self, operation: str, obj: _Object) -> None:
        for watcher in list(self.watchers):
            watcher(operation, copy.deepcopy(obj))

    def create(self, obj: _Object) -> None:
        if not obj.metadata.name:
            raise ValueError(f"{obj.KIND}: metadata.name is required")
        key = self._key(obj)
        if key in self._objects:
            raise AlreadyExistsError(f'{obj.KIND} "{obj.metadata.name}" already exists')
        if not obj.metadata.uid:
            obj.metadata.uid = str(uuid.uuid4())
        obj.metadata.resource_version = str(next(self._versions))
        self._objects[key] = copy.deepcopy(obj)
        self._notify("create", obj)

    def get(self, kind: str | type, key: NamespacedName) -> Any:
        cls_kind = _kind_of(kind)
        for stored_key, stored in self._objects.items():
            namespace = key.namespace if stored.NAMESPACED else ""
            if stored_key == (cls_kind, namespace, key.name):
                return copy.deepcopy(stored)
        raise NotFoundError(f'{cls_kind} "{key.name}" not found')

    def update(self, obj: _Object) -> None:
        key = self._key(obj)
        stored = self._objects.get(key)
        if stored is None:
            raise NotFoundError(f'{obj.KIND} "{obj.metadata.name}" not found')
        version = obj.metadata.resource_version
        if version and version != stored.metadata.resource_version:
            raise ConflictError(
                f'{obj.KIND} "{obj.metadata.name}": the object has been modified'
            )
        obj.metadata.uid = stored.metadata.uid
        obj.metadata.resource_version = str(next(self._versions))
        self._objects[key] = copy.deepcopy(obj)
        self._notify("update", obj)

    def delete(self, obj: _Object) -> None:
        key = self._key(obj)
        stored = self._objects.pop(key, None)
        if stored is None:
            raise NotFoundError(f'{obj.KIND} "{obj.metadata.name}" not found')
        self._notify("delete", stored)

    def list(self, kind: str | type) -> list[Any]:
        cls_kind = _kind_of(kind)
        return [copy.deepcopy(obj) for key, obj in sorted(self._objects.items())
                if key[0] == cls_kind]