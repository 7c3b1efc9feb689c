# tenantctl

`tenantctl` models the tenancy API group `tenancy.x-k8s.io/v1alpha1`, along with the controllers and admission checks built on it. The group has two resource kinds:

- **Tenant**: a cluster-scoped object. Its spec has two fields:
  - `tenant_admin_namespace_name`: the name of the tenant's admin namespace.
  - `require_namespace_prefix`: whether every namespace of the tenant must start with that admin namespace's name.
- **TenantNamespace**: an object that lives inside a tenant admin namespace. It asks for a namespace to be created for the tenant.

Everything runs in memory against an `ObjectStore` (`tenantctl.api`), so no cluster is needed. The store behaves as follows:

- `get` of a missing object raises `NotFoundError`.
- `create` with a name that is already taken raises `AlreadyExistsError`.
- `update` with a stale `resource_version` raises `ConflictError`.

## Modules

**`tenantctl.api`**
- Defines the `Tenant`, `TenantNamespace` and `Namespace` types and their metadata.
- `to_dict`/`from_dict` convert to and from the JSON shape.
- `Scheme` and `add_to_scheme` map types to their group and kind.
- Provides the `ObjectStore`.

**`tenantctl.util`**
- `get_tenant_namespace_name(prefix, instance)` returns the namespace name a TenantNamespace asks for.
- That name is the spec name, or the object's own name when the spec name is empty.
- With `prefix`, the result is `<admin-namespace>-<name>`.

**`tenantctl.runtime`**
- `Manager` holds the store and the scheme. It subscribes to store changes and passes them to its controllers as `Event`s.
- A `Controller` turns watched events into queued `Request`s.
- `Controller.run_pending()` reconciles the queued requests. Failed requests are queued again.

**`tenantctl.tenant_controller`**
- `add(mgr)` registers a controller that creates a Tenant's admin namespace and owns it.
- A reconcile raises if a namespace with that name exists without the Tenant as its owner.

**`tenantctl.tenantnamespace_controller`**
- `add(mgr)` registers a controller that works on each TenantNamespace.
- It creates the requested namespace with an owner reference and the `x-k8s.io/tenantAdminNamespace` annotation.
- It adopts an existing namespace that has no TenantNamespace owner, retrying on update conflicts.
- It raises if another TenantNamespace already owns the namespace, or if the object does not belong to any tenant.

**`tenantctl.tenantnamespace_events`**
- When a namespace owned by a TenantNamespace is deleted, that TenantNamespace is queued again.

**`tenantctl.admission`**
- Provides admission requests and responses, `FieldError`, `Decoder` and `WebhookBuilder`.
- `validate_namespace_name` checks that a name is a DNS-1123 label.

**`tenantctl.tenant_webhook`**
- On create, checks that the admin namespace name is valid.
- On update, forbids changing either spec field.

**`tenantctl.tenantnamespace_webhook`**
- On create, checks the metadata, that the object lives in a tenant admin namespace, and that the resulting namespace name is valid.
- On update, forbids changing `spec.name`.

**`tenantctl.webhook_server`**
- `add(mgr, environ)` builds a `WebhookServer` with both validating webhooks registered under their paths.
- Its options read `POD_NAMESPACE` and `SECRET_NAME`.

## Example

```python
from tenantctl import tenant_controller, tenantnamespace_controller, webhook_server
from tenantctl.admission import AdmissionRequest, Operation
from tenantctl.api import Namespace, NamespacedName, ObjectMeta, Tenant, TenantSpec
from tenantctl.runtime import Manager

mgr = Manager()
tenants = tenant_controller.add(mgr)
tenantnamespace_controller.add(mgr)

mgr.client.create(Tenant(
    metadata=ObjectMeta(name="tenant-a"),
    spec=TenantSpec(tenant_admin_namespace_name="ta-admin"),
))
tenants.run_pending()
mgr.client.get(Namespace, NamespacedName(name="ta-admin"))  # the admin namespace

server = webhook_server.add(mgr, environ={})
response = server.handle(
    "/validating-create-update-tenant",
    AdmissionRequest(Operation.CREATE, object={"metadata": {"name": "t"},
                                              "spec": {"tenantAdminNamespaceName": "Bad_Name"}}),
)
response.allowed  # False, code 422
```

## What it does not do

- It does not connect to a real cluster. All objects live in the in-process `ObjectStore`.
- It has no command-line program.
- The webhook server does not listen on a network port. `WebhookServer.handle` answers admission requests within the process.
- Nothing runs controllers in the background. You call `run_pending` on each controller yourself.

## Testing

The test suite uses pytest, which is available through the `test` extra.