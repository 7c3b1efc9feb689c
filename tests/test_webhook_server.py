import pytest

from tenantctl.admission import AdmissionRequest, Operation, WebhookBuilder
from tenantctl.api import NamespacedName, ObjectMeta, Tenant, TenantNamespace, TenantNamespaceSpec, TenantSpec
from tenantctl.runtime import Manager
from tenantctl.tenant_webhook import WEBHOOK_NAME as TENANT_HOOK
from tenantctl.tenantnamespace_webhook import WEBHOOK_NAME as TNS_HOOK
from tenantctl.webhook_server import (
    ServerOptions,
    WebhookServer,
    add,
    default_registry,
    merge_validating,
    server_options,
)


def test_server_options_defaults():
    options = server_options({})
    assert options.secret == NamespacedName("default", "webhook-server-secret")
    assert options.service == NamespacedName("default", "webhook-server-service")
    assert options.selectors == {"control-plane": "controller-manager"}
    assert options.validating_webhook_config_name == "tenant-validating-webhook-cfg"


def test_server_options_from_environment():
    options = server_options({"POD_NAMESPACE": "system", "SECRET_NAME": "certs"})
    assert options.secret == NamespacedName("system", "certs")
    assert options.service.namespace == "system"


def test_empty_environment_values_use_defaults():
    options = server_options({"POD_NAMESPACE": "", "SECRET_NAME": ""})
    assert options.namespace == ServerOptions().namespace
    assert options.secret_name == ServerOptions().secret_name


def test_merge_validating_replaces_and_drops_orphans():
    first, second = WebhookBuilder("a"), WebhookBuilder("a2")
    builder_map = {"a": first}
    handler_map = {}
    merge_validating({"a": second}, {"a": ["h1"], "missing": ["h2"]}, builder_map, handler_map)
    assert builder_map == {"a": second}
    assert handler_map == {"a": ["h1"]}


def test_default_registry_covers_both_resources():
    builder_map, handler_map = default_registry()
    assert set(builder_map) == {TENANT_HOOK, TNS_HOOK}
    assert set(handler_map) == set(builder_map)


def test_register_rejects_duplicate_path():
    server = WebhookServer("srv")
    hook = WebhookBuilder("x.example", "/x").build()
    server.register(hook)
    with pytest.raises(ValueError):
        server.register(WebhookBuilder("y.example", "/x").build())
    assert list(server.webhooks) == ["/x"]


def test_server_requires_name():
    with pytest.raises(ValueError):
        WebhookServer("")


def test_handle_unknown_path():
    server = WebhookServer("srv")
    with pytest.raises(LookupError):
        server.handle("/nowhere", AdmissionRequest(Operation.CREATE))


@pytest.fixture
def server_and_manager():
    mgr = Manager()
    return add(mgr, {}), mgr


def test_add_registers_paths(server_and_manager):
    server, _ = server_and_manager
    assert set(server.webhooks) == {"/" + TENANT_HOOK, "/" + TNS_HOOK}
    assert server.options.port == 9876


def test_tenant_webhook_rejects_bad_admin_name(server_and_manager):
    server, _ = server_and_manager
    bad = Tenant(metadata=ObjectMeta(name="foo"), spec=TenantSpec("Bad_Name"))
    response = server.handle("/" + TENANT_HOOK, AdmissionRequest(Operation.CREATE, bad.to_dict()))
    assert response.allowed is False
    assert response.code == 422


def test_tenant_webhook_allows_valid(server_and_manager):
    server, _ = server_and_manager
    good = Tenant(metadata=ObjectMeta(name="foo"), spec=TenantSpec("t1admin"))
    response = server.handle("/" + TENANT_HOOK, AdmissionRequest(Operation.CREATE, good.to_dict()))
    assert response.allowed is True


def test_tenantnamespace_webhook_uses_manager_client(server_and_manager):
    server, mgr = server_and_manager
    obj = TenantNamespace(metadata=ObjectMeta(name="foo", namespace="ta-admin"),
                          spec=TenantNamespaceSpec("t1"))
    request = AdmissionRequest(Operation.CREATE, obj.to_dict())
    assert server.handle("/" + TNS_HOOK, request).allowed is False

    mgr.client.create(Tenant(metadata=ObjectMeta(name="tenant-a"), spec=TenantSpec("ta-admin")))
    assert server.handle("/" + TNS_HOOK, request).allowed is True