from tenantctl.api import ObjectMeta, TenantNamespace, TenantNamespaceSpec
from tenantctl.util import get_tenant_namespace_name


def _tn(name, namespace, spec_name=""):
    return TenantNamespace(
        metadata=ObjectMeta(name=name, namespace=namespace),
        spec=TenantNamespaceSpec(name=spec_name),
    )


def test_spec_name_without_prefix():
    assert get_tenant_namespace_name(False, _tn("foo", "ta-admin", "t1")) == "t1"


def test_spec_name_with_prefix():
    assert get_tenant_namespace_name(True, _tn("foo-1", "ta-admin", "t1")) == "ta-admin-t1"


def test_object_name_with_prefix_when_spec_empty():
    assert get_tenant_namespace_name(True, _tn("foo-2", "ta-admin")) == "ta-admin-foo-2"


def test_object_name_without_prefix_when_spec_empty():
    instance = _tn("foo-2", "ta-admin")
    assert get_tenant_namespace_name(False, instance) == instance.metadata.name


def test_prefix_is_namespace_plus_unprefixed_name():
    instance = _tn("bar", "admin-ns", "spec-name")
    plain = get_tenant_namespace_name(False, instance)
    assert get_tenant_namespace_name(True, instance) == instance.metadata.namespace + "-" + plain