"""Tenant and tenant-namespace controllers with admission validation, run against an in-memory object store."""

__version__ = "0.1.0"

__all__ = [
    "admission",
    "api",
    "runtime",
    "tenant_controller",
    "tenant_webhook",
    "tenantnamespace_controller",
    "tenantnamespace_events",
    "tenantnamespace_webhook",
    "util",
    "webhook_server",
]