"""The admission webhook server and the registry of validating webhooks it serves."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping

from . import tenant_webhook, tenantnamespace_webhook
from .admission import AdmissionRequest, Decoder, Response, Webhook, WebhookBuilder
from .api import NamespacedName

log = logging.getLogger(__name__)

SERVER_NAME = "foo-admission-server"
DEFAULT_NAMESPACE = "default"
DEFAULT_SECRET_NAME = "webhook-server-secret"
SERVICE_NAME = "webhook-server-service"
VALIDATING_WEBHOOK_CONFIG_NAME = "tenant-validating-webhook-cfg"
DEFAULT_PORT = 9876
DEFAULT_CERT_DIR = "/tmp/cert"


def _default_selectors() -> dict[str, str]:
    return {"control-plane": "controller-manager"}


@dataclass
class ServerOptions:
    """Where the webhook server listens and how it is bootstrapped in the cluster."""

    namespace: str = DEFAULT_NAMESPACE
    secret_name: str = DEFAULT_SECRET_NAME
    port: int = DEFAULT_PORT
    cert_dir: str = DEFAULT_CERT_DIR
    service_name: str = SERVICE_NAME
    selectors: dict[str, str] = field(default_factory=_default_selectors)
    validating_webhook_config_name: str = VALIDATING_WEBHOOK_CONFIG_NAME

    @property
    def secret(self) -> NamespacedName:
        """The secret holding the serving certificate."""
        return NamespacedName(self.namespace, self.secret_name)

    @property
    def service(self) -> NamespacedName:
        """The service that fronts the webhook server pods."""
        return NamespacedName(self.namespace, self.service_name)


class WebhookServer:
    """Serves admission webhooks, each under its own path."""

    def __init__(self, name: str, manager: Any = None,
                 options: ServerOptions | None = None) -> None:
        if not name:
            raise ValueError("must specify a name for the webhook server")
        self.name = name
        self.manager = manager
        self.options = options if options is not None else ServerOptions()
        self.webhooks: dict[str, Webhook] = {}

    def register(self, *args: Webhook) -> None:
        """Register webhooks; a path may only be registered once."""
        for webhook in args:
            if not webhook.name:
                raise ValueError("webhook name must be set")
            if webhook.path in self.webhooks:
                raise ValueError(f"can't register duplicate path: {webhook.path}")
            self.webhooks[webhook.path] = webhook

    def handle(self, path: str, request: AdmissionRequest) -> Response:
        """Answer an admission request sent to ``path``."""
        try:
            webhook = self.webhooks[path]
        except KeyError:
            raise LookupError(f"no webhook is registered for path {path}") from None
        return webhook.handle(request)


def merge_validating(builders: Mapping[str, WebhookBuilder],
                     handlers: Mapping[str, list[Any]],
                     builder_map: MutableMapping[str, WebhookBuilder],
                     handler_map: MutableMapping[str, list[Any]]) -> None:
    """Merge one resource's builders and handlers into the server-wide maps.

    Later entries replace earlier ones of the same name; handlers whose name
    has no builder are dropped.
    """
    for name, builder in builders.items():
        if name in builder_map:
            log.debug("conflicting webhook builder names in builder map: %s", name)
        builder_map[name] = builder
    for name, handler_list in handlers.items():
        if name in handler_map:
            log.debug("conflicting webhook builder names in handler map: %s", name)
        if name not in builder_map:
            log.debug("can't find webhook builder name %r in builder map", name)
            continue
        handler_map[name] = handler_list


def default_registry() -> tuple[dict[str, WebhookBuilder], dict[str, list[Any]]]:
    """Return the builder map and handler map for every tenancy webhook."""
    builder_map: dict[str, WebhookBuilder] = {}
    handler_map: dict[str, list[Any]] = {}
    merge_validating(tenant_webhook.builders(), tenant_webhook.handler_map(),
                     builder_map, handler_map)
    merge_validating(tenantnamespace_webhook.builders(), tenantnamespace_webhook.handler_map(),
                     builder_map, handler_map)
    return builder_map, handler_map


def server_options(environ: Mapping[str, str] | None = None) -> ServerOptions:
    """Build server options from ``POD_NAMESPACE`` and ``SECRET_NAME``."""
    env = os.environ if environ is None else environ
    return ServerOptions(
        namespace=env.get("POD_NAMESPACE") or DEFAULT_NAMESPACE,
        secret_name=env.get("SECRET_NAME") or DEFAULT_SECRET_NAME,
    )


def _inject(handler: Any, mgr: Any) -> None:
    inject_client = getattr(handler, "inject_client", None)
    if inject_client is not None:
        inject_client(mgr.client)
    inject_decoder = getattr(handler, "inject_decoder", None)
    if inject_decoder is not None:
        inject_decoder(Decoder())


def add(mgr: Any, environ: Mapping[str, str] | None = None) -> WebhookServer:
    """Build the webhook server for ``mgr`` with every registered webhook."""
    server = WebhookServer(SERVER_NAME, mgr, server_options(environ))
    builder_map, handler_map = default_registry()
    webhooks = []
    for name in sorted(builder_map):
        handlers = handler_map.get(name)
        if handlers is None:
            log.debug("can't find handlers for builder: %s", name)
            handlers = []
        for handler in handlers:
            _inject(handler, mgr)
        webhooks.append(builder_map[name].handlers(*handlers).build())
    server.register(*webhooks)
    return server