"""Admission requests and responses, field errors, decoding and webhook builders."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol


class Operation(enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


@dataclass(frozen=True)
class AdmissionRequest:
    """An admission review request; objects are raw JSON text, bytes or dicts."""

    operation: Operation
    object: Any = None
    old_object: Any = None
    uid: str = ""
    name: str = ""
    namespace: str = ""


@dataclass(frozen=True)
class Response:
    allowed: bool
    code: int | None = None
    message: str = ""
    reason: str = ""


class Handler(Protocol):
    def handle(self, request: AdmissionRequest) -> Response: ...


def error_response(code: int, error: BaseException | str) -> Response:
    """Deny a request with an HTTP-style status code and the error's message."""
    return Response(allowed=False, code=code, message=str(error))


def validation_response(allowed: bool, reason: str) -> Response:
    return Response(allowed=allowed, reason=reason)


_FORBIDDEN = "Forbidden"
_INVALID = "Invalid value"


@dataclass(frozen=True)
class FieldError:
    """A validation error attached to a field path such as ``spec.name``."""

    type: str
    field: str
    detail: str = ""
    bad_value: Any = None

    @classmethod
    def forbidden(cls, path: str, detail: str) -> FieldError:
        return cls(_FORBIDDEN, path, detail)

    @classmethod
    def invalid(cls, path: str, value: Any, detail: str) -> FieldError:
        return cls(_INVALID, path, detail, value)

    def body(self) -> str:
        if self.type == _FORBIDDEN:
            text = self.type
        else:
            value = self.bad_value
            if isinstance(value, bool):
                shown = "true" if value else "false"
            elif isinstance(value, str):
                shown = json.dumps(value)
            else:
                shown = str(value)
            text = f"{self.type}: {shown}"
        if self.detail:
            text += f": {self.detail}"
        return text

    def __str__(self) -> str:
        return f"{self.field}: {self.body()}"


class AggregateError(ValueError):
    """Several field errors reported together."""

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors = list(errors)
        messages = list(dict.fromkeys(str(e) for e in self.errors))
        text = messages[0] if len(messages) == 1 else "[" + ", ".join(messages) + "]"
        super().__init__(text)


def aggregate(errors: Iterable[FieldError]) -> AggregateError | None:
    """Combine field errors into one exception, or return None when there are none."""
    errors = list(errors)
    return AggregateError(errors) if errors else None


_DNS1123_LABEL = "[a-z0-9]([-a-z0-9]*[a-z0-9])?"
_DNS1123_LABEL_RE = re.compile(_DNS1123_LABEL)
_DNS1123_LABEL_MAX = 63
_DNS1123_LABEL_MSG = (
    "a DNS-1123 label must consist of lower case alphanumeric characters or '-', "
    "and must start and end with an alphanumeric character"
)


def validate_namespace_name(name: str) -> list[str]:
    """Return the reasons ``name`` is not a valid namespace name (a DNS-1123 label)."""
    problems = []
    if len(name) > _DNS1123_LABEL_MAX:
        problems.append(f"must be no more than {_DNS1123_LABEL_MAX} characters")
    if not _DNS1123_LABEL_RE.fullmatch(name):
        problems.append(
            f"{_DNS1123_LABEL_MSG} (e.g. 'my-name', or '123-abc', "
            f"regex used for validation is '{_DNS1123_LABEL}')"
        )
    return problems


class Decoder:
    """Decodes a raw admission object into an API type."""

    def decode(self, raw: Any, cls: type) -> Any:
        if raw is None or (isinstance(raw, (str, bytes, bytearray)) and not raw):
            raise ValueError("there is no content to decode")
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                data = json.loads(raw)
            except ValueError as exc:
                raise ValueError(f"cannot decode object: {exc}") from exc
        else:
            data = raw
        if not isinstance(data, dict):
            raise ValueError("cannot decode object: expected a JSON object")
        return cls.from_dict(data)


@dataclass(frozen=True)
class Webhook:
    name: str
    path: str
    validating: bool
    operations: tuple[Operation, ...]
    failure_policy: str
    for_type: type | None
    handlers: tuple[Any, ...] = field(default_factory=tuple)

    def handle(self, request: AdmissionRequest) -> Response:
        """Run the handlers in turn; the first denial is the answer."""
        for handler in self.handlers:
            response = handler.handle(request)
            if not response.allowed:
                return response
        return validation_response(True, "")


class WebhookBuilder:
    """Collects the settings of an admission webhook and builds it."""

    def __init__(self, name: str = "", path: str = "", *, validating: bool = True,
                 operations: Iterable[Operation] = (), failure_policy: str = "Fail",
                 for_type: type | None = None) -> None:
        self.name = name
        self.path = path
        self.validating = validating
        self.operations = tuple(operations)
        self.failure_policy = failure_policy
        self.for_type = for_type
        self._handlers: list[Any] = []

    def handlers(self, *args: Any) -> WebhookBuilder:
        self._handlers = list(args)
        return self

    def build(self) -> Webhook:
        if not self.name:
            raise ValueError("webhook name must be set")
        path = self.path or "/" + self.name
        return Webhook(self.name, path, self.validating, self.operations,
                       self.failure_policy, self.for_type, tuple(self._handlers))