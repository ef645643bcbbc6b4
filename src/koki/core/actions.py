"""Container actions — exec commands and net URLs for hooks and health checks.

An action is ``{command: [...]}`` or ``{net: URL, headers: ["Name:Value"]}``.
The URL scheme picks the kube handler: ``http`` and ``https`` become
httpGet, ``tcp`` becomes tcpSocket. The host ``localhost`` stands for an
unset kube host, i.e. the pod's own address.
"""

from dataclasses import dataclass, field
from urllib.parse import urlsplit

from koki.pacts.errors import InvalidValueError
from koki.pacts.helpers import (
    expect_dict, expect_list, expect_str, int_or_string, parse_int, warn_dropped_keys,
)
from koki.core.constants import (
    DEFAULT_HTTP_PORTS, DEFAULT_NET_HOST, HTTP_SCHEMES, TCP_SCHEME,
)

_ACTION_KEYS = ("command", "net", "headers")
_HANDLERS = ("exec", "httpGet", "tcpSocket")

# (koki key, kube key) timing fields of a health check
_CHECK_FIELDS = (
    ("delay", "initialDelaySeconds"),
    ("interval", "periodSeconds"),
    ("min_count_success", "successThreshold"),
    ("min_count_fail", "failureThreshold"),
    ("timeout", "timeoutSeconds"),
)


def _split_host_port(netloc: str) -> tuple[str, str]:
    if netloc.endswith("]") or ":" not in netloc:
        host, port = netloc, ""
    else:
        host, _, port = netloc.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def _join_host_port(host: str, port) -> str:
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}"


def _kube_host(host: str, url: str) -> str:
    if not host:
        raise InvalidValueError(url, "missing host in net URL")
    return "" if host == DEFAULT_NET_HOST else host


def _koki_host(handler: dict) -> str:
    host = handler.get("host") or ""
    if host == DEFAULT_NET_HOST:
        raise InvalidValueError(host, f"an explicit '{DEFAULT_NET_HOST}' host has no shorthand")
    return host or DEFAULT_NET_HOST


def _revert_header(header: str) -> dict:
    name, sep, value = header.partition(":")
    if not sep or not name:
        raise InvalidValueError(header, "expected a Name:Value header")
    return {"name": name, "value": value}


def _convert_header(header: dict) -> str:
    name = header.get("name") or ""
    if not name or ":" in name:
        raise InvalidValueError(header, "header name must be non-empty and free of ':'")
    return f"{name}:{header.get('value', '')}"


@dataclass
class Action:
    """A lifecycle hook or health check handler."""
    command: list[str] = field(default_factory=list)
    net: str = ""
    headers: list[str] = field(default_factory=list)

    @classmethod
    def from_wire(cls, data) -> "Action":
        data = expect_dict(data, "action")
        unknown = sorted(set(data) - set(_ACTION_KEYS))
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown action fields")
        return cls.from_fields(data)

    @classmethod
    def from_fields(cls, data: dict) -> "Action":
        """Read the action keys of *data*, ignoring any others."""
        action = cls(
            command=[str(arg) for arg in expect_list(data.get("command") or [], "command")],
            net=expect_str(data.get("net") or "", "net"),
            headers=[expect_str(h, "header") for h in expect_list(data.get("headers") or [], "headers")],
        )
        if bool(action.command) == bool(action.net):
            raise InvalidValueError(sorted(data), "expected exactly one of command or net")
        if action.headers and not action.net:
            raise InvalidValueError(action.headers, "headers need a net action")
        return action

    def to_wire(self) -> dict:
        if self.command:
            return {"command": list(self.command)}
        out: dict = {"net": self.net}
        if self.headers:
            out["headers"] = list(self.headers)
        return out

    def to_kube(self) -> dict:
        """Render as a kube handler: ``{exec: ...}``, ``{httpGet: ...}`` or ``{tcpSocket: ...}``."""
        if self.command:
            return {"exec": {"command": list(self.command)}}
        parts = urlsplit(self.net)
        scheme = parts.scheme.lower()
        if parts.fragment:
            raise InvalidValueError(self.net, "net URL fragments have no kube counterpart")
        host, port = _split_host_port(parts.netloc)
        host = _kube_host(host, self.net)

        if scheme == TCP_SCHEME:
            if parts.path or parts.query or self.headers:
                raise InvalidValueError(self.net, "tcp actions take no path, query or headers")
            if not port:
                raise InvalidValueError(self.net, "tcp actions need a port")
            out: dict = {"port": int_or_string(port)}
            if host:
                out["host"] = host
            return {"tcpSocket": out}

        if scheme not in HTTP_SCHEMES:
            raise InvalidValueError(self.net, f"expected a {', '.join(HTTP_SCHEMES)} or {TCP_SCHEME} URL")
        out = {}
        path = parts.path
        if parts.query:
            path = f"{path}?{parts.query}"
        if path:
            out["path"] = path
        out["port"] = int_or_string(port) if port else DEFAULT_HTTP_PORTS[scheme]
        if host:
            out["host"] = host
        # HTTP is the kube default
        if scheme != "http":
            out["scheme"] = HTTP_SCHEMES[scheme]
        if self.headers:
            out["httpHeaders"] = [_revert_header(h) for h in self.headers]
        return {"httpGet": out}

    @classmethod
    def from_kube(cls, handler: dict) -> "Action":
        present = [key for key in _HANDLERS if handler.get(key)]
        if len(present) != 1:
            raise InvalidValueError(sorted(handler), f"expected exactly one handler of {', '.join(_HANDLERS)}")
        key = present[0]
        body = handler[key]
        if key == "exec":
            command = body.get("command") or []
            if not command:
                raise InvalidValueError(body, "exec handler without a command")
            return cls(command=list(command))

        port = body.get("port")
        if port is None or port == "":
            raise InvalidValueError(body, f"{key} port is missing")
        host = _koki_host(body)
        if key == "tcpSocket":
            return cls(net=f"{TCP_SCHEME}://{_join_host_port(host, port)}")

        scheme = (body.get("scheme") or HTTP_SCHEMES["http"]).lower()
        if scheme not in HTTP_SCHEMES:
            raise InvalidValueError(body["scheme"], "unsupported httpGet scheme")
        path = body.get("path") or ""
        if path and not path.startswith("/"):
            raise InvalidValueError(path, "httpGet path must start with '/'")
        if "#" in path:
            raise InvalidValueError(path, "httpGet path containing '#' has no shorthand")
        return cls(net=f"{scheme}://{_join_host_port(host, port)}{path}",
                   headers=[_convert_header(h) for h in body.get("httpHeaders") or []])


@dataclass
class HealthCheck:
    """A liveness or readiness check: an action plus its timing, in seconds and counts."""
    action: Action
    delay: int | None = None
    interval: int | None = None
    min_count_success: int | None = None
    min_count_fail: int | None = None
    timeout: int | None = None

    @classmethod
    def from_wire(cls, data) -> "HealthCheck":
        data = expect_dict(data, "health check")
        known = _ACTION_KEYS + tuple(koki for koki, _ in _CHECK_FIELDS)
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown health check fields")
        check = cls(action=Action.from_fields(data))
        for koki_key, _ in _CHECK_FIELDS:
            if data.get(koki_key) is not None:
                setattr(check, koki_key, parse_int(data[koki_key], f"expected an integer {koki_key}", bits=32))
        return check

    def to_wire(self) -> dict:
        out = self.action.to_wire()
        for koki_key, _ in _CHECK_FIELDS:
            if getattr(self, koki_key) is not None:
                out[koki_key] = getattr(self, koki_key)
        return out

    def to_kube(self) -> dict:
        out = self.action.to_kube()
        for koki_key, kube_key in _CHECK_FIELDS:
            if getattr(self, koki_key) is not None:
                out[kube_key] = getattr(self, koki_key)
        return out

    @classmethod
    def from_kube(cls, check: dict, what: str, ctx) -> "HealthCheck":
        warn_dropped_keys(check, _HANDLERS + tuple(kube for _, kube in _CHECK_FIELDS), what, ctx)
        out = cls(action=Action.from_kube(check))
        for koki_key, kube_key in _CHECK_FIELDS:
            if check.get(kube_key) is not None:
                setattr(out, koki_key, check[kube_key])
        return out
