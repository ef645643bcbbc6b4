"""Port shorthand — Service ports and container ports."""

import ipaddress
from dataclasses import dataclass

from koki.pacts.errors import InvalidValueError, TypeMismatchError
from koki.pacts.helpers import int_or_string, parse_int
from koki.core.constants import _PROTOCOL_PORT_RE, DEFAULT_PROTOCOL


def _split_protocol(s: str) -> tuple[str, str]:
    """Strip an optional ``tcp://`` / ``udp://`` prefix (case-insensitive)."""
    m = _PROTOCOL_PORT_RE.match(s)
    if m:
        return m.group(1).upper(), m.group(2)
    return DEFAULT_PROTOCOL, s


def _with_protocol(s: str, protocol: str) -> str:
    """Prefix a port string with its protocol unless it is the TCP default."""
    if not protocol or protocol == DEFAULT_PROTOCOL:
        return s
    return f"{protocol}://{s}"


@dataclass
class ServicePort:
    """A Service port: ``[proto://]expose[:podPort[:nodePort]]``.

    ``pod_port`` is a container port number or the name of a container port.
    """
    expose: int
    pod_port: int | str | None = None
    node_port: int | None = None
    protocol: str = DEFAULT_PROTOCOL

    @classmethod
    def from_string(cls, s: str) -> "ServicePort":
        protocol, rest = _split_protocol(s)
        segments = rest.split(":")
        if len(segments) > 3:
            raise InvalidValueError(s, "expected [proto://]expose[:podPort[:nodePort]]")
        port = cls(expose=parse_int(segments[0], f"expected an integer expose port in '{s}'", bits=32),
                   protocol=protocol)
        if len(segments) > 1:
            if not segments[1]:
                raise InvalidValueError(s, "empty pod port")
            port.pod_port = int_or_string(segments[1])
        if len(segments) > 2:
            port.node_port = parse_int(segments[2], f"expected an integer node port in '{s}'", bits=32)
        return port

    @classmethod
    def from_wire(cls, data) -> "ServicePort":
        if isinstance(data, bool):
            raise TypeMismatchError(data, "expected a port string or number")
        if isinstance(data, int):
            return cls(expose=parse_int(data, "expected an integer expose port", bits=32))
        if isinstance(data, str):
            return cls.from_string(data)
        raise TypeMismatchError(data, "expected a port string or number")

    def to_string(self) -> str:
        s = str(self.expose)
        if self.pod_port is not None:
            s = f"{s}:{self.pod_port}"
        if self.node_port:
            if self.pod_port is None:
                # nodePort is positional, so the pod port must be spelled out
                s = f"{s}:{self.expose}"
            s = f"{s}:{self.node_port}"
        return _with_protocol(s, self.protocol)

    def to_wire(self) -> int | str:
        if self.pod_port is None and not self.node_port and self.protocol == DEFAULT_PROTOCOL:
            return self.expose
        return self.to_string()

    @classmethod
    def from_kube(cls, port: dict) -> "ServicePort":
        target = port.get("targetPort")
        if isinstance(target, str):
            target = int_or_string(target)
        return cls(
            expose=port.get("port", 0),
            pod_port=target,
            node_port=port.get("nodePort") or None,
            protocol=port.get("protocol") or DEFAULT_PROTOCOL,
        )

    def to_kube(self, name: str = "") -> dict:
        out: dict = {}
        if name:
            out["name"] = name
        out["port"] = self.expose
        if self.pod_port is not None:
            out["targetPort"] = self.pod_port
        if self.node_port:
            out["nodePort"] = self.node_port
        out["protocol"] = self.protocol
        return out


def _is_ip(s: str) -> bool:
    try:
        ipaddress.ip_address(s)
    except ValueError:
        return False
    return True


@dataclass
class Port:
    """A container port: ``[proto://][ip:][hostPort:]containerPort``, optionally named."""
    container_port: str
    host_port: str = ""
    ip: str = ""
    name: str = ""
    protocol: str = DEFAULT_PROTOCOL

    @classmethod
    def from_string(cls, s: str, name: str = "") -> "Port":
        protocol, rest = _split_protocol(s)
        segments = rest.split(":")
        ip = ""
        if _is_ip(segments[0]):
            ip = segments.pop(0)
        if len(segments) == 1 and segments[0]:
            return cls(container_port=segments[0], ip=ip, name=name, protocol=protocol)
        if len(segments) == 2 and all(segments):
            return cls(container_port=segments[1], host_port=segments[0], ip=ip,
                       name=name, protocol=protocol)
        raise InvalidValueError(s, "expected [proto://][ip:][hostPort:]containerPort")

    @classmethod
    def from_wire(cls, data) -> "Port":
        if isinstance(data, bool):
            raise TypeMismatchError(data, "expected a port string, number or {name: port}")
        if isinstance(data, int):
            return cls(container_port=str(data))
        if isinstance(data, str):
            return cls.from_string(data)
        if isinstance(data, dict):
            if len(data) != 1:
                raise InvalidValueError(data, "expected only one entry for a named port")
            (name, value), = data.items()
            if isinstance(value, bool) or not isinstance(value, (int, str)):
                raise TypeMismatchError(value, "expected a port string or number")
            return cls.from_string(str(value), name=name)
        raise TypeMismatchError(data, "expected a port string, number or {name: port}")

    def to_string(self) -> str:
        segments = [s for s in (self.ip, self.host_port, self.container_port) if s]
        return _with_protocol(":".join(segments), self.protocol)

    def to_wire(self):
        s = self.to_string()
        value = int(s) if s.isdigit() else s
        if self.name:
            return {self.name: value}
        return value

    @classmethod
    def from_kube(cls, port: dict) -> "Port":
        host_port = port.get("hostPort")
        return cls(
            container_port=str(port.get("containerPort", "")),
            host_port=str(host_port) if host_port else "",
            ip=port.get("hostIP") or "",
            name=port.get("name") or "",
            protocol=port.get("protocol") or DEFAULT_PROTOCOL,
        )

    def to_kube(self) -> dict:
        out: dict = {}
        if self.name:
            out["name"] = self.name
        if self.host_port:
            out["hostPort"] = parse_int(self.host_port, "expected an integer host port", bits=32)
        out["containerPort"] = parse_int(self.container_port, "expected an integer container port", bits=32)
        if self.ip:
            out["hostIP"] = self.ip
        out["protocol"] = self.protocol
        return out


def convert_service_ports(ports: list[dict]) -> dict:
    """koki ``port`` / ``ports`` fields from kube Service ports."""
    if len(ports) == 1 and not ports[0].get("name"):
        return {"port": ServicePort.from_kube(ports[0]).to_wire()}
    result = {}
    for i, port in enumerate(ports):
        name = port.get("name") or f"port-{i}"
        result[name] = ServicePort.from_kube(port).to_wire()
    return {"ports": result} if result else {}


def revert_service_ports(port, ports: dict | None) -> list[dict]:
    """kube Service ports from the koki ``port`` and ``ports`` fields."""
    result = []
    if port is not None:
        result.append(ServicePort.from_wire(port).to_kube())
    for name in sorted(ports or {}):
        result.append(ServicePort.from_wire(ports[name]).to_kube(name))
    return result
