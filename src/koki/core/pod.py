"""Pod conversion — containers, host aliases, tolerations, scheduling fields."""

from dataclasses import dataclass

from koki.pacts.errors import InvalidValueError, KokiError, TypeMismatchError
from koki.pacts.helpers import (
    expect_dict, expect_list, expect_str, parse_int,
    warn_dropped_keys, warn_unknown_keys,
)
from koki.pacts.types import Converter, ConvertContext
from koki.core.actions import Action, HealthCheck
from koki.core.affinity import Affinity, convert_affinity, revert_affinity
from koki.core.constants import (
    _QUANTITY_RE, DNS_POLICIES, HOST_MODES, PULL_POLICIES, RESTART_POLICIES,
    TERMINATION_MSG_POLICIES, TOLERATION_EFFECTS, TOLERATION_WILDCARD,
)
from koki.core.env import convert_env, revert_env
from koki.core.metadata import METADATA_KEYS, convert_metadata, revert_metadata
from koki.core.ports import Port
from koki.core.volumes import VolumeMount, convert_volumes, revert_volumes


def _check_choice(value, choices, what: str):
    if value not in choices:
        raise InvalidValueError(value, f"expected {what} from {', '.join(choices)}")
    return value


# -- host aliases --

@dataclass
class HostAlias:
    """An /etc/hosts entry, written ``"ip host1 host2"``."""
    ip: str
    hostnames: list[str]

    @classmethod
    def from_string(cls, s) -> "HostAlias":
        tokens = expect_str(s, "host alias").split()
        if len(tokens) < 2:
            raise InvalidValueError(s, "expected 'ip hostname [hostname...]'")
        return cls(ip=tokens[0], hostnames=tokens[1:])

    def to_string(self) -> str:
        return " ".join([self.ip, *self.hostnames])

    def to_kube(self) -> dict:
        return {"ip": self.ip, "hostnames": list(self.hostnames)}


def revert_host_aliases(aliases: list) -> list[dict]:
    """koki ``host_alias`` strings → kube hostAliases."""
    return [HostAlias.from_string(alias).to_kube() for alias in aliases]


def convert_host_aliases(aliases: list[dict], ctx: ConvertContext) -> list[str]:
    """kube hostAliases → koki strings. Entries without an ip or hostnames are dropped."""
    result = []
    for alias in aliases:
        ip = alias.get("ip") or ""
        hostnames = alias.get("hostnames") or []
        if not ip or not hostnames:
            ctx.warnings.append(f"host alias {alias!r} has no ip or no hostnames, dropped")
            continue
        result.append(HostAlias(ip=ip, hostnames=list(hostnames)).to_string())
    return result


# -- tolerations --

@dataclass
class Toleration:
    """A taint toleration, written ``key[=value][:effect]``.

    ``=`` means the Equal operator, a bare key means Exists, and ``*``
    tolerates every taint. The map form ``{selector, expiry_after}`` adds
    tolerationSeconds.
    """
    key: str = ""
    operator: str = "Exists"
    value: str = ""
    effect: str = ""
    expiry_after: int | None = None

    @classmethod
    def from_string(cls, s: str, expiry_after: int | None = None) -> "Toleration":
        expr, sep, effect = s.partition(":")
        if sep:
            _check_choice(effect, TOLERATION_EFFECTS, "toleration effect")
        if expr == TOLERATION_WILDCARD:
            return cls(effect=effect, expiry_after=expiry_after)
        key, eq, value = expr.partition("=")
        if not key:
            raise InvalidValueError(s, "toleration key can only be empty for '*'")
        return cls(key=key, operator="Equal" if eq else "Exists", value=value,
                   effect=effect, expiry_after=expiry_after)

    @classmethod
    def from_wire(cls, data) -> "Toleration":
        if isinstance(data, str):
            return cls.from_string(data)
        if isinstance(data, dict):
            unknown = sorted(set(data) - {"selector", "expiry_after"})
            if unknown:
                raise InvalidValueError(", ".join(unknown), "unknown toleration fields")
            expiry = data.get("expiry_after")
            if expiry is not None:
                expiry = parse_int(expiry, "expected an integer expiry_after")
            return cls.from_string(expect_str(data.get("selector"), "toleration selector"), expiry)
        raise TypeMismatchError(data)

    def to_string(self) -> str:
        if not self.key:
            expr = TOLERATION_WILDCARD
        elif self.operator == "Equal":
            expr = f"{self.key}={self.value}"
        else:
            expr = self.key
        if self.effect:
            return f"{expr}:{self.effect}"
        return expr

    def to_wire(self):
        if self.expiry_after is None:
            return self.to_string()
        return {"selector": self.to_string(), "expiry_after": self.expiry_after}

    @classmethod
    def from_kube(cls, tol: dict) -> "Toleration":
        # kube defaults an empty operator to Equal
        operator = tol.get("operator") or "Equal"
        key = tol.get("key") or ""
        if operator == "Equal":
            if not key:
                raise InvalidValueError(tol, "toleration key can only be empty for the Exists operator")
        elif operator != "Exists":
            raise InvalidValueError(operator, "unsupported toleration operator")
        effect = tol.get("effect") or ""
        if effect:
            _check_choice(effect, TOLERATION_EFFECTS, "toleration effect")
        return cls(key=key, operator=operator,
                   value=(tol.get("value") or "") if operator == "Equal" else "",
                   effect=effect, expiry_after=tol.get("tolerationSeconds"))

    def to_kube(self) -> dict:
        out: dict = {}
        if self.key:
            out["key"] = self.key
        out["operator"] = self.operator
        if self.value:
            out["value"] = self.value
        if self.effect:
            out["effect"] = self.effect
        if self.expiry_after is not None:
            out["tolerationSeconds"] = self.expiry_after
        return out


# -- containers --

# (koki key, kube key) copied as-is
_CONTAINER_FIELDS = (
    ("name", "name"),
    ("image", "image"),
    ("command", "command"),
    ("args", "args"),
    ("wd", "workingDir"),
    ("stdin", "stdin"),
    ("stdin_once", "stdinOnce"),
    ("tty", "tty"),
    ("termination_msg_path", "terminationMessagePath"),
)
# (koki key, kube resource name); min is the request, max the limit
_RESOURCES = (("cpu", "cpu"), ("mem", "memory"))
# (koki key, kube lifecycle handler)
_LIFECYCLE = (("on_start", "postStart"), ("pre_stop", "preStop"))
# (koki key, kube container key)
_HEALTH_CHECKS = (("liveness_probe", "livenessProbe"), ("readiness_probe", "readinessProbe"))
# (koki key, kube securityContext key)
_SECURITY_FLAGS = (
    ("privileged", "privileged"),
    ("allow_escalation", "allowPrivilegeEscalation"),
    ("ro", "readOnlyRootFilesystem"),
    ("force_non_root", "runAsNonRoot"),
)
_SECURITY_INTS = (("uid", "runAsUser"), ("gid", "runAsGroup"))
_SELINUX_FIELDS = ("user", "role", "type", "level")
_SECURITY_KEYS = tuple(koki for koki, _ in _SECURITY_FLAGS + _SECURITY_INTS) + ("cap_add", "cap_drop", "selinux")
_KUBE_SECURITY_KEYS = tuple(kube for _, kube in _SECURITY_FLAGS + _SECURITY_INTS) + ("capabilities", "seLinuxOptions")

_CONTAINER_KEYS = tuple(koki for koki, _ in _CONTAINER_FIELDS + _RESOURCES + _LIFECYCLE + _HEALTH_CHECKS) + (
    "env", "expose", "volume", "pull", "termination_msg_policy",
) + _SECURITY_KEYS
_KUBE_CONTAINER_KEYS = tuple(kube for _, kube in _CONTAINER_FIELDS + _HEALTH_CHECKS) + (
    "env", "envFrom", "ports", "volumeMounts", "imagePullPolicy", "terminationMessagePolicy",
    "resources", "lifecycle", "securityContext",
)


def _present(value) -> bool:
    return value not in (None, "", [], {}, False)


def _quantity(value, what: str):
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeMismatchError(value, f"expected a resource quantity for {what}")
    if not _QUANTITY_RE.match(str(value)):
        raise InvalidValueError(value, f"expected a resource quantity for {what}")
    return value


def _revert_resources(obj: dict) -> dict:
    limits: dict = {}
    requests: dict = {}
    for koki_key, resource in _RESOURCES:
        if obj.get(koki_key) is None:
            continue
        bounds = expect_dict(obj[koki_key], koki_key)
        unknown = sorted(set(bounds) - {"min", "max"})
        if unknown:
            raise InvalidValueError(", ".join(unknown), f"unknown {koki_key} fields")
        if bounds.get("min") is not None:
            requests[resource] = _quantity(bounds["min"], f"{koki_key} min")
        if bounds.get("max") is not None:
            limits[resource] = _quantity(bounds["max"], f"{koki_key} max")
    out = {}
    if limits:
        out["limits"] = limits
    if requests:
        out["requests"] = requests
    return out


def _convert_resources(resources: dict, what: str, ctx: ConvertContext) -> dict:
    limits = resources.get("limits") or {}
    requests = resources.get("requests") or {}
    out = {}
    for koki_key, resource in _RESOURCES:
        bounds = {}
        if requests.get(resource) is not None:
            bounds["min"] = requests[resource]
        if limits.get(resource) is not None:
            bounds["max"] = limits[resource]
        if bounds:
            out[koki_key] = bounds
    known = tuple(resource for _, resource in _RESOURCES)
    warn_dropped_keys(limits, known, f"{what} limits", ctx)
    warn_dropped_keys(requests, known, f"{what} requests", ctx)
    warn_dropped_keys(resources, ("limits", "requests"), f"{what} resources", ctx)
    return out


def _revert_security(obj: dict) -> dict:
    out: dict = {}
    for koki_key, kube_key in _SECURITY_FLAGS:
        if obj.get(koki_key) is not None:
            if not isinstance(obj[koki_key], bool):
                raise TypeMismatchError(obj[koki_key], f"expected a boolean for {koki_key}")
            out[kube_key] = obj[koki_key]
    for koki_key, kube_key in _SECURITY_INTS:
        if obj.get(koki_key) is not None:
            out[kube_key] = parse_int(obj[koki_key], f"expected an integer {koki_key}", bits=64)
    capabilities = {}
    for koki_key, kube_key in (("cap_add", "add"), ("cap_drop", "drop")):
        if obj.get(koki_key):
            capabilities[kube_key] = [expect_str(c, "capability") for c in expect_list(obj[koki_key], koki_key)]
    if capabilities:
        out["capabilities"] = capabilities
    if obj.get("selinux"):
        selinux = expect_dict(obj["selinux"], "selinux")
        unknown = sorted(set(selinux) - set(_SELINUX_FIELDS))
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown selinux fields")
        out["seLinuxOptions"] = {key: expect_str(selinux[key], f"selinux {key}")
                                 for key in _SELINUX_FIELDS if selinux.get(key)}
    return out


def _convert_security(context: dict, what: str, ctx: ConvertContext) -> dict:
    out: dict = {}
    for koki_key, kube_key in _SECURITY_FLAGS + _SECURITY_INTS:
        if context.get(kube_key) is not None:
            out[koki_key] = context[kube_key]
    capabilities = context.get("capabilities") or {}
    for koki_key, kube_key in (("cap_add", "add"), ("cap_drop", "drop")):
        if capabilities.get(kube_key):
            out[koki_key] = list(capabilities[kube_key])
    selinux = {key: value for key, value in (context.get("seLinuxOptions") or {}).items()
               if key in _SELINUX_FIELDS and value}
    if selinux:
        out["selinux"] = selinux
    warn_dropped_keys(context, _KUBE_SECURITY_KEYS, f"{what} securityContext", ctx)
    return out


def _revert_actions(obj: dict) -> dict:
    """Lifecycle hooks and health checks of a koki container, as kube fields."""
    out: dict = {}
    lifecycle = {}
    for koki_key, kube_key in _LIFECYCLE:
        if obj.get(koki_key):
            try:
                lifecycle[kube_key] = Action.from_wire(obj[koki_key]).to_kube()
            except KokiError as exc:
                exc.contextualize(koki_key)
                raise
    if lifecycle:
        out["lifecycle"] = lifecycle
    for koki_key, kube_key in _HEALTH_CHECKS:
        if obj.get(koki_key):
            try:
                out[kube_key] = HealthCheck.from_wire(obj[koki_key]).to_kube()
            except KokiError as exc:
                exc.contextualize(koki_key)
                raise
    return out


def _convert_actions(container: dict, what: str, ctx: ConvertContext) -> dict:
    out: dict = {}
    lifecycle = container.get("lifecycle") or {}
    for koki_key, kube_key in _LIFECYCLE:
        if lifecycle.get(kube_key):
            try:
                out[koki_key] = Action.from_kube(lifecycle[kube_key]).to_wire()
            except KokiError as exc:
                exc.contextualize(koki_key)
                raise
    warn_dropped_keys(lifecycle, tuple(kube for _, kube in _LIFECYCLE), f"{what} lifecycle", ctx)
    for koki_key, kube_key in _HEALTH_CHECKS:
        if container.get(kube_key):
            try:
                out[koki_key] = HealthCheck.from_kube(container[kube_key], f"{what} {kube_key}", ctx).to_wire()
            except KokiError as exc:
                exc.contextualize(koki_key)
                raise
    return out


def revert_container(obj, ctx: ConvertContext) -> dict:
    """koki container → kube container."""
    obj = expect_dict(obj, "container")
    warn_unknown_keys(obj, _CONTAINER_KEYS, f"container ({obj.get('name', '')})", ctx)
    out: dict = {}
    for koki_key, kube_key in _CONTAINER_FIELDS:
        if _present(obj.get(koki_key)):
            out[kube_key] = obj[koki_key]
    for koki_key in ("command", "args"):
        if koki_key in out:
            out[koki_key] = [str(arg) for arg in expect_list(out[koki_key], koki_key)]
    if obj.get("pull"):
        out["imagePullPolicy"] = _check_choice(obj["pull"], PULL_POLICIES, "pull policy")
    if obj.get("termination_msg_policy"):
        out["terminationMessagePolicy"] = _check_choice(
            obj["termination_msg_policy"], TERMINATION_MSG_POLICIES, "termination message policy")
    try:
        env, env_from = revert_env(expect_list(obj.get("env") or [], "env"))
    except KokiError as exc:
        exc.contextualize("env")
        raise
    if env:
        out["env"] = env
    if env_from:
        out["envFrom"] = env_from
    try:
        ports = [Port.from_wire(p).to_kube() for p in expect_list(obj.get("expose") or [], "expose")]
    except KokiError as exc:
        exc.contextualize("expose")
        raise
    if ports:
        out["ports"] = ports
    try:
        mounts = [VolumeMount.from_wire(m).to_kube()
                  for m in expect_list(obj.get("volume") or [], "volume mounts")]
    except KokiError as exc:
        exc.contextualize("volume")
        raise
    if mounts:
        out["volumeMounts"] = mounts
    resources = _revert_resources(obj)
    if resources:
        out["resources"] = resources
    security = _revert_security(obj)
    if security:
        out["securityContext"] = security
    out.update(_revert_actions(obj))
    return out


def convert_container(container: dict, ctx: ConvertContext) -> dict:
    """kube container → koki container."""
    out: dict = {}
    what = f"container ({container.get('name', '')})"
    for koki_key, kube_key in _CONTAINER_FIELDS:
        if _present(container.get(kube_key)):
            out[koki_key] = container[kube_key]
    if container.get("imagePullPolicy"):
        out["pull"] = _check_choice(container["imagePullPolicy"], PULL_POLICIES, "pull policy")
    if container.get("terminationMessagePolicy"):
        out["termination_msg_policy"] = _check_choice(
            container["terminationMessagePolicy"], TERMINATION_MSG_POLICIES, "termination message policy")
    try:
        env = convert_env(container.get("env") or [], container.get("envFrom") or [])
    except KokiError as exc:
        exc.contextualize("env")
        raise
    if env:
        out["env"] = env
    expose = [Port.from_kube(p).to_wire() for p in container.get("ports") or []]
    if expose:
        out["expose"] = expose
    try:
        mounts = [VolumeMount.from_kube(m).to_wire() for m in container.get("volumeMounts") or []]
    except KokiError as exc:
        exc.contextualize("volume")
        raise
    if mounts:
        out["volume"] = mounts
    out.update(_convert_resources(container.get("resources") or {}, what, ctx))
    out.update(_convert_security(container.get("securityContext") or {}, what, ctx))
    out.update(_convert_actions(container, what, ctx))
    warn_dropped_keys(container, _KUBE_CONTAINER_KEYS, what, ctx)
    return out


def _revert_containers(containers, ctx: ConvertContext) -> list[dict]:
    result = []
    for container in expect_list(containers, "containers"):
        name = container.get("name", "") if isinstance(container, dict) else ""
        try:
            result.append(revert_container(container, ctx))
        except KokiError as exc:
            exc.contextualize(f"container ({name})")
            raise
    return result


def _convert_containers(containers: list[dict], ctx: ConvertContext) -> list[dict]:
    result = []
    for container in containers:
        try:
            result.append(convert_container(container, ctx))
        except KokiError as exc:
            exc.contextualize(f"container ({container.get('name', '')})")
            raise
    return result


# -- pod --

# (koki key, kube pod spec key) copied as-is
_POD_FIELDS = (
    ("node", "nodeName"),
    ("account", "serviceAccountName"),
    ("scheduler_name", "schedulerName"),
)
_POD_INT_FIELDS = (
    ("termination_grace_period", "terminationGracePeriodSeconds"),
    ("active_deadline", "activeDeadlineSeconds"),
)
_POD_KEYS = METADATA_KEYS + tuple(koki for koki, _ in _POD_FIELDS + _POD_INT_FIELDS) + (
    "affinity", "containers", "init_containers", "volumes", "host_alias",
    "hostname", "tolerations", "host_mode", "registries", "priority",
    "restart_policy", "dns_policy",
)
_KUBE_POD_SPEC_KEYS = tuple(kube for _, kube in _POD_FIELDS + _POD_INT_FIELDS) + tuple(HOST_MODES.values()) + (
    "affinity", "nodeSelector", "containers", "initContainers", "volumes",
    "hostAliases", "hostname", "subdomain", "tolerations", "imagePullSecrets",
    "priority", "priorityClassName", "restartPolicy", "dnsPolicy",
    "serviceAccount",
)


def _revert_hostname(hostname: str) -> dict:
    """``subdomain.hostname`` or ``hostname``."""
    subdomain, sep, name = hostname.partition(".")
    if not sep:
        return {"hostname": hostname}
    out = {"subdomain": subdomain}
    if name:
        out["hostname"] = name
    return out


def _convert_hostname(spec: dict) -> str:
    hostname = spec.get("hostname") or ""
    if spec.get("subdomain"):
        return f"{spec['subdomain']}.{hostname}"
    return hostname


def _revert_priority(priority) -> dict:
    priority = expect_dict(priority, "priority")
    unknown = sorted(set(priority) - {"value", "class"})
    if unknown:
        raise InvalidValueError(", ".join(unknown), "unknown priority fields")
    out: dict = {}
    if priority.get("value") is not None:
        out["priority"] = parse_int(priority["value"], "expected an integer priority value", bits=32)
    if priority.get("class"):
        out["priorityClassName"] = expect_str(priority["class"], "priority class")
    return out


def _parse_affinity(entries) -> list[Affinity]:
    result = []
    for i, entry in enumerate(expect_list(entries, "affinity")):
        try:
            result.append(Affinity.from_wire(entry))
        except KokiError as exc:
            exc.contextualize(f"affinity[{i}]")
            raise
    return result


def _revert_host_mode(modes) -> dict:
    out = {}
    for mode in expect_list(modes, "host_mode"):
        mode = _check_choice(expect_str(mode, "host mode"), HOST_MODES, "host mode")
        out[HOST_MODES[mode]] = True
    return out


class PodConverter(Converter):
    """Pod ↔ ``pod``."""
    name = "pod"
    kind = "Pod"
    koki_key = "pod"

    def to_kube(self, obj: dict, ctx: ConvertContext) -> dict:
        obj = expect_dict(obj, "pod")
        warn_unknown_keys(obj, _POD_KEYS, f"pod ({obj.get('name', '')})", ctx)
        doc = revert_metadata(obj, self.kind, ctx)
        spec: dict = {}

        affinity = revert_affinity(_parse_affinity(obj.get("affinity") or []))
        if affinity:
            spec["affinity"] = affinity
        if obj.get("containers"):
            spec["containers"] = _revert_containers(obj["containers"], ctx)
        if obj.get("init_containers"):
            spec["initContainers"] = _revert_containers(obj["init_containers"], ctx)
        if obj.get("volumes"):
            spec["volumes"] = revert_volumes(expect_dict(obj["volumes"], "volumes"))
        if obj.get("host_alias"):
            try:
                spec["hostAliases"] = revert_host_aliases(expect_list(obj["host_alias"], "host_alias"))
            except KokiError as exc:
                exc.contextualize("host_alias")
                raise
        if obj.get("hostname"):
            spec.update(_revert_hostname(expect_str(obj["hostname"], "hostname")))
        if obj.get("tolerations"):
            result = []
            for i, tol in enumerate(expect_list(obj["tolerations"], "tolerations")):
                try:
                    result.append(Toleration.from_wire(tol).to_kube())
                except KokiError as exc:
                    exc.contextualize(f"tolerations[{i}]")
                    raise
            spec["tolerations"] = result
        if obj.get("host_mode"):
            spec.update(_revert_host_mode(obj["host_mode"]))
        if obj.get("registries"):
            spec["imagePullSecrets"] = [{"name": expect_str(r, "registry")}
                                        for r in expect_list(obj["registries"], "registries")]
        if obj.get("priority"):
            spec.update(_revert_priority(obj["priority"]))
        if obj.get("restart_policy"):
            spec["restartPolicy"] = _check_choice(obj["restart_policy"], RESTART_POLICIES, "restart policy")
        if obj.get("dns_policy"):
            spec["dnsPolicy"] = _check_choice(obj["dns_policy"], DNS_POLICIES, "dns policy")
        for koki_key, kube_key in _POD_FIELDS:
            if obj.get(koki_key):
                spec[kube_key] = expect_str(obj[koki_key], koki_key)
        for koki_key, kube_key in _POD_INT_FIELDS:
            if obj.get(koki_key) is not None:
                spec[kube_key] = parse_int(obj[koki_key], f"expected an integer {koki_key}")

        doc["spec"] = spec
        return doc

    def to_koki(self, obj: dict, ctx: ConvertContext) -> dict:
        out = convert_metadata(obj, ctx)
        what = f"pod ({out.get('name', '')})"
        spec = obj.get("spec") or {}

        try:
            affinity = [a.to_wire() for a in convert_affinity(spec)]
        except KokiError as exc:
            exc.contextualize("affinity")
            raise
        if affinity:
            out["affinity"] = affinity
        if spec.get("containers"):
            out["containers"] = _convert_containers(spec["containers"], ctx)
        if spec.get("initContainers"):
            out["init_containers"] = _convert_containers(spec["initContainers"], ctx)
        if spec.get("volumes"):
            out["volumes"] = convert_volumes(spec["volumes"])
        aliases = convert_host_aliases(spec.get("hostAliases") or [], ctx)
        if aliases:
            out["host_alias"] = aliases
        hostname = _convert_hostname(spec)
        if hostname:
            out["hostname"] = hostname
        if spec.get("tolerations"):
            result = []
            for i, tol in enumerate(spec["tolerations"]):
                try:
                    result.append(Toleration.from_kube(tol).to_wire())
                except KokiError as exc:
                    exc.contextualize(f"tolerations[{i}]")
                    raise
            out["tolerations"] = result
        modes = [mode for mode, flag in HOST_MODES.items() if spec.get(flag)]
        if modes:
            out["host_mode"] = modes
        if spec.get("imagePullSecrets"):
            out["registries"] = [s.get("name", "") for s in spec["imagePullSecrets"]]
        priority = {}
        if spec.get("priority") is not None:
            priority["value"] = spec["priority"]
        if spec.get("priorityClassName"):
            priority["class"] = spec["priorityClassName"]
        if priority:
            out["priority"] = priority
        if spec.get("restartPolicy"):
            out["restart_policy"] = _check_choice(spec["restartPolicy"], RESTART_POLICIES, "restart policy")
        if spec.get("dnsPolicy"):
            out["dns_policy"] = _check_choice(spec["dnsPolicy"], DNS_POLICIES, "dns policy")
        for koki_key, kube_key in _POD_FIELDS + _POD_INT_FIELDS:
            if spec.get(kube_key) is not None and spec.get(kube_key) != "":
                out[koki_key] = spec[kube_key]
        if "account" not in out and spec.get("serviceAccount"):
            out["account"] = spec["serviceAccount"]

        warn_dropped_keys(spec, _KUBE_POD_SPEC_KEYS, what, ctx)
        if obj.get("status"):
            ctx.warnings.append(f"{what}: status dropped")
        return out
