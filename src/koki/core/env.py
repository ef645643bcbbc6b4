"""Env var conversion — ``key=value`` literals and ``from:`` references."""

from dataclasses import dataclass
from enum import Enum

from koki.pacts.errors import InvalidValueError, TypeMismatchError
from koki.pacts.helpers import optional_to_required, required_to_optional
from koki.core.constants import (
    ENV_RESOURCE_PREFIXES, ENV_CONFIG_PREFIX, ENV_SECRET_PREFIX,
)


class EnvFromType(str, Enum):
    """Recognized ``from`` sources for env references."""
    CPU_LIMITS = "limits.cpu"
    MEM_LIMITS = "limits.memory"
    EPHEMERAL_STORAGE_LIMITS = "limits.ephemeral-storage"
    CPU_REQUESTS = "requests.cpu"
    MEM_REQUESTS = "requests.memory"
    EPHEMERAL_STORAGE_REQUESTS = "requests.ephemeral-storage"
    METADATA_NAME = "metadata.name"
    METADATA_NAMESPACE = "metadata.namespace"
    METADATA_LABELS = "metadata.labels"
    METADATA_ANNOTATIONS = "metadata.annotations"
    SPEC_NODE_NAME = "spec.nodeName"
    SPEC_SERVICE_ACCOUNT_NAME = "spec.serviceAccountName"
    STATUS_HOST_IP = "status.hostIP"
    STATUS_POD_IP = "status.podIP"
    CONFIG = ENV_CONFIG_PREFIX
    SECRET = ENV_SECRET_PREFIX


_REF_TYPES = (EnvFromType.CONFIG, EnvFromType.SECRET)


def _from_type(value) -> EnvFromType:
    try:
        return EnvFromType(value)
    except ValueError:
        raise InvalidValueError(value, "unrecognized env source type") from None


@dataclass
class EnvVal:
    """A literal env var, written ``key=value``."""
    key: str
    val: str

    def to_wire(self) -> str:
        return f"{self.key}={self.val}"


@dataclass
class EnvFrom:
    """An env var (or whole-map envFrom) filled from a reference.

    ``from_`` is ``config:name[:key]``, ``secret:name[:key]``, a resource
    path (``limits.cpu``) or a pod field path (``metadata.name``).
    """
    key: str
    from_: str
    required: bool | None = None

    def to_wire(self) -> dict:
        out: dict = {}
        if self.key:
            out["key"] = self.key
        out["from"] = self.from_
        if self.required is not None:
            out["required"] = self.required
        return out


def parse_env_val(s: str) -> EnvVal:
    """Parse ``key=value``; anything but exactly one ``=`` is an error."""
    parts = s.split("=")
    if len(parts) != 2:
        raise InvalidValueError(s, "unrecognized env, expected key=value")
    return EnvVal(key=parts[0], val=parts[1])


def parse_env(data) -> EnvVal | EnvFrom:
    """Decode one koki env entry (string literal or ``{key, from, required}`` map)."""
    if isinstance(data, str):
        return parse_env_val(data)
    if isinstance(data, dict):
        unknown = sorted(set(data) - {"key", "from", "required"})
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown env fields")
        from_ = data.get("from")
        if not isinstance(from_, str) or not from_:
            raise InvalidValueError(data, "env reference needs a 'from' string")
        required = data.get("required")
        if required is not None and not isinstance(required, bool):
            raise TypeMismatchError(required, "expected a boolean for env 'required'")
        return EnvFrom(key=str(data.get("key") or ""), from_=from_, required=required)
    raise TypeMismatchError(data)


def _new_env_from(key: str, from_: str, required: bool) -> EnvFrom:
    if not key:
        raise InvalidValueError(key, "env key must not be empty")
    return EnvFrom(key=key, from_=from_, required=required)


def new_env(key: str, val: str) -> EnvVal:
    """Build a literal env var."""
    if not key:
        raise InvalidValueError(key, "env key must not be empty")
    return EnvVal(key=key, val=val)


def new_env_from(key: str, from_type: EnvFromType) -> EnvFrom:
    """Build a field or resource reference. Use the secret/config builders for those."""
    from_type = _from_type(from_type)
    if from_type in _REF_TYPES:
        raise InvalidValueError(from_type.value, "use new_env_from_secret_or_config for this source")
    return _new_env_from(key, from_type.value, False)


def new_env_from_secret_or_config(from_type: EnvFromType, key: str,
                                  name: str, ref_key: str = "") -> EnvFrom:
    """Build a ``secret:`` or ``config:`` reference; an empty ref_key imports the whole map."""
    from_type = _from_type(from_type)
    if from_type not in _REF_TYPES:
        raise InvalidValueError(from_type.value, "expected a secret or config source")
    from_ = f"{from_type.value}:{name}"
    if ref_key:
        from_ = f"{from_}:{ref_key}"
    return _new_env_from(key, from_, True)


def new_env_from_secret(key: str, name: str, secret_key: str = "") -> EnvFrom:
    return new_env_from_secret_or_config(EnvFromType.SECRET, key, name, secret_key)


def new_env_from_config(key: str, name: str, config_key: str = "") -> EnvFrom:
    return new_env_from_secret_or_config(EnvFromType.CONFIG, key, name, config_key)


def _with_optional(ref: dict, required: bool | None) -> dict:
    optional = required_to_optional(required)
    if optional is not None:
        ref["optional"] = optional
    return ref


def _revert_ref(env: EnvFrom, kind: str, map_key: str, key_ref: str) -> tuple[dict | None, dict | None]:
    """Revert a ``config:`` / ``secret:`` reference to (env entry, envFrom entry)."""
    segments = env.from_.split(":")
    if len(segments) == 2:
        source: dict = {}
        if env.key:
            source["prefix"] = env.key
        source[map_key] = _with_optional({"name": segments[1]}, env.required)
        return None, source
    if len(segments) == 3:
        ref = _with_optional({"name": segments[1], "key": segments[2]}, env.required)
        return {"name": env.key, "valueFrom": {key_ref: ref}}, None
    raise InvalidValueError(env.from_, f"expected {kind}:name[:key]")


def revert_env_from(env: EnvFrom) -> tuple[dict | None, dict | None]:
    """Revert one reference to (kube env entry, kube envFrom entry); one of them is None."""
    from_ = env.from_
    if from_.startswith(ENV_RESOURCE_PREFIXES):
        return {"name": env.key, "valueFrom": {"resourceFieldRef": {"resource": from_}}}, None
    if from_.startswith(f"{ENV_CONFIG_PREFIX}:"):
        return _revert_ref(env, ENV_CONFIG_PREFIX, "configMapRef", "configMapKeyRef")
    if from_.startswith(f"{ENV_SECRET_PREFIX}:"):
        return _revert_ref(env, ENV_SECRET_PREFIX, "secretRef", "secretKeyRef")
    return {"name": env.key, "valueFrom": {"fieldRef": {"fieldPath": from_}}}, None


def revert_env(entries: list) -> tuple[list[dict], list[dict]]:
    """Convert koki env entries to kube (env, envFrom) lists."""
    env: list[dict] = []
    env_from: list[dict] = []
    for entry in entries:
        parsed = parse_env(entry)
        if isinstance(parsed, EnvVal):
            env.append({"name": parsed.key, "value": parsed.val})
            continue
        var, source = revert_env_from(parsed)
        if var is not None:
            env.append(var)
        if source is not None:
            env_from.append(source)
    return env, env_from


def convert_env(env: list[dict], env_from: list[dict]) -> list:
    """Convert kube env and envFrom lists to koki wire entries (env first)."""
    result: list = []
    for var in env:
        name = var.get("name", "")
        value_from = var.get("valueFrom")
        if value_from is None:
            value = str(var.get("value", ""))
            if "=" in name or "=" in value:
                raise InvalidValueError(var, "env value containing '=' has no shorthand")
            result.append(EnvVal(key=name, val=value).to_wire())
            continue
        entry = EnvFrom(key=name, from_="")
        if "fieldRef" in value_from:
            entry.from_ = value_from["fieldRef"].get("fieldPath", "")
        elif "resourceFieldRef" in value_from:
            # containerName and divisor have no shorthand
            entry.from_ = value_from["resourceFieldRef"].get("resource", "")
        elif "configMapKeyRef" in value_from:
            ref = value_from["configMapKeyRef"]
            entry.from_ = f"{ENV_CONFIG_PREFIX}:{ref.get('name', '')}:{ref.get('key', '')}"
            entry.required = optional_to_required(ref.get("optional"))
        elif "secretKeyRef" in value_from:
            ref = value_from["secretKeyRef"]
            entry.from_ = f"{ENV_SECRET_PREFIX}:{ref.get('name', '')}:{ref.get('key', '')}"
            entry.required = optional_to_required(ref.get("optional"))
        else:
            raise InvalidValueError(sorted(value_from), f"unsupported valueFrom for env '{name}'")
        result.append(entry.to_wire())
    for source in env_from:
        entry = EnvFrom(key=source.get("prefix", ""), from_="")
        if "configMapRef" in source:
            ref = source["configMapRef"]
            entry.from_ = f"{ENV_CONFIG_PREFIX}:{ref.get('name', '')}"
        elif "secretRef" in source:
            ref = source["secretRef"]
            entry.from_ = f"{ENV_SECRET_PREFIX}:{ref.get('name', '')}"
        else:
            raise InvalidValueError(sorted(source), "unsupported envFrom source")
        entry.required = optional_to_required(ref.get("optional"))
        result.append(entry.to_wire())
    return result
