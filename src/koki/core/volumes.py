"""Volume conversion — volume source shorthand, volume mounts.

A koki volume is written either as a flat string ``type:selector:selector``
(``gce_pd:my-disk``, ``nfs:server:/export:ro``) or, when it carries extra
fields, as a map::

    vol_type: gce_pd
    vol_id: my-disk
    fs: ext4

Each variant is a dataclass. Its fields declare, through metadata, where
they live: ``pos`` for a positional selector segment, ``koki`` for an extra
field in the map form, ``kube`` for the key in the kube volume source.
"""

from dataclasses import dataclass, field, fields
from typing import ClassVar

from koki.pacts.errors import (
    InvalidValueError, KokiError, SelectorArityError, TypeMismatchError,
)
from koki.pacts.helpers import (
    expect_dict, expect_str, format_file_mode, optional_to_required,
    parse_file_mode, parse_int, required_to_optional,
)
from koki.core.constants import (
    ENV_RESOURCE_PREFIXES, MOUNT_PROPAGATIONS, READ_ONLY_MARKER,
)

_MODE = "mode"


def _sel(pos: int, kube: str | None = None, *, flag: str | None = None,
         choices: dict | None = None):
    """Declare a positional selector field.

    *flag* makes the field a boolean written as a literal segment (``ro``).
    *choices* maps koki spellings to kube values.
    """
    return field(default=None, metadata={
        "pos": pos, "kube": kube, "flag": flag, "choices": choices,
    })


def _extra(koki: str, kube: str | None = None, *, kind=str, required: bool = False,
           choices: dict | None = None, ref=None):
    """Declare an extra (map-form) field.

    *kind* is the wire type (str, int, bool, list, dict or ``"mode"`` for an
    octal file mode). *ref* is a reference codec (``NAME_REF``) for fields
    whose kube side is an object reference rather than a string.
    """
    return field(default=None, metadata={
        "koki": koki, "kube": kube, "kind": kind, "required": required,
        "choices": choices, "ref": ref,
    })


class NameRef:
    """A kube ``{name: ...}`` reference written as a bare name."""

    @staticmethod
    def check(value: str) -> None:
        if not value:
            raise InvalidValueError(value, "empty reference name")

    @staticmethod
    def to_kube(value: str) -> dict:
        return {"name": value}

    @staticmethod
    def from_kube(ref: dict) -> str | None:
        return ref.get("name") or None


NAME_REF = NameRef()


def _is_empty(value) -> bool:
    """omitempty semantics: None, False, 0 and empty strings/containers."""
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return value == 0


def _omitted(f, value) -> bool:
    """Whether a declared field is left out of the output. File modes keep 0."""
    if value is None:
        return True
    if f.metadata.get("kind") == _MODE:
        return False
    return _is_empty(value) and not f.metadata.get("required")


def _check_choice(value, choices: dict, what: str):
    if value not in choices:
        raise InvalidValueError(value, f"expected one of {', '.join(choices)} for {what}")
    return value


def _reverse_choice(value, choices: dict, what: str):
    for koki_value, kube_value in choices.items():
        if kube_value == value:
            return koki_value
    raise InvalidValueError(value, f"unsupported {what}")


def _check_kind(value, meta: dict, what: str):
    """Validate (and normalize) one extra field read from the wire."""
    kind = meta["kind"]
    if kind is int:
        value = parse_int(value, f"expected an integer for {what}")
    elif kind == _MODE:
        value = parse_file_mode(value)
    elif kind is bool:
        if not isinstance(value, bool):
            raise TypeMismatchError(value, f"expected a boolean for {what}")
    elif kind is list:
        if not isinstance(value, list):
            raise TypeMismatchError(value, f"expected a list for {what}")
    elif kind is dict:
        if not isinstance(value, dict):
            raise TypeMismatchError(value, f"expected a dictionary for {what}")
    elif not isinstance(value, str):
        raise TypeMismatchError(value, f"expected a string for {what}")
    if meta["choices"]:
        _check_choice(value, meta["choices"], what)
    return value


@dataclass
class MarshalledVolume:
    """A variant flattened to its wire parts."""
    type: str
    selector: list[str]
    extra: dict


class VolumeSource:
    """Base class for volume source variants (one dataclass per ``vol_type``)."""
    vol_type: ClassVar[str] = ""
    kube_key: ClassVar[str] = ""
    # (min, max) selector segments, and their names for error messages
    arity: ClassVar[tuple[int, int]] = (0, 0)
    hints: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def _expected(cls) -> str:
        lo, hi = cls.arity
        count = str(lo) if lo == hi else f"{lo}-{hi}"
        noun = "segment" if hi == 1 else "segments"
        if cls.hints:
            return f"{count} selector {noun} ({':'.join(cls.hints)})"
        return f"{count} selector {noun}"

    @classmethod
    def check_arity(cls, selector: list[str]) -> None:
        lo, hi = cls.arity
        if not lo <= len(selector) <= hi:
            raise SelectorArityError(cls.vol_type, selector, cls._expected())

    @classmethod
    def _from_selector(cls, selector: list[str]) -> dict:
        kwargs = {}
        for f in fields(cls):
            pos = f.metadata.get("pos")
            if pos is None or pos >= len(selector):
                continue
            value = selector[pos]
            flag = f.metadata["flag"]
            if flag is not None:
                if value != flag:
                    raise InvalidValueError(":".join(selector),
                                            f"expected '{flag}' as selector segment {pos} of {cls.vol_type}")
                value = True
            elif f.metadata["choices"]:
                _check_choice(value, f.metadata["choices"], f"{cls.vol_type} {f.name}")
            kwargs[f.name] = value
        return kwargs

    @classmethod
    def _from_extra(cls, obj: dict) -> dict:
        obj = dict(obj)
        kwargs = {}
        for f in fields(cls):
            key = f.metadata.get("koki")
            if key is None:
                continue
            if key not in obj:
                if f.metadata["required"]:
                    raise InvalidValueError(cls.vol_type, f"missing required field '{key}'")
                continue
            value = _check_kind(obj.pop(key), f.metadata, f"{cls.vol_type} {key}")
            if f.metadata["ref"] is not None:
                f.metadata["ref"].check(value)
            kwargs[f.name] = value
        if obj:
            raise InvalidValueError(", ".join(sorted(obj)), f"unknown fields for {cls.vol_type}")
        return kwargs

    @classmethod
    def unmarshal(cls, obj: dict | None, selector: list[str]) -> "VolumeSource":
        """Build the variant from its selector and extra fields."""
        cls.check_arity(selector)
        kwargs = cls._from_selector(selector)
        kwargs.update(cls._from_extra(obj or {}))
        source = cls(**kwargs)
        source.validate()
        return source

    def validate(self) -> None:
        """Check field formats beyond their wire type. Override where needed."""

    def _selector(self) -> list[str]:
        segments = []
        for f in sorted((f for f in fields(self) if "pos" in f.metadata),
                        key=lambda f: f.metadata["pos"]):
            value = getattr(self, f.name)
            if f.metadata["flag"] is not None:
                if value:
                    segments.append(f.metadata["flag"])
            elif not _is_empty(value):
                segments.append(str(value))
        return segments

    def _extra_fields(self) -> dict:
        out = {}
        for f in fields(self):
            key = f.metadata.get("koki")
            if key is None:
                continue
            value = getattr(self, f.name)
            if _omitted(f, value):
                continue
            if f.metadata["kind"] == _MODE:
                value = format_file_mode(value)
            out[key] = value
        return dict(sorted(out.items()))

    def marshal(self) -> MarshalledVolume:
        return MarshalledVolume(type=self.vol_type, selector=self._selector(),
                                extra=self._extra_fields())

    @classmethod
    def from_kube(cls, src: dict) -> "VolumeSource":
        """Build the variant from a kube volume source dict."""
        kwargs = {}
        for f in fields(cls):
            kube = f.metadata.get("kube")
            if kube is None or src.get(kube) is None:
                continue
            value = src[kube]
            if f.metadata.get("ref") is not None:
                value = f.metadata["ref"].from_kube(value)
            choices = f.metadata.get("choices")
            if choices and value is not None:
                value = _reverse_choice(value, choices, f"{cls.kube_key}.{kube}")
            kwargs[f.name] = value
        return cls(**kwargs)

    def to_kube(self) -> dict:
        """Render the variant as a kube volume source dict."""
        out = {}
        for f in fields(self):
            kube = f.metadata.get("kube")
            if kube is None:
                continue
            value = getattr(self, f.name)
            if _omitted(f, value):
                continue
            choices = f.metadata.get("choices")
            if choices:
                value = choices[value]
            if f.metadata.get("ref") is not None:
                value = f.metadata["ref"].to_kube(value)
            out[kube] = value
        return out


_HOST_PATH_TYPES = {
    "dir-or-create": "DirectoryOrCreate",
    "dir": "Directory",
    "file-or-create": "FileOrCreate",
    "file": "File",
    "socket": "Socket",
    "char-dev": "CharDevice",
    "block-dev": "BlockDevice",
}


@dataclass
class HostPathVolume(VolumeSource):
    vol_type: ClassVar[str] = "host_path"
    kube_key: ClassVar[str] = "hostPath"
    arity: ClassVar[tuple[int, int]] = (1, 2)
    hints: ClassVar[tuple[str, ...]] = ("path", "type")

    path: str | None = _sel(0, "path")
    type: str | None = _sel(1, "type", choices=_HOST_PATH_TYPES)

    @classmethod
    def from_kube(cls, src: dict) -> "HostPathVolume":
        # "" is the kube default (no check)
        src = {k: v for k, v in src.items() if not (k == "type" and v == "")}
        return super().from_kube(src)


@dataclass
class EmptyDirVolume(VolumeSource):
    vol_type: ClassVar[str] = "empty_dir"
    kube_key: ClassVar[str] = "emptyDir"

    medium: str | None = _extra("medium", "medium",
                                choices={"memory": "Memory", "huge-pages": "HugePages"})
    max_size: str | None = _extra("max_size", "sizeLimit")

    @classmethod
    def from_kube(cls, src: dict) -> "EmptyDirVolume":
        src = {k: v for k, v in src.items() if not (k == "medium" and v == "")}
        return super().from_kube(src)


@dataclass
class GcePDVolume(VolumeSource):
    vol_type: ClassVar[str] = "gce_pd"
    kube_key: ClassVar[str] = "gcePersistentDisk"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("pd name",)

    pd_name: str | None = _sel(0, "pdName")
    fs: str | None = _extra("fs", "fsType")
    partition: int | None = _extra("partition", "partition", kind=int)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class AwsEBSVolume(VolumeSource):
    vol_type: ClassVar[str] = "aws_ebs"
    kube_key: ClassVar[str] = "awsElasticBlockStore"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume id",)

    volume_id: str | None = _sel(0, "volumeID")
    fs: str | None = _extra("fs", "fsType")
    partition: int | None = _extra("partition", "partition", kind=int)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class AzureDiskVolume(VolumeSource):
    vol_type: ClassVar[str] = "azure_disk"
    kube_key: ClassVar[str] = "azureDisk"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("disk name",)

    disk_name: str | None = _sel(0, "diskName")
    disk_uri: str | None = _extra("disk_uri", "diskURI", required=True)
    caching_mode: str | None = _extra("cache", "cachingMode",
                                      choices={"none": "None", "ro": "ReadOnly", "rw": "ReadWrite"})
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)
    kind: str | None = _extra("kind", "kind",
                              choices={"shared": "Shared", "dedicated": "Dedicated", "managed": "Managed"})


@dataclass
class AzureFileVolume(VolumeSource):
    vol_type: ClassVar[str] = "azure_file"
    kube_key: ClassVar[str] = "azureFile"
    arity: ClassVar[tuple[int, int]] = (2, 3)
    hints: ClassVar[tuple[str, ...]] = ("secret", "share", "ro")

    secret_name: str | None = _sel(0, "secretName")
    share_name: str | None = _sel(1, "shareName")
    read_only: bool | None = _sel(2, "readOnly", flag=READ_ONLY_MARKER)


def _split_cephfs_secret(secret: str) -> tuple[str, str]:
    kind, sep, value = secret.partition(":")
    if not sep or kind not in ("file", "ref") or not value:
        raise InvalidValueError(secret, "expected cephfs secret as file:<path> or ref:<name>")
    return kind, value


@dataclass
class CephFSVolume(VolumeSource):
    vol_type: ClassVar[str] = "cephfs"
    kube_key: ClassVar[str] = "cephfs"

    monitors: list | None = _extra("monitors", "monitors", kind=list, required=True)
    path: str | None = _extra("path", "path")
    user: str | None = _extra("user", "user")
    secret: str | None = _extra("secret")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)

    # codec for the part after "ref:"
    secret_ref: ClassVar = NAME_REF

    def validate(self) -> None:
        if self.secret:
            kind, value = _split_cephfs_secret(self.secret)
            if kind == "ref":
                self.secret_ref.check(value)

    @classmethod
    def from_kube(cls, src: dict) -> "CephFSVolume":
        volume = super().from_kube(src)
        if src.get("secretFile"):
            volume.secret = f"file:{src['secretFile']}"
        elif (src.get("secretRef") or {}).get("name"):
            volume.secret = f"ref:{cls.secret_ref.from_kube(src['secretRef'])}"
        return volume

    def to_kube(self) -> dict:
        out = super().to_kube()
        if self.secret:
            kind, value = _split_cephfs_secret(self.secret)
            if kind == "file":
                out["secretFile"] = value
            else:
                out["secretRef"] = self.secret_ref.to_kube(value)
        return out


@dataclass
class CinderVolume(VolumeSource):
    vol_type: ClassVar[str] = "cinder"
    kube_key: ClassVar[str] = "cinder"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume id",)

    volume_id: str | None = _sel(0, "volumeID")
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class FibreChannelVolume(VolumeSource):
    vol_type: ClassVar[str] = "fc"
    kube_key: ClassVar[str] = "fc"

    target_wwns: list | None = _extra("wwn", "targetWWNs", kind=list)
    lun: int | None = _extra("lun", "lun", kind=int)
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)
    wwids: list | None = _extra("wwid", "wwids", kind=list)


@dataclass
class FlexVolume(VolumeSource):
    vol_type: ClassVar[str] = "flex"
    kube_key: ClassVar[str] = "flexVolume"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("driver",)

    driver: str | None = _sel(0, "driver")
    fs: str | None = _extra("fs", "fsType")
    secret: str | None = _extra("secret", "secretRef", ref=NAME_REF)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)
    options: dict | None = _extra("options", "options", kind=dict)


@dataclass
class FlockerVolume(VolumeSource):
    vol_type: ClassVar[str] = "flocker"
    kube_key: ClassVar[str] = "flocker"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("dataset",)

    dataset: str | None = _sel(0, "datasetUUID")

    @classmethod
    def from_kube(cls, src: dict) -> "FlockerVolume":
        # the shorthand has a single dataset slot; the UUID wins over the name
        return cls(dataset=src.get("datasetUUID") or src.get("datasetName"))


@dataclass
class GlusterfsVolume(VolumeSource):
    vol_type: ClassVar[str] = "glusterfs"
    kube_key: ClassVar[str] = "glusterfs"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("endpoints",)

    endpoints: str | None = _sel(0, "endpoints")
    path: str | None = _extra("path", "path", required=True)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class ISCSIVolume(VolumeSource):
    vol_type: ClassVar[str] = "iscsi"
    kube_key: ClassVar[str] = "iscsi"

    target_portal: str | None = _extra("target_portal", "targetPortal", required=True)
    iqn: str | None = _extra("iqn", "iqn", required=True)
    lun: int | None = _extra("lun", "lun", kind=int, required=True)
    iscsi_interface: str | None = _extra("iscsi_interface", "iscsiInterface")
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)
    portals: list | None = _extra("portals", "portals", kind=list)
    chap_discovery: bool | None = _extra("chap_discovery", "chapAuthDiscovery", kind=bool)
    chap_session: bool | None = _extra("chap_session", "chapAuthSession", kind=bool)
    secret: str | None = _extra("secret", "secretRef", ref=NAME_REF)
    initiator: str | None = _extra("initiator", "initiatorName")


@dataclass
class NFSVolume(VolumeSource):
    vol_type: ClassVar[str] = "nfs"
    kube_key: ClassVar[str] = "nfs"
    arity: ClassVar[tuple[int, int]] = (2, 3)
    hints: ClassVar[tuple[str, ...]] = ("server", "path", "ro")

    server: str | None = _sel(0, "server")
    path: str | None = _sel(1, "path")
    read_only: bool | None = _sel(2, "readOnly", flag=READ_ONLY_MARKER)


@dataclass
class PhotonPDVolume(VolumeSource):
    vol_type: ClassVar[str] = "photon"
    kube_key: ClassVar[str] = "photonPersistentDisk"
    arity: ClassVar[tuple[int, int]] = (1, 2)
    hints: ClassVar[tuple[str, ...]] = ("pd id", "fs")

    pd_id: str | None = _sel(0, "pdID")
    fs: str | None = _sel(1, "fsType")


@dataclass
class PortworxVolume(VolumeSource):
    vol_type: ClassVar[str] = "portworx"
    kube_key: ClassVar[str] = "portworxVolume"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume id",)

    volume_id: str | None = _sel(0, "volumeID")
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class PVCVolume(VolumeSource):
    vol_type: ClassVar[str] = "pvc"
    kube_key: ClassVar[str] = "persistentVolumeClaim"
    arity: ClassVar[tuple[int, int]] = (1, 2)
    hints: ClassVar[tuple[str, ...]] = ("claim", "ro")

    claim_name: str | None = _sel(0, "claimName")
    read_only: bool | None = _sel(1, "readOnly", flag=READ_ONLY_MARKER)


@dataclass
class QuobyteVolume(VolumeSource):
    vol_type: ClassVar[str] = "quobyte"
    kube_key: ClassVar[str] = "quobyte"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume",)

    volume: str | None = _sel(0, "volume")
    registry: str | None = _extra("registry", "registry", required=True)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)
    user: str | None = _extra("user", "user")
    group: str | None = _extra("group", "group")


_SCALEIO_STORAGE_MODES = {"thick": "ThickProvisioned", "thin": "ThinProvisioned"}


@dataclass
class ScaleIOVolume(VolumeSource):
    vol_type: ClassVar[str] = "scaleio"
    kube_key: ClassVar[str] = "scaleIO"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume",)

    volume_name: str | None = _sel(0, "volumeName")
    gateway: str | None = _extra("gateway", "gateway", required=True)
    system: str | None = _extra("system", "system", required=True)
    secret: str | None = _extra("secret", "secretRef", required=True, ref=NAME_REF)
    ssl: bool | None = _extra("ssl", "sslEnabled", kind=bool)
    protection_domain: str | None = _extra("protection_domain", "protectionDomain")
    storage_pool: str | None = _extra("storage_pool", "storagePool")
    storage_mode: str | None = _extra("storage_mode", "storageMode", choices=_SCALEIO_STORAGE_MODES)
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class VsphereVolume(VolumeSource):
    vol_type: ClassVar[str] = "vsphere"
    kube_key: ClassVar[str] = "vsphereVolume"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume path",)

    volume_path: str | None = _sel(0, "volumePath")
    fs: str | None = _extra("fs", "fsType")
    policy: dict | None = _extra("policy", kind=dict)

    def validate(self) -> None:
        unknown = sorted(set(self.policy or {}) - {"name", "id"})
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown vsphere policy fields")

    @classmethod
    def from_kube(cls, src: dict) -> "VsphereVolume":
        volume = super().from_kube(src)
        policy = {"name": src.get("storagePolicyName"), "id": src.get("storagePolicyID")}
        volume.policy = {k: v for k, v in policy.items() if v} or None
        return volume

    def to_kube(self) -> dict:
        out = super().to_kube()
        policy = self.policy or {}
        if policy.get("name"):
            out["storagePolicyName"] = policy["name"]
        if policy.get("id"):
            out["storagePolicyID"] = policy["id"]
        return out


def _revert_key_items(items: dict | None, what: str) -> list[dict]:
    """``{path: key | {key, mode}}`` → kube ``[{key, path, mode}]``."""
    result = []
    for path in sorted(items or {}):
        value = items[path]
        if isinstance(value, str):
            result.append({"key": value, "path": path})
            continue
        value = expect_dict(value, f"{what} item '{path}'")
        unknown = sorted(set(value) - {"key", "mode"})
        if unknown:
            raise InvalidValueError(", ".join(unknown), f"unknown fields in {what} item '{path}'")
        item = {"key": expect_str(value.get("key"), f"{what} item '{path}' key"), "path": path}
        if value.get("mode") is not None:
            item["mode"] = parse_file_mode(value["mode"])
        result.append(item)
    return result


def _convert_key_items(items: list[dict] | None) -> dict | None:
    result = {}
    for item in items or []:
        if item.get("mode") is not None:
            result[item.get("path", "")] = {"key": item.get("key", ""),
                                            "mode": format_file_mode(item["mode"])}
        else:
            result[item.get("path", "")] = item.get("key", "")
    return result or None


class _KeyProjection(VolumeSource):
    """Shared shape of the ConfigMap and Secret volumes."""
    name_key: ClassVar[str] = "name"

    name: str | None
    items: dict | None
    mode: int | None
    required: bool | None

    def validate(self) -> None:
        _revert_key_items(self.items, self.vol_type)

    def _extra_fields(self) -> dict:
        out = super()._extra_fields()
        # required: false is meaningful (kube optional: true)
        if self.required is False:
            out["required"] = False
        return dict(sorted(out.items()))

    @classmethod
    def from_kube(cls, src: dict) -> "_KeyProjection":
        return cls(
            name=src.get(cls.name_key) or None,
            items=_convert_key_items(src.get("items")),
            mode=src.get("defaultMode"),
            required=optional_to_required(src.get("optional")),
        )

    def to_kube(self) -> dict:
        out: dict = {}
        if self.name:
            out[self.name_key] = self.name
        if self.items:
            out["items"] = _revert_key_items(self.items, self.vol_type)
        if self.mode is not None:
            out["defaultMode"] = self.mode
        optional = required_to_optional(self.required)
        if optional is not None:
            out["optional"] = optional
        return out


@dataclass
class ConfigMapVolume(_KeyProjection):
    vol_type: ClassVar[str] = "config_map"
    kube_key: ClassVar[str] = "configMap"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("name",)

    name: str | None = _sel(0)
    items: dict | None = _extra("items", kind=dict)
    mode: int | None = _extra("mode", kind=_MODE)
    required: bool | None = _extra("required", kind=bool)


@dataclass
class SecretVolume(_KeyProjection):
    vol_type: ClassVar[str] = "secret"
    kube_key: ClassVar[str] = "secret"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("secret name",)
    name_key: ClassVar[str] = "secretName"

    name: str | None = _sel(0)
    items: dict | None = _extra("items", kind=dict)
    mode: int | None = _extra("mode", kind=_MODE)
    required: bool | None = _extra("required", kind=bool)


def _revert_downward_item(path: str, value) -> dict:
    """``path: metadata.labels`` or ``path: {from, container, divisor, mode}`` → kube item."""
    if isinstance(value, str):
        value = {"from": value}
    value = expect_dict(value, f"downward_api item '{path}'")
    unknown = sorted(set(value) - {"from", "container", "divisor", "mode"})
    if unknown:
        raise InvalidValueError(", ".join(unknown), f"unknown fields in downward_api item '{path}'")
    from_ = expect_str(value.get("from"), f"downward_api item '{path}' from")
    item: dict = {"path": path}
    if from_.startswith(ENV_RESOURCE_PREFIXES):
        ref = {"resource": from_}
        if value.get("container"):
            ref["containerName"] = value["container"]
        if value.get("divisor") is not None:
            ref["divisor"] = str(value["divisor"])
        item["resourceFieldRef"] = ref
    else:
        item["fieldRef"] = {"fieldPath": from_}
    if value.get("mode") is not None:
        item["mode"] = parse_file_mode(value["mode"])
    return item


def _convert_downward_item(item: dict):
    if "resourceFieldRef" in item:
        ref = item["resourceFieldRef"]
        value = {"from": ref.get("resource", "")}
        if ref.get("containerName"):
            value["container"] = ref["containerName"]
        if ref.get("divisor") is not None:
            value["divisor"] = str(ref["divisor"])
    else:
        value = {"from": (item.get("fieldRef") or {}).get("fieldPath", "")}
    if item.get("mode") is not None:
        value["mode"] = format_file_mode(item["mode"])
    if list(value) == ["from"]:
        return value["from"]
    return value


def _revert_downward_items(items: dict | None) -> list[dict]:
    return [_revert_downward_item(path, items[path]) for path in sorted(items or {})]


def _convert_downward_items(items: list[dict] | None) -> dict | None:
    return {item.get("path", ""): _convert_downward_item(item) for item in items or []} or None


@dataclass
class DownwardAPIVolume(VolumeSource):
    vol_type: ClassVar[str] = "downward_api"
    kube_key: ClassVar[str] = "downwardAPI"

    items: dict | None = _extra("items", kind=dict)
    mode: int | None = _extra("mode", "defaultMode", kind=_MODE)

    def validate(self) -> None:
        _revert_downward_items(self.items)

    @classmethod
    def from_kube(cls, src: dict) -> "DownwardAPIVolume":
        volume = super().from_kube(src)
        volume.items = _convert_downward_items(src.get("items"))
        return volume

    def to_kube(self) -> dict:
        out = super().to_kube()
        if self.items:
            out["items"] = _revert_downward_items(self.items)
        return out


# projection source key: (kube key, kube name key or None)
_PROJECTIONS = {
    "config_map": ("configMap", "name"),
    "secret": ("secret", "name"),
    "downward_api": ("downwardAPI", None),
}


def _revert_projection(source: dict) -> dict:
    source = expect_dict(source, "projected source")
    if len(source) != 1 or next(iter(source)) not in _PROJECTIONS:
        raise InvalidValueError(source, f"expected one of {', '.join(_PROJECTIONS)} per projected source")
    (key, body), = source.items()
    body = expect_dict(body, f"projected {key}")
    kube_key, name_key = _PROJECTIONS[key]
    allowed = {"items"} if name_key is None else {"name", "items", "required"}
    unknown = sorted(set(body) - allowed)
    if unknown:
        raise InvalidValueError(", ".join(unknown), f"unknown fields in projected {key}")
    out: dict = {}
    if name_key is None:
        out["items"] = _revert_downward_items(body.get("items"))
        return {kube_key: out}
    if body.get("name"):
        out[name_key] = body["name"]
    if body.get("items"):
        out["items"] = _revert_key_items(body["items"], f"projected {key}")
    optional = required_to_optional(body.get("required"))
    if optional is not None:
        out["optional"] = optional
    return {kube_key: out}


def _convert_projection(source: dict) -> dict:
    for key, (kube_key, name_key) in _PROJECTIONS.items():
        if kube_key not in source:
            continue
        body = source[kube_key] or {}
        if name_key is None:
            return {key: {"items": _convert_downward_items(body.get("items")) or {}}}
        out: dict = {}
        if body.get(name_key):
            out["name"] = body[name_key]
        items = _convert_key_items(body.get("items"))
        if items:
            out["items"] = items
        required = optional_to_required(body.get("optional"))
        if required is not None:
            out["required"] = required
        return {key: out}
    raise InvalidValueError(sorted(source), "unsupported projected volume source")


@dataclass
class ProjectedVolume(VolumeSource):
    vol_type: ClassVar[str] = "projected"
    kube_key: ClassVar[str] = "projected"

    sources: list | None = _extra("sources", kind=list)
    mode: int | None = _extra("mode", "defaultMode", kind=_MODE)

    def validate(self) -> None:
        for source in self.sources or []:
            _revert_projection(source)

    @classmethod
    def from_kube(cls, src: dict) -> "ProjectedVolume":
        volume = super().from_kube(src)
        volume.sources = [_convert_projection(s) for s in src.get("sources") or []] or None
        return volume

    def to_kube(self) -> dict:
        out = super().to_kube()
        out["sources"] = [_revert_projection(s) for s in self.sources or []]
        return out


@dataclass
class GitVolume(VolumeSource):
    vol_type: ClassVar[str] = "git"
    kube_key: ClassVar[str] = "gitRepo"

    repository: str | None = _extra("repository", "repository", required=True)
    revision: str | None = _extra("revision", "revision")
    directory: str | None = _extra("dir", "directory")


@dataclass
class RBDVolume(VolumeSource):
    vol_type: ClassVar[str] = "rbd"
    kube_key: ClassVar[str] = "rbd"

    monitors: list | None = _extra("monitors", "monitors", kind=list, required=True)
    image: str | None = _extra("image", "image", required=True)
    fs: str | None = _extra("fs", "fsType")
    pool: str | None = _extra("pool", "pool")
    user: str | None = _extra("user", "user")
    keyring: str | None = _extra("keyring", "keyring")
    secret: str | None = _extra("secret", "secretRef", ref=NAME_REF)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


@dataclass
class StorageOSVolume(VolumeSource):
    vol_type: ClassVar[str] = "storageos"
    kube_key: ClassVar[str] = "storageos"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("volume",)

    volume_name: str | None = _sel(0, "volumeName")
    volume_namespace: str | None = _extra("vol_ns", "volumeNamespace")
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)
    secret: str | None = _extra("secret", "secretRef", ref=NAME_REF)


def _registry(*classes) -> dict[str, type[VolumeSource]]:
    return {cls.vol_type: cls for cls in classes}


# vol_type → variant class
VOLUME_TYPES: dict[str, type[VolumeSource]] = _registry(
    HostPathVolume, EmptyDirVolume, GcePDVolume, AwsEBSVolume,
    AzureDiskVolume, AzureFileVolume, CephFSVolume, CinderVolume,
    FibreChannelVolume, FlexVolume, FlockerVolume, GlusterfsVolume,
    ISCSIVolume, NFSVolume, PhotonPDVolume, PortworxVolume, PVCVolume,
    QuobyteVolume, ScaleIOVolume, VsphereVolume, ConfigMapVolume,
    SecretVolume, DownwardAPIVolume, ProjectedVolume, GitVolume,
    RBDVolume, StorageOSVolume,
)


def decode_source(registry: dict, obj: dict | None, vol_type: str,
                  selector: list[str]) -> VolumeSource:
    """Pick the variant for vol_type in registry and build it."""
    cls = registry.get(vol_type)
    if cls is None:
        raise InvalidValueError(vol_type, "unsupported volume type")
    return cls.unmarshal(obj, selector)


def decode_volume_source(obj: dict | None, vol_type: str, selector: list[str]) -> VolumeSource:
    """Decode a pod volume source from its type, selector and extra fields."""
    return decode_source(VOLUME_TYPES, obj, vol_type, selector)


def split_vol_id(vol_id) -> list[str]:
    """``vol_id`` is the colon-joined selector; absent or empty means no segments."""
    if vol_id is None or vol_id == "":
        return []
    return expect_str(vol_id, "vol_id").split(":")


@dataclass
class Volume:
    """A pod volume: exactly one source variant."""
    source: VolumeSource | None = None

    @classmethod
    def from_wire(cls, data) -> "Volume":
        if isinstance(data, str):
            segments = data.split(":")
            return cls(decode_volume_source(None, segments[0], segments[1:]))
        if isinstance(data, dict):
            obj = dict(data)
            vol_type = obj.pop("vol_type", None)
            if not isinstance(vol_type, str) or not vol_type:
                raise InvalidValueError(data, "volume map needs a 'vol_type' string")
            selector = split_vol_id(obj.pop("vol_id", None))
            return cls(decode_volume_source(obj, vol_type, selector))
        raise TypeMismatchError(data)

    def to_wire(self):
        if self.source is None:
            raise InvalidValueError(self, "empty volume definition")
        marshalled = self.source.marshal()
        if not marshalled.extra:
            return ":".join([marshalled.type, *marshalled.selector])
        out: dict = {"vol_type": marshalled.type}
        if marshalled.selector:
            out["vol_id"] = ":".join(marshalled.selector)
        out.update(marshalled.extra)
        return out


_KUBE_KEYS = {cls.kube_key: cls for cls in VOLUME_TYPES.values()}


def convert_volume(kube_volume: dict) -> tuple[str, Volume]:
    """kube pod volume → (name, koki Volume)."""
    name = kube_volume.get("name", "")
    present = [key for key in kube_volume if key in _KUBE_KEYS]
    if not present:
        unknown = sorted(set(kube_volume) - {"name"})
        if unknown:
            raise InvalidValueError(", ".join(unknown), f"unsupported volume source in volume '{name}'")
        raise InvalidValueError(name, "empty volume definition")
    if len(present) > 1:
        raise InvalidValueError(", ".join(present), f"volume '{name}' sets more than one source")
    key = present[0]
    return name, Volume(_KUBE_KEYS[key].from_kube(kube_volume[key] or {}))


def revert_volume(name: str, volume: Volume) -> dict:
    """(name, koki Volume) → kube pod volume."""
    if volume.source is None:
        raise InvalidValueError(name, "empty volume definition")
    return {"name": name, volume.source.kube_key: volume.source.to_kube()}


@dataclass
class VolumeMount:
    """A container mount. ``store`` is ``name[:subpath][:ro]``.

    With two segments the second is the read-only flag when it is literally
    ``ro``, otherwise a subpath. A read-only mount of a subpath named ``ro``
    is written ``name:ro:ro``; a writable one has no shorthand.
    """
    mount_path: str = ""
    propagation: str | None = None
    store: str = ""

    @classmethod
    def from_wire(cls, data) -> "VolumeMount":
        data = expect_dict(data, "volume mount")
        unknown = sorted(set(data) - {"mount", "propagation", "store"})
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown volume mount fields")
        mount = cls(mount_path=data.get("mount") or "",
                    propagation=data.get("propagation"),
                    store=data.get("store") or "")
        if mount.propagation is not None and mount.propagation not in MOUNT_PROPAGATIONS:
            raise InvalidValueError(mount.propagation, "unsupported mount propagation")
        mount.parse_store()
        return mount

    def to_wire(self) -> dict:
        out: dict = {}
        if self.mount_path:
            out["mount"] = self.mount_path
        if self.propagation:
            out["propagation"] = self.propagation
        if self.store:
            out["store"] = self.store
        return out

    def parse_store(self) -> tuple[str, str, bool]:
        """Split ``store`` into (volume name, subpath, read-only)."""
        segments = self.store.split(":")
        if len(segments) == 1:
            return segments[0], "", False
        if len(segments) == 2:
            if segments[1] == READ_ONLY_MARKER:
                return segments[0], "", True
            return segments[0], segments[1], False
        if len(segments) == 3:
            if segments[2] != READ_ONLY_MARKER:
                raise InvalidValueError(self.store, "expected name:subpath:ro")
            return segments[0], segments[1], True
        raise InvalidValueError(self.store, "expected name[:subpath][:ro]")

    def to_kube(self) -> dict:
        name, sub_path, read_only = self.parse_store()
        out: dict = {"name": name, "mountPath": self.mount_path}
        if read_only:
            out["readOnly"] = True
        if sub_path:
            out["subPath"] = sub_path
        if self.propagation:
            out["mountPropagation"] = self.propagation
        return out

    @classmethod
    def from_kube(cls, mount: dict) -> "VolumeMount":
        propagation = mount.get("mountPropagation") or None
        if propagation is not None and propagation not in MOUNT_PROPAGATIONS:
            raise InvalidValueError(propagation, "unsupported mount propagation")
        segments = [mount.get("name", "")]
        if ":" in segments[0]:
            raise InvalidValueError(segments[0], "volume name containing ':' has no shorthand")
        if ":" in (mount.get("subPath") or ""):
            raise InvalidValueError(mount["subPath"], "subpath containing ':' has no shorthand")
        if mount.get("subPath"):
            segments.append(mount["subPath"])
        if mount.get("readOnly"):
            segments.append(READ_ONLY_MARKER)
        elif mount.get("subPath") == READ_ONLY_MARKER:
            raise InvalidValueError(mount["subPath"], "subpath 'ro' cannot be written without the read-only flag")
        return cls(mount_path=mount.get("mountPath", ""), propagation=propagation,
                   store=":".join(segments))


def convert_volumes(kube_volumes: list[dict]) -> dict:
    """kube pod volumes → koki ``volumes`` map (name → wire form)."""
    result = {}
    for kube_volume in kube_volumes:
        try:
            name, volume = convert_volume(kube_volume)
            result[name] = volume.to_wire()
        except KokiError as exc:
            exc.contextualize(f"volume ({kube_volume.get('name', '')})")
            raise
    return result


def revert_volumes(volumes: dict) -> list[dict]:
    """koki ``volumes`` map → kube pod volumes, sorted by name."""
    result = []
    for name in sorted(volumes):
        try:
            result.append(revert_volume(name, Volume.from_wire(volumes[name])))
        except KokiError as exc:
            exc.contextualize(f"volume ({name})")
            raise
    return result
