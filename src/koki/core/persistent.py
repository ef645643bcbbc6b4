"""PersistentVolume conversion — PV sources, namespaced secrets, access modes."""

from dataclasses import dataclass
from typing import ClassVar

from koki.pacts.errors import InvalidValueError, KokiError
from koki.pacts.helpers import expect_dict, expect_str
from koki.pacts.types import Converter, ConvertContext
from koki.core.constants import ACCESS_MODES, RECLAIM_POLICIES
from koki.core.metadata import convert_metadata, revert_metadata, METADATA_KEYS
from koki.core.volumes import (
    VolumeSource, _extra, _sel, decode_source, split_vol_id,
    AwsEBSVolume, AzureDiskVolume, CephFSVolume, CinderVolume,
    FibreChannelVolume, FlexVolume, FlockerVolume, GcePDVolume,
    GlusterfsVolume, HostPathVolume, ISCSIVolume, NFSVolume, PhotonPDVolume,
    PortworxVolume, QuobyteVolume, RBDVolume, ScaleIOVolume, StorageOSVolume,
    VsphereVolume,
)


@dataclass
class SecretReference:
    """A namespaced secret reference, written ``namespace:name`` or ``name``."""
    name: str
    namespace: str = ""

    @classmethod
    def from_string(cls, s: str) -> "SecretReference":
        segments = s.split(":")
        if len(segments) == 1 and segments[0]:
            return cls(name=segments[0])
        if len(segments) == 2 and all(segments):
            return cls(name=segments[1], namespace=segments[0])
        raise InvalidValueError(s, "expected secret reference as [namespace:]name")

    def to_string(self) -> str:
        if self.namespace:
            return f"{self.namespace}:{self.name}"
        return self.name

    @classmethod
    def from_kube(cls, ref: dict) -> "SecretReference":
        return cls(name=ref.get("name", ""), namespace=ref.get("namespace", ""))

    def to_kube(self) -> dict:
        out = {"name": self.name}
        if self.namespace:
            out["namespace"] = self.namespace
        return out


class SecretRef:
    """Reference codec for ``{name, namespace}`` kube secret references."""

    @staticmethod
    def check(value: str) -> None:
        SecretReference.from_string(value)

    @staticmethod
    def to_kube(value: str) -> dict:
        return SecretReference.from_string(value).to_kube()

    @staticmethod
    def from_kube(ref: dict) -> str | None:
        if not ref.get("name"):
            return None
        return SecretReference.from_kube(ref).to_string()


SECRET_REF = SecretRef()


@dataclass
class ISCSIPersistentVolume(ISCSIVolume):
    secret: str | None = _extra("secret", "secretRef", ref=SECRET_REF)


@dataclass
class RBDPersistentVolume(RBDVolume):
    secret: str | None = _extra("secret", "secretRef", ref=SECRET_REF)


@dataclass
class CephFSPersistentVolume(CephFSVolume):
    secret_ref: ClassVar = SECRET_REF


@dataclass
class ScaleIOPersistentVolume(ScaleIOVolume):
    secret: str | None = _extra("secret", "secretRef", required=True, ref=SECRET_REF)


@dataclass
class StorageOSPersistentVolume(StorageOSVolume):
    secret: str | None = _extra("secret", "secretRef", ref=SECRET_REF)


@dataclass
class FlexPersistentVolume(FlexVolume):
    secret: str | None = _extra("secret", "secretRef", ref=SECRET_REF)


@dataclass
class AzureFilePersistentVolume(VolumeSource):
    vol_type: ClassVar[str] = "azure_file"
    kube_key: ClassVar[str] = "azureFile"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("share",)

    share_name: str | None = _sel(0, "shareName")
    secret: str | None = _extra("secret", required=True, ref=SECRET_REF)
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)

    @classmethod
    def from_kube(cls, src: dict) -> "AzureFilePersistentVolume":
        volume = super().from_kube(src)
        if src.get("secretName"):
            volume.secret = SecretReference(name=src["secretName"],
                                            namespace=src.get("secretNamespace") or "").to_string()
        return volume

    def to_kube(self) -> dict:
        out = super().to_kube()
        if self.secret:
            ref = SecretReference.from_string(self.secret)
            out["secretName"] = ref.name
            if ref.namespace:
                out["secretNamespace"] = ref.namespace
        return out


@dataclass
class LocalVolume(VolumeSource):
    vol_type: ClassVar[str] = "local"
    kube_key: ClassVar[str] = "local"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("path",)

    path: str | None = _sel(0, "path")


@dataclass
class CSIVolume(VolumeSource):
    vol_type: ClassVar[str] = "csi"
    kube_key: ClassVar[str] = "csi"
    arity: ClassVar[tuple[int, int]] = (1, 1)
    hints: ClassVar[tuple[str, ...]] = ("driver",)

    driver: str | None = _sel(0, "driver")
    handle: str | None = _extra("handle", "volumeHandle", required=True)
    fs: str | None = _extra("fs", "fsType")
    read_only: bool | None = _extra("ro", "readOnly", kind=bool)


# vol_type → PV source variant
PERSISTENT_VOLUME_TYPES: dict[str, type[VolumeSource]] = {
    cls.vol_type: cls for cls in (
        GcePDVolume, AwsEBSVolume, HostPathVolume, GlusterfsVolume,
        NFSVolume, CinderVolume, FibreChannelVolume, FlockerVolume,
        VsphereVolume, QuobyteVolume, AzureDiskVolume, PhotonPDVolume,
        PortworxVolume,
        ISCSIPersistentVolume, RBDPersistentVolume, CephFSPersistentVolume,
        AzureFilePersistentVolume, ScaleIOPersistentVolume,
        StorageOSPersistentVolume, FlexPersistentVolume,
        LocalVolume, CSIVolume,
    )
}

_PV_KUBE_KEYS = {cls.kube_key: cls for cls in PERSISTENT_VOLUME_TYPES.values()}


def decode_persistent_volume_source(obj: dict | None, vol_type: str,
                                    selector: list[str]) -> VolumeSource:
    """Decode a PV source from its type, selector and extra fields."""
    return decode_source(PERSISTENT_VOLUME_TYPES, obj, vol_type, selector)


@dataclass
class PersistentVolumeSource:
    """The storage backing a PersistentVolume: exactly one source variant.

    No flat-string form: ``vol_type``, ``vol_id`` and the extra fields sit
    inline in the persistent volume map.
    """
    source: VolumeSource | None = None

    @classmethod
    def from_wire(cls, data) -> "PersistentVolumeSource":
        obj = dict(expect_dict(data, "persistent volume source"))
        vol_type = obj.pop("vol_type", None)
        if not isinstance(vol_type, str) or not vol_type:
            raise InvalidValueError(data, "persistent volume needs a 'vol_type' string")
        selector = split_vol_id(obj.pop("vol_id", None))
        return cls(decode_persistent_volume_source(obj, vol_type, selector))

    def to_wire(self) -> dict:
        if self.source is None:
            raise InvalidValueError(self, "empty persistent volume source")
        marshalled = self.source.marshal()
        out: dict = {"vol_type": marshalled.type}
        if marshalled.selector:
            out["vol_id"] = ":".join(marshalled.selector)
        out.update(marshalled.extra)
        return out

    @classmethod
    def from_kube(cls, spec: dict) -> "PersistentVolumeSource":
        present = [key for key in spec if key in _PV_KUBE_KEYS]
        if not present:
            raise InvalidValueError(sorted(spec), "empty persistent volume source")
        if len(present) > 1:
            raise InvalidValueError(", ".join(present), "persistent volume sets more than one source")
        key = present[0]
        return cls(_PV_KUBE_KEYS[key].from_kube(spec[key] or {}))

    def to_kube(self) -> dict:
        if self.source is None:
            raise InvalidValueError(self, "empty persistent volume source")
        return {self.source.kube_key: self.source.to_kube()}


def parse_access_modes(s: str) -> list[str]:
    """``ro,rw_once`` → kube access modes."""
    modes = []
    for mode in expect_str(s, "access modes").split(","):
        if mode not in ACCESS_MODES:
            raise InvalidValueError(s, f"expected access modes from {', '.join(ACCESS_MODES)}")
        modes.append(ACCESS_MODES[mode])
    return modes


def unparse_access_modes(modes: list[str]) -> str:
    reverse = {v: k for k, v in ACCESS_MODES.items()}
    result = []
    for mode in modes:
        if mode not in reverse:
            raise InvalidValueError(mode, "unsupported access mode")
        result.append(reverse[mode])
    return ",".join(result)


def _revert_reclaim(policy: str) -> str:
    if policy not in RECLAIM_POLICIES:
        raise InvalidValueError(policy, f"expected reclaim policy from {', '.join(RECLAIM_POLICIES)}")
    return RECLAIM_POLICIES[policy]


def _convert_reclaim(policy: str) -> str:
    for koki_policy, kube_policy in RECLAIM_POLICIES.items():
        if kube_policy == policy:
            return koki_policy
    raise InvalidValueError(policy, "unsupported reclaim policy")


_PV_KEYS = METADATA_KEYS + (
    "storage", "modes", "claim", "reclaim", "storage_class", "mount_opts",
)


class PersistentVolumeConverter(Converter):
    """PersistentVolume ↔ ``persistent_volume``."""
    name = "persistent_volume"
    kind = "PersistentVolume"
    koki_key = "persistent_volume"

    def to_kube(self, obj: dict, ctx: ConvertContext) -> dict:
        obj = expect_dict(obj, "persistent_volume")
        doc = revert_metadata(obj, self.kind, ctx)
        spec: dict = {}
        if obj.get("storage") is not None:
            spec["capacity"] = {"storage": str(obj["storage"])}
        source = PersistentVolumeSource.from_wire(
            {k: v for k, v in obj.items() if k not in _PV_KEYS})
        spec.update(source.to_kube())
        if obj.get("modes"):
            spec["accessModes"] = parse_access_modes(obj["modes"])
        if obj.get("claim"):
            ref = SecretReference.from_string(expect_str(obj["claim"], "claim"))
            spec["claimRef"] = {"kind": "PersistentVolumeClaim", **ref.to_kube()}
        if obj.get("reclaim"):
            spec["persistentVolumeReclaimPolicy"] = _revert_reclaim(obj["reclaim"])
        if obj.get("storage_class"):
            spec["storageClassName"] = obj["storage_class"]
        if obj.get("mount_opts"):
            spec["mountOptions"] = expect_str(obj["mount_opts"], "mount_opts").split(",")
        doc["spec"] = spec
        return doc

    def to_koki(self, obj: dict, ctx: ConvertContext) -> dict:
        out = convert_metadata(obj, ctx)
        spec = obj.get("spec") or {}
        storage = (spec.get("capacity") or {}).get("storage")
        if storage is not None:
            out["storage"] = str(storage)
        try:
            out.update(PersistentVolumeSource.from_kube(spec).to_wire())
        except KokiError as exc:
            exc.contextualize("source")
            raise
        if spec.get("accessModes"):
            out["modes"] = unparse_access_modes(spec["accessModes"])
        claim = spec.get("claimRef")
        if claim:
            out["claim"] = SecretReference.from_kube(claim).to_string()
        if spec.get("persistentVolumeReclaimPolicy"):
            out["reclaim"] = _convert_reclaim(spec["persistentVolumeReclaimPolicy"])
        if spec.get("storageClassName"):
            out["storage_class"] = spec["storageClassName"]
        if spec.get("mountOptions"):
            out["mount_opts"] = ",".join(spec["mountOptions"])
        if obj.get("status"):
            ctx.warnings.append(f"persistent_volume '{out.get('name', '')}': status dropped")
        return out

