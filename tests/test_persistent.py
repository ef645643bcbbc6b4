"""PersistentVolume sources, namespaced secrets and the converter."""

import pytest
import yaml

from koki.pacts.errors import InvalidValueError
from koki.pacts.types import ConvertContext
from koki.core.persistent import (
    PersistentVolumeConverter, PersistentVolumeSource, SecretReference,
    parse_access_modes, unparse_access_modes,
)

PV_KOKI = """
name: pv0003
storage: 5Gi
modes: rw_once
claim: default:my-claim
reclaim: recycle
storage_class: slow
mount_opts: hard,nfsvers=4.1
vol_type: nfs
vol_id: 172.17.0.2:/tmp
"""

PV_KUBE = """
apiVersion: v1
kind: PersistentVolume
metadata:
  name: pv0003
spec:
  capacity:
    storage: 5Gi
  nfs:
    server: 172.17.0.2
    path: /tmp
  accessModes:
  - ReadWriteOnce
  claimRef:
    kind: PersistentVolumeClaim
    name: my-claim
    namespace: default
  persistentVolumeReclaimPolicy: Recycle
  storageClassName: slow
  mountOptions:
  - hard
  - nfsvers=4.1
"""


def test_secret_reference():
    assert SecretReference.from_string("name") == SecretReference(name="name")
    ref = SecretReference.from_string("ns:name")
    assert ref == SecretReference(name="name", namespace="ns")
    assert ref.to_kube() == {"name": "name", "namespace": "ns"}
    assert ref.to_string() == "ns:name"


@pytest.mark.parametrize("s", ["a:b:c", ":x", "x:", ""])
def test_malformed_secret_reference(s):
    with pytest.raises(InvalidValueError):
        SecretReference.from_string(s)


def test_pv_to_kube():
    ctx = ConvertContext()
    assert PersistentVolumeConverter().to_kube(yaml.safe_load(PV_KOKI), ctx) == yaml.safe_load(PV_KUBE)
    assert ctx.warnings == []


def test_pv_to_koki():
    ctx = ConvertContext()
    assert PersistentVolumeConverter().to_koki(yaml.safe_load(PV_KUBE), ctx) == yaml.safe_load(PV_KOKI)
    assert ctx.warnings == []


def test_pv_status_is_dropped():
    doc = yaml.safe_load(PV_KUBE)
    doc["status"] = {"phase": "Bound"}
    ctx = ConvertContext()
    PersistentVolumeConverter().to_koki(doc, ctx)
    assert ctx.warnings == ["persistent_volume 'pv0003': status dropped"]


@pytest.mark.parametrize("wire, kube", [
    ({"vol_type": "iscsi", "target_portal": "10.0.0.1:3260", "iqn": "iqn.x", "lun": 1,
      "secret": "kube-system:chap"},
     {"iscsi": {"targetPortal": "10.0.0.1:3260", "iqn": "iqn.x", "lun": 1,
                "secretRef": {"name": "chap", "namespace": "kube-system"}}}),
    ({"vol_type": "cephfs", "monitors": ["m"], "secret": "ref:ns:ceph"},
     {"cephfs": {"monitors": ["m"], "secretRef": {"name": "ceph", "namespace": "ns"}}}),
    ({"vol_type": "azure_file", "vol_id": "share", "secret": "ns:azure-secret", "ro": True},
     {"azureFile": {"shareName": "share", "readOnly": True,
                    "secretName": "azure-secret", "secretNamespace": "ns"}}),
    ({"vol_type": "flex", "vol_id": "example/lvm", "secret": "lvm-secret"},
     {"flexVolume": {"driver": "example/lvm", "secretRef": {"name": "lvm-secret"}}}),
    ({"vol_type": "local", "vol_id": "/mnt/disks/ssd1"}, {"local": {"path": "/mnt/disks/ssd1"}}),
    ({"vol_type": "csi", "vol_id": "csi.example.com", "handle": "h-1", "fs": "ext4"},
     {"csi": {"driver": "csi.example.com", "volumeHandle": "h-1", "fsType": "ext4"}}),
    ({"vol_type": "gce_pd", "vol_id": "disk"}, {"gcePersistentDisk": {"pdName": "disk"}}),
])
def test_pv_sources(wire, kube):
    assert PersistentVolumeSource.from_wire(wire).to_kube() == kube
    assert PersistentVolumeSource.from_kube(kube).to_wire() == wire


@pytest.mark.parametrize("wire, message", [
    ({"vol_type": "empty_dir"}, "unsupported volume type"),
    ({"vol_type": "config_map", "vol_id": "c"}, "unsupported volume type"),
    ({"vol_id": "x"}, "needs a 'vol_type' string"),
    ({"vol_type": "azure_file", "vol_id": "share"}, "missing required field 'secret'"),
    ({"vol_type": "csi", "vol_id": "driver"}, "missing required field 'handle'"),
    ({"vol_type": "iscsi", "target_portal": "p", "iqn": "q", "lun": 0, "secret": "a:b:c"},
     "\\[namespace:\\]name"),
])
def test_malformed_pv_sources(wire, message):
    with pytest.raises(InvalidValueError, match=message):
        PersistentVolumeSource.from_wire(wire)


def test_pv_kube_source_count():
    with pytest.raises(InvalidValueError, match="empty persistent volume source"):
        PersistentVolumeSource.from_kube({"capacity": {"storage": "1Gi"}})
    with pytest.raises(InvalidValueError, match="more than one source"):
        PersistentVolumeSource.from_kube({"nfs": {"server": "s", "path": "/"}, "local": {"path": "/"}})


def test_pv_to_koki_contextualizes_source_errors():
    with pytest.raises(InvalidValueError) as exc:
        PersistentVolumeConverter().to_koki({"kind": "PersistentVolume", "spec": {}}, ConvertContext())
    assert str(exc.value).startswith("source: ")


def test_access_modes():
    assert parse_access_modes("ro,rw") == ["ReadOnlyMany", "ReadWriteMany"]
    assert unparse_access_modes(["ReadWriteOnce", "ReadOnlyMany"]) == "rw_once,ro"
    with pytest.raises(InvalidValueError):
        parse_access_modes("bogus")
    with pytest.raises(InvalidValueError):
        unparse_access_modes(["ReadWriteOncePod"])


def test_reclaim_policy():
    obj = yaml.safe_load(PV_KOKI)
    obj["reclaim"] = "archive"
    with pytest.raises(InvalidValueError, match="reclaim policy"):
        PersistentVolumeConverter().to_kube(obj, ConvertContext())
