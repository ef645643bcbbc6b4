"""Object metadata copy — version, cluster, name, namespace, labels, annotations."""

from koki.pacts.helpers import expect_dict
from koki.core.constants import METADATA_FIELDS

METADATA_KEYS = ("version",) + tuple(koki for koki, _ in METADATA_FIELDS)


def revert_metadata(obj: dict, kind: str, ctx) -> dict:
    """Start a kube document (apiVersion, kind, metadata) from koki fields."""
    meta = {}
    for koki_key, kube_key in METADATA_FIELDS:
        value = obj.get(koki_key)
        if value:
            if koki_key in ("labels", "annotations"):
                value = dict(expect_dict(value, koki_key))
            meta[kube_key] = value
    doc = {"apiVersion": obj.get("version") or ctx.api_version, "kind": kind}
    if meta:
        doc["metadata"] = meta
    return doc


def convert_metadata(doc: dict, ctx) -> dict:
    """koki fields from a kube document's apiVersion and metadata."""
    out = {}
    version = doc.get("apiVersion")
    if version and version != ctx.api_version:
        out["version"] = version
    meta = doc.get("metadata") or {}
    for koki_key, kube_key in METADATA_FIELDS:
        if meta.get(kube_key):
            out[koki_key] = meta[kube_key]
    return out
