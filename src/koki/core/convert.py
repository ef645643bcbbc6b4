"""Conversion orchestration — converter registry, to_kube(), to_koki(), batches."""

from koki.pacts.errors import KokiError, TypeMismatchError, UnsupportedKindError
from koki.pacts.types import ConvertContext, Converter
from koki.core.persistent import PersistentVolumeConverter
from koki.core.pod import PodConverter
from koki.core.services import ServiceConverter

TO_KUBE = "to_kube"
TO_KOKI = "to_koki"

_CONVERTERS: list[Converter] = []

# kube kind → converter, koki wrapper key → converter
_BY_KIND: dict[str, Converter] = {}
_BY_KOKI_KEY: dict[str, Converter] = {}


def register(converter: Converter) -> None:
    """Register a converter instance. Each kind and koki key can be claimed once."""
    for table, key in ((_BY_KIND, converter.kind), (_BY_KOKI_KEY, converter.koki_key)):
        if key in table:
            raise ValueError(f"'{key}' claimed by both {type(table[key]).__name__} "
                             f"and {type(converter).__name__}")
    _CONVERTERS.append(converter)
    _BY_KIND[converter.kind] = converter
    _BY_KOKI_KEY[converter.koki_key] = converter


for _cls in (PodConverter, ServiceConverter, PersistentVolumeConverter):
    register(_cls())


def supported_kinds() -> list[tuple[str, str]]:
    """(kube kind, koki wrapper key) of every registered converter, in registration order."""
    return [(c.kind, c.koki_key) for c in _CONVERTERS]


def _unwrap(doc) -> tuple[Converter, dict]:
    """Split a koki document ``{"pod": {...}}`` into its converter and body."""
    if not isinstance(doc, dict) or len(doc) != 1:
        raise TypeMismatchError(doc, "expected a koki document with a single wrapper key")
    (key, obj), = doc.items()
    converter = _BY_KOKI_KEY.get(key)
    if converter is None:
        raise UnsupportedKindError(key)
    return converter, obj


def _kube_converter(doc) -> Converter:
    if not isinstance(doc, dict):
        raise TypeMismatchError(doc, "expected a kube document")
    kind = doc.get("kind") or ""
    converter = _BY_KIND.get(kind)
    if converter is None:
        raise UnsupportedKindError(kind)
    return converter


def _convert_to_kube(doc, ctx: ConvertContext) -> dict:
    converter, obj = _unwrap(doc)
    name = obj.get("name", "") if isinstance(obj, dict) else ""
    try:
        return converter.to_kube(obj, ctx)
    except KokiError as exc:
        exc.contextualize(f"{converter.name} ({name})")
        raise


def _convert_to_koki(doc, ctx: ConvertContext) -> dict:
    converter = _kube_converter(doc)
    name = (doc.get("metadata") or {}).get("name", "")
    try:
        return {converter.koki_key: converter.to_koki(doc, ctx)}
    except KokiError as exc:
        exc.contextualize(f"{converter.name} ({name})")
        raise


def to_kube(doc: dict, config: dict | None = None) -> tuple[dict, list[str]]:
    """Convert one koki document to kube. Returns (kube_doc, warnings)."""
    ctx = ConvertContext(config=config or {})
    return _convert_to_kube(doc, ctx), ctx.warnings


def to_koki(doc: dict, config: dict | None = None) -> tuple[dict, list[str]]:
    """Convert one kube document to koki. Returns (koki_doc, warnings)."""
    ctx = ConvertContext(config=config or {})
    return _convert_to_koki(doc, ctx), ctx.warnings


def _describe(doc, direction: str) -> tuple[str, str]:
    """(kube kind, name) of a document, for exclusion checks and warnings."""
    if direction == TO_KUBE:
        converter, obj = _unwrap(doc)
        return converter.kind, obj.get("name", "") if isinstance(obj, dict) else ""
    converter = _kube_converter(doc)
    return converter.kind, (doc.get("metadata") or {}).get("name", "")


def convert_documents(docs: list, direction: str,
                      config: dict | None = None) -> tuple[list[dict], list[str]]:
    """Convert a batch of documents in one direction. Returns (docs, warnings).

    Kinds listed in ``config["exclude"]`` are skipped with a warning. The
    first failing document aborts the batch.
    """
    if direction == TO_KUBE:
        convert = _convert_to_kube
    elif direction == TO_KOKI:
        convert = _convert_to_koki
    else:
        raise ValueError(f"unknown direction '{direction}' (expected {TO_KUBE} or {TO_KOKI})")

    ctx = ConvertContext(config=config or {})
    exclude = set(ctx.config.get("exclude") or [])
    results = []
    for doc in docs:
        kind, name = _describe(doc, direction)
        if kind in exclude:
            ctx.warnings.append(f"{kind} '{name}' excluded by config — skipped")
            continue
        results.append(convert(doc, ctx))
    return results, ctx.warnings
