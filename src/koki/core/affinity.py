"""Affinity conversion — node, pod and pod-anti affinity shorthand."""

from dataclasses import dataclass, field

from koki.pacts.errors import InvalidValueError, KokiError
from koki.pacts.helpers import expect_dict, expect_list, parse_int
from koki.core.constants import SOFT_AFFINITY_MARKER, DEFAULT_SOFT_WEIGHT
from koki.core.expressions import (
    parse_label_selector, unparse_label_selector,
    parse_node_selector_term, unparse_node_selector_term,
    match_labels_to_exprs,
)

_REQUIRED = "requiredDuringSchedulingIgnoredDuringExecution"
_PREFERRED = "preferredDuringSchedulingIgnoredDuringExecution"

_AFFINITY_KEYS = ("node", "pod", "anti_pod", "topology", "namespaces")


@dataclass
class Affinity:
    """One koki affinity entry.

    Exactly one of ``node``, ``pod`` or ``anti_pod`` holds a
    ``<selector>[:soft[:<weight>]]`` string. ``topology`` and ``namespaces``
    only apply to pod and anti-pod entries.
    """
    node: str = ""
    pod: str = ""
    anti_pod: str = ""
    topology: str = ""
    namespaces: list[str] = field(default_factory=list)

    def kind(self) -> str:
        """Which of node / pod / anti_pod this entry is."""
        set_fields = [name for name in ("node", "pod", "anti_pod") if getattr(self, name)]
        if len(set_fields) != 1:
            raise InvalidValueError(self.to_wire(), "unrecognized affinity")
        return set_fields[0]

    @property
    def expr(self) -> str:
        return getattr(self, self.kind())

    @classmethod
    def from_wire(cls, data) -> "Affinity":
        data = expect_dict(data, "affinity")
        unknown = sorted(set(data) - set(_AFFINITY_KEYS))
        if unknown:
            raise InvalidValueError(", ".join(unknown), "unknown affinity fields")
        affinity = cls(
            node=data.get("node") or "",
            pod=data.get("pod") or "",
            anti_pod=data.get("anti_pod") or "",
            topology=data.get("topology") or "",
            namespaces=list(expect_list(data.get("namespaces") or [], "affinity namespaces")),
        )
        affinity.kind()
        return affinity

    def to_wire(self) -> dict:
        out: dict = {}
        for name in _AFFINITY_KEYS:
            value = getattr(self, name)
            if value:
                out[name] = value
        return out


def _split_soft(expr: str) -> tuple[str, int | None]:
    """Split ``sel[:soft[:weight]]`` into (selector, weight). Weight None means hard."""
    segments = expr.split(":")
    if len(segments) > 3:
        raise InvalidValueError(expr, "expected selector[:soft[:weight]]")
    if len(segments) == 1:
        return segments[0], None
    if segments[1] != SOFT_AFFINITY_MARKER:
        raise InvalidValueError(expr, f"expected '{SOFT_AFFINITY_MARKER}' after the selector")
    if len(segments) == 2:
        return segments[0], DEFAULT_SOFT_WEIGHT
    return segments[0], parse_int(segments[2], "expected an integer affinity weight", bits=32)


def _revert_node(exprs: list[str]) -> dict | None:
    hard: list[dict] = []
    soft: list[dict] = []
    for expr in exprs:
        selector, weight = _split_soft(expr)
        term = parse_node_selector_term(selector)
        if weight is None:
            hard.append(term)
        else:
            soft.append({"weight": weight, "preference": term})
    out: dict = {}
    if hard:
        out[_REQUIRED] = {"nodeSelectorTerms": hard}
    if soft:
        out[_PREFERRED] = soft
    return out or None


def _revert_pod(affinities: list[Affinity]) -> dict | None:
    hard: list[dict] = []
    soft: list[dict] = []
    for affinity in affinities:
        selector, weight = _split_soft(affinity.expr)
        term: dict = {"labelSelector": parse_label_selector(selector)}
        if affinity.topology:
            term["topologyKey"] = affinity.topology
        if affinity.namespaces:
            term["namespaces"] = list(affinity.namespaces)
        if weight is None:
            hard.append(term)
        else:
            soft.append({"weight": weight, "podAffinityTerm": term})
    out: dict = {}
    if hard:
        out[_REQUIRED] = hard
    if soft:
        out[_PREFERRED] = soft
    return out or None


def revert_affinity(affinities: list[Affinity]) -> dict | None:
    """Build a kube Affinity dict from koki affinity entries (None when empty)."""
    by_kind: dict[str, list[Affinity]] = {"node": [], "pod": [], "anti_pod": []}
    for i, affinity in enumerate(affinities):
        try:
            by_kind[affinity.kind()].append(affinity)
        except KokiError as exc:
            exc.contextualize(f"affinity[{i}]")
            raise
    result = {
        "nodeAffinity": _revert_node([a.node for a in by_kind["node"]]),
        "podAffinity": _revert_pod(by_kind["pod"]),
        "podAntiAffinity": _revert_pod(by_kind["anti_pod"]),
    }
    result = {k: v for k, v in result.items() if v}
    return result or None


def _soft_suffix(expr: str, weight: int) -> str:
    """Append ``:soft`` and, for a non-zero weight, ``:<weight>``."""
    expr = f"{expr}:{SOFT_AFFINITY_MARKER}"
    # 0 means "unspecified"
    if weight:
        expr = f"{expr}:{weight}"
    return expr


def _node_expr(term: dict | None) -> str:
    expr = unparse_node_selector_term(term)
    if not expr:
        raise InvalidValueError(term, "empty node selector term has no shorthand")
    return expr


def _convert_node(node_affinity: dict | None) -> list[Affinity]:
    if not node_affinity:
        return []
    result = []
    for term in (node_affinity.get(_REQUIRED) or {}).get("nodeSelectorTerms") or []:
        result.append(Affinity(node=_node_expr(term)))
    for pref in node_affinity.get(_PREFERRED) or []:
        expr = _node_expr(pref.get("preference"))
        result.append(Affinity(node=_soft_suffix(expr, pref.get("weight", 0))))
    return result


def _pod_entry(attr: str, expr: str, term: dict) -> Affinity:
    affinity = Affinity(topology=term.get("topologyKey") or "",
                        namespaces=list(term.get("namespaces") or []))
    setattr(affinity, attr, expr)
    return affinity


def _pod_expr(term: dict) -> str:
    expr = unparse_label_selector(term.get("labelSelector"))
    if not expr:
        raise InvalidValueError(term, "pod affinity term without a label selector has no shorthand")
    return expr


def _convert_pod(pod_affinity: dict | None, attr: str) -> list[Affinity]:
    if not pod_affinity:
        return []
    result = []
    for term in pod_affinity.get(_REQUIRED) or []:
        result.append(_pod_entry(attr, _pod_expr(term), term))
    for weighted in pod_affinity.get(_PREFERRED) or []:
        term = weighted.get("podAffinityTerm") or {}
        result.append(_pod_entry(attr, _soft_suffix(_pod_expr(term), weighted.get("weight", 0)), term))
    return result


def convert_affinity(pod_spec: dict) -> list[Affinity]:
    """Collect koki affinity entries from a kube pod spec.

    ``nodeSelector`` is folded into a leading node entry; then node, pod and
    anti-pod terms follow, hard before soft within each class.
    """
    result = []
    exprs = match_labels_to_exprs(pod_spec.get("nodeSelector"))
    if exprs:
        result.append(Affinity(node="&".join(exprs)))
    affinity = pod_spec.get("affinity") or {}
    result.extend(_convert_node(affinity.get("nodeAffinity")))
    result.extend(_convert_pod(affinity.get("podAffinity"), "pod"))
    result.extend(_convert_pod(affinity.get("podAntiAffinity"), "anti_pod"))
    return result
