"""Selector expressions — ``key=v1,v2&!other&size<10`` ↔ kube requirements."""

from dataclasses import dataclass, field

from koki.pacts.errors import InvalidValueError
from koki.core.constants import (
    LABEL_SELECTOR_OPS, NODE_SELECTOR_OPS, LABEL_OPERATORS, NODE_OPERATORS,
    OP_EXISTS, OP_NOT_EXISTS,
)


@dataclass
class Expr:
    """One selector segment: key, shorthand operator, comma-split values."""
    key: str
    op: str
    values: list[str] = field(default_factory=list)


def parse_values(s: str) -> list[str]:
    """Comma-split the right-hand side of an expression (no escaping)."""
    return s.split(",")


def parse_op(segment: str, op: str) -> Expr | None:
    """Split segment on op. None if op does not occur."""
    if op not in segment:
        return None
    parts = segment.split(op)
    if len(parts) != 2:
        raise InvalidValueError(segment, f"unrecognized expression with operator '{op}'")
    return Expr(key=parts[0], op=op, values=parse_values(parts[1]))


def parse_expr(segment: str, ops) -> Expr | None:
    """Parse a segment using the first operator of *ops* that occurs in it.

    Operators are tried in order, so ``!=`` must come before ``=``.
    Returns None when no operator matches (bare existence check).
    """
    for op in ops:
        expr = parse_op(segment, op)
        if expr is not None:
            return expr
    return None


def _parse_segment(segment: str, ops) -> Expr:
    """Parse a selector segment, turning bare ``key`` / ``!key`` into existence checks."""
    if not segment:
        raise InvalidValueError(segment, "empty selector expression")
    expr = parse_expr(segment, ops)
    if expr is not None:
        return expr
    if segment.startswith("!"):
        return Expr(key=segment[1:], op=OP_NOT_EXISTS)
    return Expr(key=segment, op=OP_EXISTS)


def _requirement(expr: Expr, operators: dict) -> dict:
    """Build a kube requirement dict from a parsed expression."""
    if expr.op == OP_EXISTS:
        return {"key": expr.key, "operator": "Exists"}
    if expr.op == OP_NOT_EXISTS:
        return {"key": expr.key, "operator": "DoesNotExist"}
    operator = operators.get(expr.op)
    if operator is None:
        raise AssertionError(f"unreachable: operator {expr.op!r} outside {sorted(operators)}")
    return {"key": expr.key, "operator": operator, "values": expr.values}


def parse_label_selector(s: str) -> dict | None:
    """Parse ``a=b&c!=d,e&!f`` into a kube LabelSelector dict.

    A single-value ``=`` collapses into matchLabels; everything else becomes
    a matchExpressions entry. Empty input means no selector.
    """
    if not s:
        return None
    labels: dict[str, str] = {}
    reqs: list[dict] = []
    for segment in s.split("&"):
        expr = _parse_segment(segment, LABEL_SELECTOR_OPS)
        if expr.op == "=" and len(expr.values) == 1:
            labels[expr.key] = expr.values[0]
            continue
        reqs.append(_requirement(expr, LABEL_OPERATORS))
    selector: dict = {}
    if labels:
        selector["matchLabels"] = labels
    if reqs:
        selector["matchExpressions"] = reqs
    return selector


def _unparse_requirement(req: dict, operators: dict) -> str:
    """Render one kube requirement back to shorthand."""
    key = req.get("key", "")
    operator = req.get("operator", "")
    if operator == "Exists":
        return key
    if operator == "DoesNotExist":
        return f"!{key}"
    reverse = {v: k for k, v in operators.items()}
    if operator not in reverse:
        raise InvalidValueError(operator, "unsupported selector operator")
    return f"{key}{reverse[operator]}{','.join(req.get('values') or [])}"


def match_labels_to_exprs(labels: dict | None) -> list[str]:
    """Render a plain label map as sorted ``k=v`` expressions."""
    return [f"{k}={v}" for k, v in sorted((labels or {}).items())]


def unparse_label_selector(selector: dict | None) -> str:
    """Render a kube LabelSelector dict as shorthand (labels first, sorted)."""
    if not selector:
        return ""
    exprs = match_labels_to_exprs(selector.get("matchLabels"))
    for req in selector.get("matchExpressions") or []:
        exprs.append(_unparse_requirement(req, LABEL_OPERATORS))
    return "&".join(exprs)


def parse_node_selector_term(s: str) -> dict:
    """Parse ``a=b&c>3&!d`` into a kube NodeSelectorTerm dict (no collapsing)."""
    if not s:
        raise InvalidValueError(s, "empty node selector")
    reqs = [_requirement(_parse_segment(segment, NODE_SELECTOR_OPS), NODE_OPERATORS)
            for segment in s.split("&")]
    return {"matchExpressions": reqs}


def unparse_node_selector_term(term: dict | None) -> str:
    """Render a kube NodeSelectorTerm dict as shorthand."""
    if not term:
        return ""
    if term.get("matchFields"):
        raise InvalidValueError(term["matchFields"], "node selector matchFields have no shorthand")
    return "&".join(_unparse_requirement(req, NODE_OPERATORS)
                    for req in term.get("matchExpressions") or [])
