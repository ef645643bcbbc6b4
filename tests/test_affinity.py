"""Affinity shorthand — node, pod and pod-anti terms, hard and soft."""

import pytest

from koki.pacts.errors import InvalidValueError
from koki.core.affinity import Affinity, convert_affinity, revert_affinity

REQUIRED = "requiredDuringSchedulingIgnoredDuringExecution"
PREFERRED = "preferredDuringSchedulingIgnoredDuringExecution"

na0 = Affinity(node="existentKey")
na1 = Affinity(node="!nonexistentKey")
na2 = Affinity(node="key1=value1,value2")
na3 = Affinity(node="key2!=value2&!key3&key4<10")
na4 = Affinity(node="key5=value5,value6:soft")
na5 = Affinity(node="value6weighted:soft:100")

pa0 = Affinity(pod="existentKeyPa")
pa1 = Affinity(pod="!nonexistentKeyPa", topology="topoKey")
pa2 = Affinity(pod="key1pa=value1,value2", namespaces=["ns1", "ns2", "ns3"])
pa3 = Affinity(pod="key1pa=value1&key2pa!=value2&!key3pa")
pa4 = Affinity(pod="key5pa=value5,value6:soft:50")

paa0 = Affinity(anti_pod="existentKeyPaa")
paa1 = Affinity(anti_pod="!nonexistentKeyPaaSoft:soft")
paa2 = Affinity(anti_pod="!nonexistentKeyPaaSoftWeighted:soft:10")


@pytest.mark.parametrize("affinities", [
    [na0],
    [na0, na1, na2, na3, na4],
    [pa0],
    [pa0, pa1, pa2, pa3, pa4],
    [paa0],
    [paa0, paa1],
    [na0, pa0, paa0, na1, na4, pa1, paa1, paa2],
])
def test_revert_accepts_fixture_lists(affinities):
    assert revert_affinity(affinities)


def test_no_affinity():
    assert revert_affinity([]) is None
    assert convert_affinity({}) == []


def test_node_requirements():
    assert revert_affinity([na3]) == {"nodeAffinity": {REQUIRED: {"nodeSelectorTerms": [
        {"matchExpressions": [
            {"key": "key2", "operator": "NotIn", "values": ["value2"]},
            {"key": "key3", "operator": "DoesNotExist"},
            {"key": "key4", "operator": "Lt", "values": ["10"]},
        ]},
    ]}}}


def test_soft_node_term_defaults_to_weight_one():
    node = revert_affinity([na4])["nodeAffinity"]
    assert REQUIRED not in node
    assert node[PREFERRED] == [{
        "weight": 1,
        "preference": {"matchExpressions": [
            {"key": "key5", "operator": "In", "values": ["value5", "value6"]},
        ]},
    }]


def test_soft_node_term_weight():
    assert revert_affinity([na5])["nodeAffinity"][PREFERRED][0]["weight"] == 100


def test_pod_terms_carry_topology_and_namespaces():
    assert revert_affinity([pa1, pa2]) == {"podAffinity": {REQUIRED: [
        {
            "labelSelector": {"matchExpressions": [
                {"key": "nonexistentKeyPa", "operator": "DoesNotExist"},
            ]},
            "topologyKey": "topoKey",
        },
        {
            "labelSelector": {"matchExpressions": [
                {"key": "key1pa", "operator": "In", "values": ["value1", "value2"]},
            ]},
            "namespaces": ["ns1", "ns2", "ns3"],
        },
    ]}}


def test_soft_anti_affinity():
    assert revert_affinity([paa2]) == {"podAntiAffinity": {PREFERRED: [{
        "weight": 10,
        "podAffinityTerm": {"labelSelector": {"matchExpressions": [
            {"key": "nonexistentKeyPaaSoftWeighted", "operator": "DoesNotExist"},
        ]}},
    }]}}


@pytest.mark.parametrize("affinity", [na0, na1, na2, na3, na5, pa0, pa1, pa2, pa3, pa4, paa0, paa2])
def test_round_trip(affinity):
    assert convert_affinity({"affinity": revert_affinity([affinity])}) == [affinity]


def test_default_weight_is_written_back_explicitly():
    kube = revert_affinity([na4])
    converted = convert_affinity({"affinity": kube})
    assert converted == [Affinity(node="key5=value5,value6:soft:1")]
    assert revert_affinity(converted) == kube


def test_zero_weight_means_unspecified():
    kube = {"nodeAffinity": {PREFERRED: [
        {"weight": 0, "preference": {"matchExpressions": [{"key": "a", "operator": "Exists"}]}},
    ]}}
    assert convert_affinity({"affinity": kube}) == [Affinity(node="a:soft")]


def test_mixed_list_keeps_class_order():
    kube = revert_affinity([na0, pa0, paa0, na1, na4, pa1, paa1, paa2])
    assert convert_affinity({"affinity": kube}) == [
        na0, na1, Affinity(node="key5=value5,value6:soft:1"),
        pa0, pa1,
        paa0, Affinity(anti_pod="!nonexistentKeyPaaSoft:soft:1"), paa2,
    ]


def test_node_selector_is_folded_in_first():
    spec = {"nodeSelector": {"zone": "a", "disk": "ssd"}, "affinity": revert_affinity([na0])}
    assert convert_affinity(spec) == [Affinity(node="disk=ssd&zone=a"), na0]


def test_entry_needs_exactly_one_kind():
    with pytest.raises(InvalidValueError, match="unrecognized affinity"):
        Affinity.from_wire({"node": "a", "pod": "b"})
    with pytest.raises(InvalidValueError, match="unrecognized affinity"):
        Affinity.from_wire({"topology": "zone"})


def test_empty_entry_is_reported_with_its_index():
    with pytest.raises(InvalidValueError) as exc:
        revert_affinity([na0, Affinity()])
    assert str(exc.value).startswith("affinity[1]: unrecognized affinity")


@pytest.mark.parametrize("expr, message", [
    ("a:hard", "expected 'soft'"),
    ("a:soft:heavy", "integer affinity weight"),
    ("a:soft:1:2", "selector\\[:soft\\[:weight\\]\\]"),
])
def test_malformed_soft_suffix(expr, message):
    with pytest.raises(InvalidValueError, match=message):
        revert_affinity([Affinity(node=expr)])


def test_unknown_affinity_fields():
    with pytest.raises(InvalidValueError, match="unknown affinity fields"):
        Affinity.from_wire({"node": "a", "weight": 3})


def test_wire_form_omits_empty_fields():
    assert Affinity(pod="a=b", topology="zone").to_wire() == {"pod": "a=b", "topology": "zone"}
    assert Affinity.from_wire({"anti_pod": "a", "namespaces": ["x"]}) == Affinity(anti_pod="a", namespaces=["x"])


def test_affinity_weight_must_fit_int32():
    with pytest.raises(InvalidValueError, match="out of range for int32"):
        revert_affinity([Affinity(node="a:soft:99999999999")])
    assert revert_affinity([Affinity(node="a:soft:2147483647")])["nodeAffinity"][PREFERRED][0]["weight"] == 2147483647


@pytest.mark.parametrize("term", [
    {"matchFields": [{"key": "metadata.name", "operator": "In", "values": ["n1"]}]},
    {"matchExpressions": [{"key": "a", "operator": "Exists"}],
     "matchFields": [{"key": "metadata.name", "operator": "In", "values": ["n1"]}]},
])
def test_node_match_fields_have_no_shorthand(term):
    kube = {"nodeAffinity": {REQUIRED: {"nodeSelectorTerms": [term]}}}
    with pytest.raises(InvalidValueError, match="matchFields have no shorthand"):
        convert_affinity({"affinity": kube})
    kube = {"nodeAffinity": {PREFERRED: [{"weight": 5, "preference": term}]}}
    with pytest.raises(InvalidValueError, match="matchFields have no shorthand"):
        convert_affinity({"affinity": kube})


def test_empty_node_term_has_no_shorthand():
    kube = {"nodeAffinity": {REQUIRED: {"nodeSelectorTerms": [{}]}}}
    with pytest.raises(InvalidValueError, match="empty node selector term"):
        convert_affinity({"affinity": kube})


@pytest.mark.parametrize("kind", ["podAffinity", "podAntiAffinity"])
@pytest.mark.parametrize("selector", [{}, None])
def test_pod_term_without_label_selector_has_no_shorthand(kind, selector):
    term = {"topologyKey": "kubernetes.io/hostname", "labelSelector": selector}
    with pytest.raises(InvalidValueError, match="without a label selector"):
        convert_affinity({"affinity": {kind: {REQUIRED: [term]}}})
    soft = {kind: {PREFERRED: [{"weight": 1, "podAffinityTerm": term}]}}
    with pytest.raises(InvalidValueError, match="without a label selector"):
        convert_affinity({"affinity": soft})
