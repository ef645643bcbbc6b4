"""Service conversion — type inference, ports, stickiness, load balancers."""

import pytest
import yaml

from koki.pacts.errors import InvalidValueError
from koki.pacts.types import ConvertContext
from koki.core.services import ServiceConverter

CLUSTER_IP_KOKI = """
name: example
selector:
  labelKey: labelValue
port: "80:8080"
cluster_ip: 1.1.1.10
external_ips:
- 1.1.1.1
stickiness: true
"""

CLUSTER_IP_KUBE = """
apiVersion: v1
kind: Service
metadata:
  name: example
spec:
  type: ClusterIP
  selector:
    labelKey: labelValue
  ports:
  - port: 80
    targetPort: 8080
    protocol: TCP
  clusterIP: 1.1.1.10
  externalIPs:
  - 1.1.1.1
  sessionAffinity: ClientIP
"""

LOAD_BALANCER_KOKI = """
name: example
namespace: web
selector:
  labelKey: labelValue
ports:
  http: "80:8080:30999"
  https: "443:8443"
stickiness: 30
route_policy: node-local
unready_endpoints: true
lb: true
lb_ip: 100.1.1.1
lb_client_ips:
- 0.0.0.0/0
healthcheck_port: 30000
"""

LOAD_BALANCER_KUBE = """
apiVersion: v1
kind: Service
metadata:
  name: example
  namespace: web
spec:
  type: LoadBalancer
  selector:
    labelKey: labelValue
  ports:
  - name: http
    port: 80
    targetPort: 8080
    nodePort: 30999
    protocol: TCP
  - name: https
    port: 443
    targetPort: 8443
    protocol: TCP
  sessionAffinity: ClientIP
  sessionAffinityConfig:
    clientIP:
      timeoutSeconds: 30
  externalTrafficPolicy: Local
  publishNotReadyAddresses: true
  loadBalancerIP: 100.1.1.1
  loadBalancerSourceRanges:
  - 0.0.0.0/0
  healthCheckNodePort: 30000
"""


@pytest.mark.parametrize("koki, kube", [
    (CLUSTER_IP_KOKI, CLUSTER_IP_KUBE),
    (LOAD_BALANCER_KOKI, LOAD_BALANCER_KUBE),
])
def test_service_both_ways(koki, kube):
    ctx = ConvertContext()
    assert ServiceConverter().to_kube(yaml.safe_load(koki), ctx) == yaml.safe_load(kube)
    assert ServiceConverter().to_koki(yaml.safe_load(kube), ctx) == yaml.safe_load(koki)
    assert ctx.warnings == []


def test_cname_service():
    ctx = ConvertContext()
    kube = ServiceConverter().to_kube({"name": "example", "version": "v1", "cname": "external.example.com"}, ctx)
    assert kube == {
        "apiVersion": "v1", "kind": "Service", "metadata": {"name": "example"},
        "spec": {"type": "ExternalName", "externalName": "external.example.com"},
    }
    assert ServiceConverter().to_koki(kube, ctx) == {"name": "example", "cname": "external.example.com"}
    assert ctx.warnings == []


def test_cname_ignores_other_fields():
    ctx = ConvertContext()
    kube = ServiceConverter().to_kube({"name": "example", "cname": "ext", "selector": {"a": "b"}}, ctx)
    assert kube["spec"] == {"type": "ExternalName", "externalName": "ext"}
    assert ctx.warnings == ["service (example): field 'selector' ignored for a cname service"]


def test_node_port_is_inferred():
    kube = ServiceConverter().to_kube({"name": "s", "ports": {"http": "80:8080:30999"}}, ConvertContext())
    assert kube["spec"]["type"] == "NodePort"


def test_node_port_without_node_ports_warns():
    ctx = ConvertContext()
    doc = {"kind": "Service", "metadata": {"name": "s"},
           "spec": {"type": "NodePort", "ports": [{"port": 80}]}}
    assert ServiceConverter().to_koki(doc, ctx) == {"name": "s", "port": 80}
    assert ctx.warnings == ["service (s): NodePort type without explicit node ports becomes ClusterIP"]


def test_unnamed_ports_among_several():
    doc = {"kind": "Service", "metadata": {"name": "s"},
           "spec": {"ports": [{"port": 80}, {"name": "https", "port": 443, "targetPort": "https"}]}}
    assert ServiceConverter().to_koki(doc, ConvertContext())["ports"] == {"port-0": 80, "https": "443:https"}


def test_load_balancer_status_is_dropped():
    ctx = ConvertContext()
    doc = yaml.safe_load(LOAD_BALANCER_KUBE)
    doc["status"] = {"loadBalancer": {"ingress": [{"ip": "100.1.1.1"}]}}
    ServiceConverter().to_koki(doc, ctx)
    assert ctx.warnings == ["service (example): load balancer ingress status dropped"]


def test_dropped_spec_fields():
    ctx = ConvertContext()
    doc = {"kind": "Service", "metadata": {"name": "s"},
           "spec": {"ports": [{"port": 80}], "ipFamilies": ["IPv4"]}}
    ServiceConverter().to_koki(doc, ctx)
    assert ctx.warnings == ["service (s): field 'ipFamilies' has no koki shorthand, dropped"]


@pytest.mark.parametrize("spec, message", [
    ({"type": "Headless"}, "unsupported service type"),
    ({"sessionAffinity": "Cookie"}, "unsupported session affinity"),
    ({"externalTrafficPolicy": "Nearest"}, "unsupported external traffic policy"),
])
def test_unsupported_kube_values(spec, message):
    with pytest.raises(InvalidValueError, match=message):
        ServiceConverter().to_koki({"kind": "Service", "metadata": {"name": "s"}, "spec": spec},
                                   ConvertContext())


@pytest.mark.parametrize("obj, message", [
    ({"name": "s", "route_policy": "nearest"}, "route policy"),
    ({"name": "s", "stickiness": "always"}, "stickiness"),
    ({"name": "s", "lb": True, "healthcheck_port": "high"}, "healthcheck_port"),
    ({"name": "s", "ports": {"http": "http:80"}}, "^ports: "),
])
def test_invalid_koki_values(obj, message):
    with pytest.raises(InvalidValueError, match=message):
        ServiceConverter().to_kube(obj, ConvertContext())
