"""Service conversion — ports, selector, service type inference, load balancers."""

from koki.pacts.errors import InvalidValueError, KokiError
from koki.pacts.helpers import (
    expect_dict, expect_list, expect_str, parse_int,
    warn_dropped_keys, warn_unknown_keys,
)
from koki.pacts.types import Converter, ConvertContext
from koki.core.constants import CLIENT_IP_AFFINITY, ROUTE_POLICIES
from koki.core.metadata import METADATA_KEYS, convert_metadata, revert_metadata
from koki.core.ports import convert_service_ports, revert_service_ports

_LB_KEYS = ("lb", "lb_ip", "lb_client_ips", "healthcheck_port")
_SERVICE_KEYS = METADATA_KEYS + _LB_KEYS + (
    "cname", "selector", "port", "ports", "cluster_ip", "external_ips",
    "stickiness", "route_policy", "unready_endpoints",
)
_KUBE_SERVICE_SPEC_KEYS = (
    "type", "externalName", "selector", "ports", "clusterIP", "externalIPs",
    "sessionAffinity", "sessionAffinityConfig", "externalTrafficPolicy",
    "publishNotReadyAddresses", "loadBalancerIP", "loadBalancerSourceRanges",
    "healthCheckNodePort",
)


def _revert_stickiness(value) -> dict:
    """``stickiness: true`` or a timeout in seconds → ClientIP session affinity."""
    if value is True:
        return {"sessionAffinity": CLIENT_IP_AFFINITY}
    if value is False:
        return {}
    seconds = parse_int(value, "expected true or a timeout in seconds for stickiness")
    return {
        "sessionAffinity": CLIENT_IP_AFFINITY,
        "sessionAffinityConfig": {"clientIP": {"timeoutSeconds": seconds}},
    }


def _convert_stickiness(spec: dict):
    affinity = spec.get("sessionAffinity")
    if not affinity or affinity == "None":
        return None
    if affinity != CLIENT_IP_AFFINITY:
        raise InvalidValueError(affinity, "unsupported session affinity")
    timeout = ((spec.get("sessionAffinityConfig") or {}).get("clientIP") or {}).get("timeoutSeconds")
    return timeout if timeout is not None else True


def _revert_route_policy(policy) -> str:
    if policy not in ROUTE_POLICIES:
        raise InvalidValueError(policy, f"expected route policy from {', '.join(ROUTE_POLICIES)}")
    return ROUTE_POLICIES[policy]


def _convert_route_policy(policy: str) -> str:
    for koki_policy, kube_policy in ROUTE_POLICIES.items():
        if kube_policy == policy:
            return koki_policy
    raise InvalidValueError(policy, "unsupported external traffic policy")


class ServiceConverter(Converter):
    """Service ↔ ``service``.

    The kube service type is inferred on the way in: ``cname`` makes an
    ExternalName service, ``lb`` a LoadBalancer, any node port a NodePort,
    anything else ClusterIP.
    """
    name = "service"
    kind = "Service"
    koki_key = "service"

    def to_kube(self, obj: dict, ctx: ConvertContext) -> dict:
        obj = expect_dict(obj, "service")
        what = f"service ({obj.get('name', '')})"
        warn_unknown_keys(obj, _SERVICE_KEYS, what, ctx)
        doc = revert_metadata(obj, self.kind, ctx)

        if obj.get("cname"):
            ignored = sorted(k for k in set(_SERVICE_KEYS) - set(METADATA_KEYS) - {"cname"}
                             if obj.get(k) not in (None, "", [], {}, False))
            for key in ignored:
                ctx.warnings.append(f"{what}: field '{key}' ignored for a cname service")
            doc["spec"] = {"type": "ExternalName",
                           "externalName": expect_str(obj["cname"], "cname")}
            return doc

        spec: dict = {"type": "ClusterIP"}
        if obj.get("selector"):
            spec["selector"] = dict(expect_dict(obj["selector"], "selector"))
        try:
            ports = revert_service_ports(
                obj.get("port"),
                expect_dict(obj["ports"], "ports") if obj.get("ports") is not None else None)
        except KokiError as exc:
            exc.contextualize("ports")
            raise
        if ports:
            spec["ports"] = ports
            if any(p.get("nodePort") for p in ports):
                spec["type"] = "NodePort"
        if obj.get("cluster_ip"):
            spec["clusterIP"] = expect_str(obj["cluster_ip"], "cluster_ip")
        if obj.get("external_ips"):
            spec["externalIPs"] = [expect_str(ip, "external ip")
                                   for ip in expect_list(obj["external_ips"], "external_ips")]
        if obj.get("stickiness") is not None:
            spec.update(_revert_stickiness(obj["stickiness"]))
        if obj.get("route_policy"):
            spec["externalTrafficPolicy"] = _revert_route_policy(obj["route_policy"])
        if obj.get("unready_endpoints"):
            spec["publishNotReadyAddresses"] = True

        if any(obj.get(k) for k in _LB_KEYS):
            spec["type"] = "LoadBalancer"
            if obj.get("lb_ip"):
                spec["loadBalancerIP"] = expect_str(obj["lb_ip"], "lb_ip")
            if obj.get("lb_client_ips"):
                spec["loadBalancerSourceRanges"] = list(expect_list(obj["lb_client_ips"], "lb_client_ips"))
            if obj.get("healthcheck_port"):
                spec["healthCheckNodePort"] = parse_int(obj["healthcheck_port"],
                                                        "expected an integer healthcheck_port", bits=32)

        doc["spec"] = spec
        return doc

    def to_koki(self, obj: dict, ctx: ConvertContext) -> dict:
        out = convert_metadata(obj, ctx)
        what = f"service ({out.get('name', '')})"
        spec = obj.get("spec") or {}
        service_type = spec.get("type") or "ClusterIP"

        if service_type == "ExternalName":
            out["cname"] = spec.get("externalName", "")
            warn_dropped_keys(spec, ("type", "externalName"), what, ctx)
            return out

        if spec.get("selector"):
            out["selector"] = spec["selector"]
        try:
            out.update(convert_service_ports(spec.get("ports") or []))
        except KokiError as exc:
            exc.contextualize("ports")
            raise
        if spec.get("clusterIP"):
            out["cluster_ip"] = spec["clusterIP"]
        if spec.get("externalIPs"):
            out["external_ips"] = list(spec["externalIPs"])
        stickiness = _convert_stickiness(spec)
        if stickiness is not None:
            out["stickiness"] = stickiness
        if spec.get("externalTrafficPolicy"):
            out["route_policy"] = _convert_route_policy(spec["externalTrafficPolicy"])
        if spec.get("publishNotReadyAddresses"):
            out["unready_endpoints"] = True

        if service_type == "LoadBalancer":
            out["lb"] = True
            if spec.get("loadBalancerIP"):
                out["lb_ip"] = spec["loadBalancerIP"]
            if spec.get("loadBalancerSourceRanges"):
                out["lb_client_ips"] = list(spec["loadBalancerSourceRanges"])
            if spec.get("healthCheckNodePort"):
                out["healthcheck_port"] = spec["healthCheckNodePort"]
        elif service_type == "NodePort":
            if not any(p.get("nodePort") for p in spec.get("ports") or []):
                ctx.warnings.append(f"{what}: NodePort type without explicit node ports becomes ClusterIP")
        elif service_type != "ClusterIP":
            raise InvalidValueError(service_type, "unsupported service type")

        warn_dropped_keys(spec, _KUBE_SERVICE_SPEC_KEYS, what, ctx)
        if ((obj.get("status") or {}).get("loadBalancer") or {}).get("ingress"):
            ctx.warnings.append(f"{what}: load balancer ingress status dropped")
        return out
