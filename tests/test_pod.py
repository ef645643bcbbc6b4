"""Pod conversion — host aliases, tolerations, containers and the full pod."""

import pytest
import yaml

from koki.pacts.errors import InvalidValueError, KokiError, TypeMismatchError
from koki.pacts.types import ConvertContext
from koki.core.pod import (
    HostAlias, PodConverter, Toleration, convert_container,
    convert_host_aliases, revert_container, revert_host_aliases,
)

POD_KOKI = """
name: web
namespace: prod
labels:
  app: web
affinity:
- node: zone=us-east-1a
- pod: app=cache:soft:20
  topology: kubernetes.io/hostname
containers:
- name: app
  image: nginx:1.25
  command: [nginx]
  args: ["-g", "daemon off;"]
  env:
  - LOG_LEVEL=debug
  - key: DB_PASSWORD
    from: secret:db:password
  - from: config:app-config
  expose:
  - http: 8080
  volume:
  - mount: /var/log/nginx
    store: logs
  - mount: /etc/nginx/conf.d
    store: config:ro
  pull: IfNotPresent
volumes:
  config: config_map:nginx-conf
  logs: empty_dir
host_alias:
- 127.0.0.1 foo.local
tolerations:
- dedicated=web:NoSchedule
host_mode:
- net
registries:
- regcred
priority:
  value: 1000
  class: high
restart_policy: Always
account: web-sa
termination_grace_period: 30
"""

POD_KUBE = """
apiVersion: v1
kind: Pod
metadata:
  name: web
  namespace: prod
  labels:
    app: web
spec:
  affinity:
    nodeAffinity:
      requiredDuringSchedulingIgnoredDuringExecution:
        nodeSelectorTerms:
        - matchExpressions:
          - key: zone
            operator: In
            values: [us-east-1a]
    podAffinity:
      preferredDuringSchedulingIgnoredDuringExecution:
      - weight: 20
        podAffinityTerm:
          labelSelector:
            matchLabels:
              app: cache
          topologyKey: kubernetes.io/hostname
  containers:
  - name: app
    image: nginx:1.25
    command: [nginx]
    args: ["-g", "daemon off;"]
    imagePullPolicy: IfNotPresent
    env:
    - name: LOG_LEVEL
      value: debug
    - name: DB_PASSWORD
      valueFrom:
        secretKeyRef:
          name: db
          key: password
    envFrom:
    - configMapRef:
        name: app-config
    ports:
    - name: http
      containerPort: 8080
      protocol: TCP
    volumeMounts:
    - name: logs
      mountPath: /var/log/nginx
    - name: config
      mountPath: /etc/nginx/conf.d
      readOnly: true
  volumes:
  - name: config
    configMap:
      name: nginx-conf
  - name: logs
    emptyDir: {}
  hostAliases:
  - ip: 127.0.0.1
    hostnames: [foo.local]
  tolerations:
  - key: dedicated
    operator: Equal
    value: web
    effect: NoSchedule
  hostNetwork: true
  imagePullSecrets:
  - name: regcred
  priority: 1000
  priorityClassName: high
  restartPolicy: Always
  serviceAccountName: web-sa
  terminationGracePeriodSeconds: 30
"""


def test_pod_to_kube():
    ctx = ConvertContext()
    assert PodConverter().to_kube(yaml.safe_load(POD_KOKI), ctx) == yaml.safe_load(POD_KUBE)
    assert ctx.warnings == []


def test_pod_to_koki():
    ctx = ConvertContext()
    assert PodConverter().to_koki(yaml.safe_load(POD_KUBE), ctx) == yaml.safe_load(POD_KOKI)
    assert ctx.warnings == []


# -- host aliases --

def test_host_alias():
    assert HostAlias.from_string("127.0.0.1 foo.local  bar.local") == HostAlias(
        ip="127.0.0.1", hostnames=["foo.local", "bar.local"])
    assert revert_host_aliases(["10.1.2.3 db"]) == [{"ip": "10.1.2.3", "hostnames": ["db"]}]


def test_host_alias_needs_a_hostname():
    with pytest.raises(InvalidValueError):
        HostAlias.from_string("127.0.0.1")


def test_incomplete_kube_host_aliases_are_dropped():
    ctx = ConvertContext()
    aliases = [{"ip": "10.0.0.1"}, {"hostnames": ["a"]}, {"ip": "10.0.0.2", "hostnames": ["b", "c"]}]
    assert convert_host_aliases(aliases, ctx) == ["10.0.0.2 b c"]
    assert len(ctx.warnings) == 2
    assert all("has no ip or no hostnames, dropped" in w for w in ctx.warnings)


# -- tolerations --

@pytest.mark.parametrize("wire, kube", [
    ("key=value:NoSchedule", {"key": "key", "operator": "Equal", "value": "value", "effect": "NoSchedule"}),
    ("key:NoExecute", {"key": "key", "operator": "Exists", "effect": "NoExecute"}),
    ("key", {"key": "key", "operator": "Exists"}),
    ("key=", {"key": "key", "operator": "Equal"}),
    ("*", {"operator": "Exists"}),
    ("*:NoSchedule", {"operator": "Exists", "effect": "NoSchedule"}),
    ({"selector": "node.kubernetes.io/unreachable:NoExecute", "expiry_after": 6000},
     {"key": "node.kubernetes.io/unreachable", "operator": "Exists", "effect": "NoExecute",
      "tolerationSeconds": 6000}),
])
def test_toleration(wire, kube):
    assert Toleration.from_wire(wire).to_kube() == kube
    assert Toleration.from_kube(kube).to_wire() == wire


def test_empty_kube_operator_means_equal():
    assert Toleration.from_kube({"key": "k", "value": "v"}).to_wire() == "k=v"


@pytest.mark.parametrize("wire", ["=value", ":NoSchedule", "key:Sometimes"])
def test_malformed_tolerations(wire):
    with pytest.raises(InvalidValueError):
        Toleration.from_wire(wire)


@pytest.mark.parametrize("kube", [
    {"operator": "Equal", "value": "x"},
    {"key": "k", "operator": "Gt"},
    {"key": "k", "operator": "Exists", "effect": "Sometimes"},
])
def test_unsupported_kube_tolerations(kube):
    with pytest.raises(InvalidValueError):
        Toleration.from_kube(kube)


def test_toleration_map_fields():
    with pytest.raises(InvalidValueError, match="unknown toleration fields"):
        Toleration.from_wire({"selector": "k", "seconds": 5})


# -- containers --

def test_container_fields():
    ctx = ConvertContext()
    container = {"name": "app", "image": "busybox", "command": ["sleep"], "args": [3600],
                 "wd": "/srv", "stdin": True, "tty": True}
    kube = revert_container(container, ctx)
    assert kube == {"name": "app", "image": "busybox", "command": ["sleep"], "args": ["3600"],
                    "workingDir": "/srv", "stdin": True, "tty": True}
    assert convert_container(kube, ctx) == dict(container, args=["3600"])
    assert ctx.warnings == []


def test_unknown_container_field_warns():
    ctx = ConvertContext()
    revert_container({"name": "app", "gpu": 2}, ctx)
    assert ctx.warnings == ["container (app): unsupported field 'gpu' ignored"]


def test_dropped_kube_container_field_warns():
    ctx = ConvertContext()
    convert_container({"name": "app", "resizePolicy": [{"resourceName": "cpu"}]}, ctx)
    assert ctx.warnings == ["container (app): field 'resizePolicy' has no koki shorthand, dropped"]


def test_pull_policy_is_validated():
    with pytest.raises(InvalidValueError, match="pull policy"):
        revert_container({"name": "app", "pull": "Sometimes"}, ConvertContext())


CONTAINER_KOKI = """
name: app
image: nginx
cpu:
  min: 250m
  max: "1"
mem:
  min: 64Mi
  max: 128Mi
on_start:
  command: [sh, -c, echo started]
pre_stop:
  net: http://localhost:8080/shutdown
liveness_probe:
  net: http://localhost:8080/healthz
  headers:
  - X-Check:live
  delay: 3
  interval: 10
  min_count_fail: 3
  timeout: 1
readiness_probe:
  net: tcp://localhost:5432
  min_count_success: 1
cap_add: [NET_ADMIN]
cap_drop: [ALL]
privileged: false
ro: true
uid: 1000
selinux:
  level: "s0:c123,c456"
termination_msg_path: /dev/termination-log
termination_msg_policy: FallbackToLogsOnError
"""

CONTAINER_KUBE = """
name: app
image: nginx
terminationMessagePath: /dev/termination-log
terminationMessagePolicy: FallbackToLogsOnError
resources:
  limits:
    cpu: "1"
    memory: 128Mi
  requests:
    cpu: 250m
    memory: 64Mi
securityContext:
  privileged: false
  readOnlyRootFilesystem: true
  runAsUser: 1000
  capabilities:
    add: [NET_ADMIN]
    drop: [ALL]
  seLinuxOptions:
    level: "s0:c123,c456"
lifecycle:
  postStart:
    exec:
      command: [sh, -c, echo started]
  preStop:
    httpGet:
      path: /shutdown
      port: 8080
livenessProbe:
  httpGet:
    path: /healthz
    port: 8080
    httpHeaders:
    - name: X-Check
      value: live
  initialDelaySeconds: 3
  periodSeconds: 10
  failureThreshold: 3
  timeoutSeconds: 1
readinessProbe:
  tcpSocket:
    port: 5432
  successThreshold: 1
"""


def test_container_resources_hooks_checks_and_security_to_kube():
    ctx = ConvertContext()
    assert revert_container(yaml.safe_load(CONTAINER_KOKI), ctx) == yaml.safe_load(CONTAINER_KUBE)
    assert ctx.warnings == []


def test_container_resources_hooks_checks_and_security_to_koki():
    ctx = ConvertContext()
    assert convert_container(yaml.safe_load(CONTAINER_KUBE), ctx) == yaml.safe_load(CONTAINER_KOKI)
    assert ctx.warnings == []


def test_cpu_and_mem_bounds_are_independent():
    ctx = ConvertContext()
    kube = revert_container({"name": "app", "cpu": {"max": 2}, "mem": {"min": "1Gi"}}, ctx)
    assert kube["resources"] == {"limits": {"cpu": 2}, "requests": {"memory": "1Gi"}}
    assert convert_container(kube, ctx) == {"name": "app", "cpu": {"max": 2}, "mem": {"min": "1Gi"}}


def test_other_resources_are_dropped_with_a_warning():
    ctx = ConvertContext()
    kube = {"name": "app", "resources": {"limits": {"cpu": "1", "nvidia.com/gpu": 1}, "claims": [{"name": "c"}]}}
    assert convert_container(kube, ctx) == {"name": "app", "cpu": {"max": "1"}}
    assert ctx.warnings == [
        "container (app) limits: field 'nvidia.com/gpu' has no koki shorthand, dropped",
        "container (app) resources: field 'claims' has no koki shorthand, dropped",
    ]


def test_security_fields_without_shorthand_warn():
    ctx = ConvertContext()
    kube = {"name": "app", "securityContext": {"runAsNonRoot": True, "procMount": "Default"}}
    assert convert_container(kube, ctx) == {"name": "app", "force_non_root": True}
    assert ctx.warnings == [
        "container (app) securityContext: field 'procMount' has no koki shorthand, dropped",
    ]


@pytest.mark.parametrize("container, error, message", [
    ({"cpu": {"max": "lots"}}, InvalidValueError, "resource quantity for cpu max"),
    ({"mem": {"min": True}}, TypeMismatchError, "resource quantity for mem min"),
    ({"cpu": {"limit": "1"}}, InvalidValueError, "unknown cpu fields"),
    ({"privileged": "yes"}, TypeMismatchError, "boolean for privileged"),
    ({"uid": "root"}, InvalidValueError, "integer uid"),
    ({"selinux": {"user": "u", "kind": "x"}}, InvalidValueError, "unknown selinux fields"),
    ({"termination_msg_policy": "Sometimes"}, InvalidValueError, "termination message policy"),
])
def test_invalid_container_fields(container, error, message):
    with pytest.raises(error, match=message):
        revert_container({"name": "app", **container}, ConvertContext())


@pytest.mark.parametrize("container, breadcrumb", [
    ({"on_start": {"net": "ftp://localhost:21"}}, "on_start: expected a http, https or tcp URL"),
    ({"pre_stop": {"command": []}}, "pre_stop: expected exactly one of command or net"),
    ({"readiness_probe": {"net": "tcp://localhost"}}, "readiness_probe: tcp actions need a port"),
])
def test_action_errors_name_their_field(container, breadcrumb):
    with pytest.raises(KokiError) as exc:
        revert_container({"name": "app", **container}, ConvertContext())
    assert str(exc.value).startswith(breadcrumb)


def test_kube_action_errors_name_their_field():
    kube = {"name": "app", "livenessProbe": {"httpGet": {"port": 80, "host": "localhost"}}}
    with pytest.raises(KokiError) as exc:
        convert_container(kube, ConvertContext())
    assert str(exc.value).startswith("liveness_probe: an explicit 'localhost' host")


def test_env_value_containing_equals_stops_the_pod():
    doc = {"kind": "Pod", "metadata": {"name": "p"}, "spec": {"containers": [
        {"name": "app", "env": [{"name": "JAVA_OPTS", "value": "-Dfoo=bar"}]},
    ]}}
    with pytest.raises(KokiError) as exc:
        PodConverter().to_koki(doc, ConvertContext())
    assert str(exc.value).startswith("container (app): env: env value containing '=' has no shorthand")


def test_affinity_without_shorthand_stops_the_pod():
    doc = {"kind": "Pod", "metadata": {"name": "p"}, "spec": {"affinity": {"podAntiAffinity": {
        "requiredDuringSchedulingIgnoredDuringExecution": [
            {"topologyKey": "kubernetes.io/hostname", "labelSelector": {}},
        ],
    }}}}
    with pytest.raises(KokiError) as exc:
        PodConverter().to_koki(doc, ConvertContext())
    assert str(exc.value).startswith("affinity: pod affinity term without a label selector")


# -- pod --

def test_unknown_pod_field_warns():
    ctx = ConvertContext()
    PodConverter().to_kube({"name": "x", "bogus": 1}, ctx)
    assert ctx.warnings == ["pod (x): unsupported field 'bogus' ignored"]


def test_unknown_pod_field_in_strict_mode():
    ctx = ConvertContext(config={"strict": True})
    with pytest.raises(InvalidValueError, match="unknown fields in pod \\(x\\)"):
        PodConverter().to_kube({"name": "x", "bogus": 1}, ctx)


def test_node_selector_becomes_a_node_affinity():
    doc = {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "p"},
           "spec": {"nodeSelector": {"disk": "ssd"}}}
    assert PodConverter().to_koki(doc, ConvertContext()) == {
        "name": "p", "affinity": [{"node": "disk=ssd"}],
    }


def test_hostname_and_subdomain():
    ctx = ConvertContext()
    kube = PodConverter().to_kube({"name": "p", "hostname": "sub.host"}, ctx)
    assert kube["spec"] == {"subdomain": "sub", "hostname": "host"}
    assert PodConverter().to_koki(kube, ctx)["hostname"] == "sub.host"
    kube = PodConverter().to_kube({"name": "p", "hostname": "host"}, ctx)
    assert kube["spec"] == {"hostname": "host"}


def test_deprecated_service_account_field():
    doc = {"kind": "Pod", "metadata": {"name": "p"}, "spec": {"serviceAccount": "old"}}
    assert PodConverter().to_koki(doc, ConvertContext())["account"] == "old"


def test_dropped_pod_fields_and_status():
    ctx = ConvertContext()
    doc = {"kind": "Pod", "metadata": {"name": "p"},
           "spec": {"securityContext": {}, "restartPolicy": "Never"},
           "status": {"phase": "Running"}}
    assert PodConverter().to_koki(doc, ctx) == {"name": "p", "restart_policy": "Never"}
    assert ctx.warnings == [
        "pod (p): field 'securityContext' has no koki shorthand, dropped",
        "pod (p): status dropped",
    ]


def test_host_modes():
    kube = PodConverter().to_kube({"name": "p", "host_mode": ["net", "pid", "ipc"]}, ConvertContext())
    assert kube["spec"] == {"hostNetwork": True, "hostPID": True, "hostIPC": True}
    with pytest.raises(InvalidValueError, match="host mode"):
        PodConverter().to_kube({"name": "p", "host_mode": ["uts"]}, ConvertContext())


@pytest.mark.parametrize("obj, breadcrumb", [
    ({"name": "web", "containers": [{"name": "app", "env": ["A=b=c"]}]},
     "container (app): env: unrecognized env"),
    ({"name": "web", "containers": [{"name": "app", "expose": ["a:b:c"]}]},
     "container (app): expose: "),
    ({"name": "web", "tolerations": ["key", "=x"]}, "tolerations[1]: "),
    ({"name": "web", "affinity": [{"node": "a"}, {"topology": "zone"}]}, "affinity[1]: "),
    ({"name": "web", "volumes": {"data": "gce_pd"}}, "volume (data): "),
    ({"name": "web", "host_alias": ["127.0.0.1"]}, "host_alias: "),
])
def test_error_breadcrumbs(obj, breadcrumb):
    with pytest.raises(KokiError) as exc:
        PodConverter().to_kube(obj, ConvertContext())
    assert str(exc.value).startswith(breadcrumb)


@pytest.mark.parametrize("field, value", [
    ("restart_policy", "Sometimes"),
    ("dns_policy", "Anywhere"),
    ("priority", {"value": "high"}),
    ("termination_grace_period", "soon"),
])
def test_invalid_pod_fields(field, value):
    with pytest.raises(InvalidValueError):
        PodConverter().to_kube({"name": "p", field: value}, ConvertContext())
