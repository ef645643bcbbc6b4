"""Constants shared by the codecs: operators, prefixes, patterns."""

import re

# Operator candidates, tried in order ("!=" before "=")
LABEL_SELECTOR_OPS = ("!=", "=")
NODE_SELECTOR_OPS = ("!=", "=", ">", "<")

# Shorthand operator → kube requirement operator
LABEL_OPERATORS = {"=": "In", "!=": "NotIn"}
NODE_OPERATORS = {"=": "In", "!=": "NotIn", ">": "Gt", "<": "Lt"}

# Pseudo-operators for bare "key" / "!key" segments
OP_EXISTS = "exists"
OP_NOT_EXISTS = "!exists"

SOFT_AFFINITY_MARKER = "soft"
DEFAULT_SOFT_WEIGHT = 1

# Optional "proto://" prefix on ports
_PROTOCOL_PORT_RE = re.compile(r"^(?i:(tcp|udp))://(.*)$")
DEFAULT_PROTOCOL = "TCP"

# Env "from" prefixes
ENV_RESOURCE_PREFIXES = ("limits.", "requests.")
ENV_CONFIG_PREFIX = "config"
ENV_SECRET_PREFIX = "secret"

READ_ONLY_MARKER = "ro"

TOLERATION_WILDCARD = "*"

# Metadata keys copied verbatim (koki key, kube metadata key)
METADATA_FIELDS = (
    ("name", "name"),
    ("namespace", "namespace"),
    ("cluster", "clusterName"),
    ("labels", "labels"),
    ("annotations", "annotations"),
)

# PersistentVolume access modes
ACCESS_MODES = {
    "ro": "ReadOnlyMany",
    "rw": "ReadWriteMany",
    "rw_once": "ReadWriteOnce",
}

RECLAIM_POLICIES = {
    "retain": "Retain",
    "recycle": "Recycle",
    "delete": "Delete",
}

MOUNT_PROPAGATIONS = ("HostToContainer", "Bidirectional", "None")

TOLERATION_EFFECTS = ("NoSchedule", "PreferNoSchedule", "NoExecute")

# Pod enums: koki spells them like kube
PULL_POLICIES = ("Always", "Never", "IfNotPresent")
RESTART_POLICIES = ("Always", "OnFailure", "Never")
DNS_POLICIES = ("ClusterFirstWithHostNet", "ClusterFirst", "Default", "None")
TERMINATION_MSG_POLICIES = ("File", "FallbackToLogsOnError")

# Resource quantity: a decimal number with an optional SI, binary or exponent suffix
_QUANTITY_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+|[KMGTPE]i|[numkMGTPE])?$')

# net action URL scheme → kube httpGet scheme; "tcp" selects tcpSocket
HTTP_SCHEMES = {
    "http": "HTTP",
    "https": "HTTPS",
}
TCP_SCHEME = "tcp"
# written when the kube handler leaves host unset (the pod's own address)
DEFAULT_NET_HOST = "localhost"
DEFAULT_HTTP_PORTS = {"http": 80, "https": 443}

# host_mode entry → kube pod spec flag
HOST_MODES = {
    "net": "hostNetwork",
    "pid": "hostPID",
    "ipc": "hostIPC",
}

# Service externalTrafficPolicy
ROUTE_POLICIES = {
    "node-local": "Local",
    "cluster-wide": "Cluster",
}
CLIENT_IP_AFFINITY = "ClientIP"
