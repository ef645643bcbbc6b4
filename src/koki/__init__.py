"""koki — convert Kubernetes manifests to and from the koki short syntax.

Re-exports the public API. The shorthand codecs can also be imported
directly from koki.core.
"""

from koki.pacts.errors import (
    KokiError, InvalidValueError, SelectorArityError, TypeMismatchError,
    UnsupportedKindError,
)
from koki.pacts.types import ConvertContext, Converter
from koki.core.convert import (
    TO_KUBE, TO_KOKI, to_kube, to_koki, convert_documents, register,
    supported_kinds,
)
from koki.core.expressions import (
    parse_label_selector, unparse_label_selector,
    parse_node_selector_term, unparse_node_selector_term,
)
from koki.core.affinity import Affinity, revert_affinity, convert_affinity
from koki.core.volumes import Volume, VolumeMount, convert_volumes, revert_volumes
from koki.core.persistent import PersistentVolumeSource
from koki.core.ports import ServicePort, Port
from koki.core.env import (
    EnvFromType, new_env, new_env_from, new_env_from_secret_or_config,
    new_env_from_secret, new_env_from_config,
)
from koki.core.actions import Action, HealthCheck
from koki.core.pod import HostAlias, Toleration
from koki.io.config import load_config, save_config
from koki.io.parsing import load_documents, dump_documents
from koki.io.output import emit_warnings

__all__ = [
    # Errors
    "KokiError",
    "InvalidValueError",
    "SelectorArityError",
    "TypeMismatchError",
    "UnsupportedKindError",
    # Types & base classes
    "ConvertContext",
    "Converter",
    # Document conversion
    "TO_KUBE",
    "TO_KOKI",
    "to_kube",
    "to_koki",
    "convert_documents",
    "register",
    "supported_kinds",
    # Shorthand codecs
    "parse_label_selector",
    "unparse_label_selector",
    "parse_node_selector_term",
    "unparse_node_selector_term",
    "Affinity",
    "revert_affinity",
    "convert_affinity",
    "Volume",
    "VolumeMount",
    "convert_volumes",
    "revert_volumes",
    "PersistentVolumeSource",
    "ServicePort",
    "Port",
    "EnvFromType",
    "new_env",
    "new_env_from",
    "new_env_from_secret_or_config",
    "new_env_from_secret",
    "new_env_from_config",
    "HostAlias",
    "Toleration",
    "Action",
    "HealthCheck",
    # I/O
    "load_config",
    "save_config",
    "load_documents",
    "dump_documents",
    "emit_warnings",
]
