"""Public types — conversion context and converter base class."""

from dataclasses import dataclass, field


@dataclass
class ConvertContext:
    """Shared state passed to all converters during a conversion run."""
    config: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)

    @property
    def api_version(self) -> str:
        """Default apiVersion written on kube documents without a koki version."""
        return self.config.get("api_version", "v1")

    @property
    def strict(self) -> bool:
        """Whether unknown koki keys are errors rather than warnings."""
        return bool(self.config.get("strict", False))


class Converter:
    """Base class for document converters.

    A converter handles one kube ``kind`` and the matching koki wrapper key
    (``{"pod": {...}}`` for ``kind: Pod``).
    """
    name: str = ""
    kind: str = ""
    koki_key: str = ""

    def to_kube(self, obj: dict, ctx: ConvertContext) -> dict:
        """Convert the unwrapped koki object to a kube document. Override in subclasses."""
        raise NotImplementedError

    def to_koki(self, obj: dict, ctx: ConvertContext) -> dict:
        """Convert a kube document to the unwrapped koki object. Override in subclasses."""
        raise NotImplementedError
