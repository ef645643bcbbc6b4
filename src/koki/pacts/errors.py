"""Conversion errors — malformed shorthand, arity, shape, unsupported kinds."""


class KokiError(Exception):
    """Base class for all conversion failures.

    Errors are raised by the codecs and carry a breadcrumb trail added by
    the converters as they propagate, outermost first:
    ``pod (web): container (app): env: unrecognized env (a=b=c)``.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: list[str] = []

    def contextualize(self, context: str) -> "KokiError":
        """Prepend a breadcrumb naming the enclosing field or object."""
        self.context.insert(0, context)
        return self

    def __str__(self) -> str:
        return ": ".join([*self.context, self.message])


class InvalidValueError(KokiError):
    """A shorthand string (or scalar) that does not match its format."""

    def __init__(self, value, expected: str):
        super().__init__(f"{expected} ({value})")
        self.value = value
        self.expected = expected


class SelectorArityError(InvalidValueError):
    """Wrong number of positional selector segments for a volume type."""

    def __init__(self, vol_type: str, selector: list[str], expected: str):
        super().__init__(":".join([vol_type, *selector]),
                         f"expected {expected} for {vol_type}")
        self.vol_type = vol_type
        self.selector = list(selector)


class TypeMismatchError(KokiError):
    """A value with the wrong shape (e.g. a list where a string belongs)."""

    def __init__(self, value, expected: str = "expected string or dictionary"):
        super().__init__(f"{expected}, got {type(value).__name__} ({value!r})")
        self.value = value
        self.expected = expected


class UnsupportedKindError(KokiError):
    """A document whose kind has no registered converter."""

    def __init__(self, kind: str):
        super().__init__(f"unsupported kind '{kind}'")
        self.kind = kind
