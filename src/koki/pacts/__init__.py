"""Public contracts — errors, conversion context, converter base class."""

from koki.pacts.errors import (
    KokiError, InvalidValueError, SelectorArityError, TypeMismatchError,
    UnsupportedKindError,
)
from koki.pacts.types import ConvertContext, Converter

__all__ = [
    "KokiError",
    "InvalidValueError",
    "SelectorArityError",
    "TypeMismatchError",
    "UnsupportedKindError",
    "ConvertContext",
    "Converter",
]
