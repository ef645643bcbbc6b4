"""Small shared helpers for the codecs and converters."""

from koki.pacts.errors import InvalidValueError, TypeMismatchError


def parse_int(value, expected: str = "expected an integer", bits: int | None = None) -> int:
    """Parse an int from a wire scalar (int or decimal string). Bools are rejected.

    With *bits*, the result must fit a signed integer of that width.
    """
    if isinstance(value, bool):
        raise InvalidValueError(value, expected)
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        try:
            result = int(value, 10)
        except ValueError:
            raise InvalidValueError(value, expected) from None
    else:
        raise InvalidValueError(value, expected)
    if bits is not None and not -(1 << (bits - 1)) <= result < (1 << (bits - 1)):
        raise InvalidValueError(value, f"{expected}, out of range for int{bits}")
    return result


def int_or_string(value: str) -> int | str:
    """Interpret a shorthand segment as a port number when numeric, else a name."""
    if value.isdigit():
        return int(value)
    return value


def parse_file_mode(value) -> int:
    """Parse a file mode written as an octal string ("0644") into an int."""
    if isinstance(value, bool):
        raise InvalidValueError(value, "expected an octal file mode")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 8)
        except ValueError:
            raise InvalidValueError(value, "expected an octal file mode") from None
    raise InvalidValueError(value, "expected an octal file mode")


def format_file_mode(mode: int) -> str:
    """Format an integer file mode as a zero-padded octal string."""
    return f"0{mode:o}"


def expect_dict(value, what: str) -> dict:
    """Return value if it is a dict, else raise a shape error naming *what*."""
    if not isinstance(value, dict):
        raise TypeMismatchError(value, f"expected a dictionary for {what}")
    return value


def expect_list(value, what: str) -> list:
    """Return value if it is a list, else raise a shape error naming *what*."""
    if not isinstance(value, list):
        raise TypeMismatchError(value, f"expected a list for {what}")
    return value


def expect_str(value, what: str) -> str:
    """Return value if it is a string, else raise a shape error naming *what*."""
    if not isinstance(value, str):
        raise TypeMismatchError(value, f"expected a string for {what}")
    return value


def required_to_optional(required: bool | None) -> bool | None:
    """koki ``required`` is the inverse of kube ``optional``; None stays unset."""
    if required is None:
        return None
    return not required


def warn_unknown_keys(obj: dict, known, what: str, ctx) -> None:
    """Warn about (or, in strict mode, reject) koki keys nobody consumed."""
    unknown = sorted(set(obj) - set(known))
    if not unknown:
        return
    if ctx.strict:
        raise InvalidValueError(", ".join(unknown), f"unknown fields in {what}")
    for key in unknown:
        ctx.warnings.append(f"{what}: unsupported field '{key}' ignored")


def optional_to_required(optional: bool | None) -> bool | None:
    """Inverse of required_to_optional."""
    if optional is None:
        return None
    return not optional


def warn_dropped_keys(obj: dict, known, what: str, ctx) -> None:
    """Warn about kube fields that have no koki counterpart."""
    for key in sorted(set(obj) - set(known)):
        ctx.warnings.append(f"{what}: field '{key}' has no koki shorthand, dropped")
