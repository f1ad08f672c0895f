import string

_DIGITS = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """Render a non-negative integer the way ``Number.toString(36)`` does."""
    if number < 0:
        raise ValueError(f"Cannot encode negative id: {number}")
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(_DIGITS[rem])
    return "".join(reversed(out))


def from_base36(value) -> int | None:
    """Parse a base-36 id, or return None when it is not one."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return int(value, 36)
    except ValueError:
        return None
