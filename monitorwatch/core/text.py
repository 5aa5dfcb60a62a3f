import re

# C0 controls except tab / newline / carriage return, plus DEL.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_text(value, max_length: int):
    """Strip control characters and truncate. Non-strings pass through for type validation."""
    if value is None:
        return ""
    if not isinstance(value, str):
        return value
    return _CONTROL_RE.sub("", value)[:max_length]
