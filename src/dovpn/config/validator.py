"""Validation helpers for dovpn settings."""

from pydantic import ValidationError as PydanticValidationError

from dovpn.lib.errors import ConfigError


def flatten_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into one message per field.

    Args:
        exc: Pydantic ValidationError exception

    Returns:
        List of human-readable error messages, one per field error
    """
    errors: list[str] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        field_path = ".".join(str(item) for item in loc) if loc else "unknown"
        msg = error.get("msg", "Unknown error")

        if error.get("type") == "value_error":
            errors.append(
                f"Field '{field_path}': {msg} (received: {error.get('input')!r})"
            )
        else:
            errors.append(f"Field '{field_path}': {msg}")

    return errors if errors else ["Validation failed with unknown error"]


def to_config_error(exc: PydanticValidationError, source: str) -> ConfigError:
    """Convert a settings validation failure into a ConfigError.

    Args:
        exc: Pydantic ValidationError raised while building settings
        source: Where the invalid values came from (shown to the user)

    Returns:
        ConfigError naming the first invalid field
    """
    first = exc.errors()[0] if exc.errors() else {}
    loc = first.get("loc", ())
    field = str(loc[0]) if loc else "settings"
    details = "\n".join(flatten_pydantic_errors(exc))
    return ConfigError(field, f"Invalid settings from {source}:\n{details}")
