"""Tests for pydantic error conversion in dovpn.config.validator."""

import pytest
from pydantic import ValidationError

from dovpn.config.validator import flatten_pydantic_errors, to_config_error
from dovpn.models.deployment import DeploymentSettings


def _validation_error(**values: object) -> ValidationError:
    with pytest.raises(ValidationError) as exc_info:
        DeploymentSettings(**values)
    return exc_info.value


@pytest.mark.unit
class TestFlattenPydanticErrors:
    """Tests for flatten_pydantic_errors."""

    def test_one_message_per_field(self) -> None:
        """Each invalid field produces one message."""
        exc = _validation_error(region="bad region", token="", ssh_attempts=0)
        messages = flatten_pydantic_errors(exc)
        assert len(messages) == 3
        assert any("'region'" in m for m in messages)
        assert any("'token'" in m for m in messages)
        assert any("'ssh_attempts'" in m for m in messages)

    def test_value_errors_include_input(self) -> None:
        """Custom validator failures echo the rejected value."""
        messages = flatten_pydantic_errors(_validation_error(region="XYZ", token="t"))
        assert "received: 'XYZ'" in messages[0]


@pytest.mark.unit
class TestToConfigError:
    """Tests for to_config_error."""

    def test_names_first_invalid_field(self) -> None:
        """The ConfigError field is the first failing field."""
        error = to_config_error(
            _validation_error(region="nyc3", token="t", size=5), "test input"
        )
        assert error.field == "size"
        assert "Invalid settings from test input" in error.message

    def test_missing_field(self) -> None:
        """Missing required fields are reported."""
        error = to_config_error(_validation_error(token="t"), "test input")
        assert error.field == "region"
