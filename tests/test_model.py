"""
Command Model Tests
-------------------
Validation rules, helpers and the serialized form of a command.
"""

from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from commands.model import (
    Command,
    CommandParameter,
    EnvironmentVariable,
    ParameterType,
    UpdateCommandRequest,
    dedupe_tags,
    validate,
)
from core.errors import (
    DuplicateParameterNameError,
    EmptyCommandError,
    EmptyNameError,
    InvalidSelectDefaultError,
    ValidationError,
)

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_command(**overrides) -> Command:
    fields = dict(id="abc", name="List", command="ls", created_at=NOW, updated_at=NOW)
    fields.update(overrides)
    return Command(**fields)


class TestValidate:
    """Tests for validate()."""

    def test_valid_command_passes(self):
        """A plain command with arguments should validate."""
        validate(make_command(args=["-la"]))

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_blank_name_rejected(self, name):
        """Empty or whitespace-only names should be rejected."""
        with pytest.raises(EmptyNameError):
            validate(make_command(name=name))

    @pytest.mark.parametrize("command", ["", "  "])
    def test_blank_command_rejected(self, command):
        """Empty or whitespace-only executables should be rejected."""
        with pytest.raises(EmptyCommandError):
            validate(make_command(command=command))

    def test_duplicate_parameter_names_rejected(self):
        """Two parameters with the same name should be rejected by name."""
        cmd = make_command(parameters=[
            CommandParameter(name="target"),
            CommandParameter(name="target", required=True),
        ])

        with pytest.raises(DuplicateParameterNameError) as exc_info:
            validate(cmd)

        assert exc_info.value.name == "target"

    def test_select_default_outside_options_rejected(self):
        """A select default must be one of its options."""
        cmd = make_command(parameters=[
            CommandParameter(
                name="env",
                parameter_type=ParameterType.SELECT,
                options=["a", "b"],
                default_value="c",
            )
        ])

        with pytest.raises(InvalidSelectDefaultError):
            validate(cmd)

    def test_select_default_inside_options_accepted(self):
        """A select default listed in its options should validate."""
        cmd = make_command(parameters=[
            CommandParameter(
                name="env",
                parameter_type=ParameterType.SELECT,
                options=["a", "b"],
                default_value="b",
            )
        ])
        validate(cmd)

    def test_select_without_options_is_unconstrained(self):
        """A select with no options should accept any default."""
        cmd = make_command(parameters=[
            CommandParameter(name="env", parameter_type=ParameterType.SELECT, default_value="x")
        ])
        validate(cmd)

    def test_errors_are_validation_errors(self):
        """Specific validation errors should share the ValidationError base."""
        assert issubclass(EmptyNameError, ValidationError)
        assert issubclass(InvalidSelectDefaultError, ValidationError)


class TestCommandHelpers:
    """Tests for the convenience helpers on Command."""

    def test_full_command_joins_with_spaces(self):
        """full_command should join executable and args with single spaces."""
        cmd = make_command(command="git", args=["log", "--oneline"])
        assert cmd.full_command() == "git log --oneline"

    def test_detect_placeholders_both_syntaxes(self):
        """Both {x} and ${x} should be found, each name once, in order."""
        cmd = make_command(
            command="{tool}",
            args=["--env", "${env}", "{target}-{env}"],
        )
        assert cmd.detect_placeholders() == ["tool", "env", "target"]

    def test_effective_environment_skips_unset_pairs(self):
        """Pairs with an empty key or value should not be applied."""
        cmd = make_command(environment_variables=[
            EnvironmentVariable("A", "1"),
            EnvironmentVariable("", "orphan"),
            EnvironmentVariable("B", ""),
        ])
        assert cmd.effective_environment() == {"A": "1"}

    def test_effective_environment_last_duplicate_wins(self):
        """A repeated key should take the last value."""
        cmd = make_command(environment_variables=[
            EnvironmentVariable("MODE", "first"),
            EnvironmentVariable("MODE", "second"),
        ])
        assert cmd.effective_environment() == {"MODE": "second"}

    def test_dedupe_tags_keeps_first_occurrence(self):
        """Repeated tags should collapse to their first position."""
        assert dedupe_tags(["ops", "git", "ops", "db"]) == ["ops", "git", "db"]

    def test_parameter_type_parse(self):
        """Type names should parse case-insensitively, unknown ones as text."""
        assert ParameterType.parse("select") is ParameterType.SELECT
        assert ParameterType.parse("DIRECTORY") is ParameterType.DIRECTORY
        assert ParameterType.parse("weird") is ParameterType.TEXT

    def test_update_request_supplied_fields(self):
        """Only non-None fields count as supplied, empty lists included."""
        request = UpdateCommandRequest(name="A", tags=[])
        assert request.supplied_fields() == {"name": "A", "tags": []}


class TestSerialization:
    """Tests for to_dict()/from_dict()."""

    def test_absent_optionals_are_omitted(self):
        """Unset optional fields should not appear in the stored form."""
        data = make_command().to_dict()

        assert "last_used_at" not in data
        assert "description" not in data
        assert "working_directory" not in data
        assert data["use_count"] == 0
        assert data["mise_enabled"] is False

    def test_parameter_optionals_are_omitted(self):
        """A parameter without default or options should omit both keys."""
        data = CommandParameter(name="x").to_dict()
        assert "default_value" not in data
        assert "options" not in data
        assert data["parameter_type"] == "text"

    def test_full_round_trip(self):
        """A fully populated command should survive to_dict/from_dict unchanged."""
        cmd = make_command(
            args=["{path}"],
            description="List a directory",
            working_directory="/tmp",
            environment_variables=[EnvironmentVariable("LANG", "C")],
            tags=["fs"],
            last_used_at=NOW,
            use_count=4,
            parameters=[
                CommandParameter(
                    name="path",
                    placeholder="Directory",
                    parameter_type=ParameterType.DIRECTORY,
                    required=False,
                    default_value=".",
                ),
                CommandParameter(
                    name="mode",
                    parameter_type=ParameterType.SELECT,
                    options=["short", "long"],
                ),
            ],
            mise_enabled=True,
        )

        assert Command.from_dict(cmd.to_dict()) == cmd

    def test_missing_mise_flag_defaults_false(self):
        """Records written before the mise flag existed should load as disabled."""
        data = make_command().to_dict()
        del data["mise_enabled"]

        assert Command.from_dict(data).mise_enabled is False

    def test_null_optionals_accepted(self):
        """Explicit nulls for optional fields should load as None."""
        data = make_command().to_dict()
        data["last_used_at"] = None
        data["description"] = None

        cmd = Command.from_dict(data)
        assert cmd.last_used_at is None
        assert cmd.description is None

    def test_zulu_timestamps_parse(self):
        """Timestamps ending in Z should parse as UTC."""
        data = make_command().to_dict()
        data["created_at"] = "2025-03-01T09:30:00Z"

        assert Command.from_dict(data).created_at == NOW

    def test_missing_required_field_raises(self):
        """A record without a name should fail to load."""
        data = make_command().to_dict()
        del data["name"]

        with pytest.raises(KeyError):
            Command.from_dict(data)
