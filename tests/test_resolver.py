"""
Parameter Resolver Tests
------------------------
Placeholder tokenizing and value resolution.
"""

from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from commands.model import Command, CommandParameter, ParameterType
from commands.resolver import (
    Literal,
    Placeholder,
    required_prompts,
    resolve_args,
    resolve_command,
    resolve_value,
    tokenize,
)
from core.errors import InvalidParameterValueError, MissingRequiredParameterError

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def text_param(name, required=False, default=None):
    return CommandParameter(name=name, required=required, default_value=default)


def select_param(name, options, required=True, default=None):
    return CommandParameter(
        name=name,
        parameter_type=ParameterType.SELECT,
        required=required,
        options=options,
        default_value=default,
    )


class TestTokenize:
    """Tests for tokenize()."""

    def test_plain_text(self):
        """Text without braces should be one literal."""
        assert tokenize("--verbose") == [Literal("--verbose")]

    def test_empty_string(self):
        """An empty string should have no tokens."""
        assert tokenize("") == []

    def test_both_syntaxes_and_surrounding_text(self):
        """Both placeholder forms should split out from the text around them."""
        assert tokenize("--out=${dir}/{file}.txt") == [
            Literal("--out="),
            Placeholder(name="dir", raw="${dir}"),
            Literal("/"),
            Placeholder(name="file", raw="{file}"),
            Literal(".txt"),
        ]

    def test_unbalanced_braces_are_literal(self):
        """A lone brace should stay literal text."""
        assert tokenize("{open") == [Literal("{open")]
        assert tokenize("close}") == [Literal("close}")]


class TestResolveValue:
    """Tests for resolve_value()."""

    def test_supplied_value_wins(self):
        """A supplied value should override the default."""
        assert resolve_value(text_param("x", default="d"), "given") == "given"

    def test_default_used_when_absent(self):
        """The default should fill in when nothing is supplied."""
        assert resolve_value(text_param("x", default="d"), None) == "d"

    def test_empty_supplied_falls_back_to_default(self):
        """An empty supplied value should fall back to the default."""
        assert resolve_value(text_param("x", required=True, default="d"), "") == "d"

    def test_missing_required(self):
        """A required parameter with no value should raise, naming it."""
        with pytest.raises(MissingRequiredParameterError) as exc_info:
            resolve_value(text_param("target", required=True), None)

        assert exc_info.value.name == "target"

    def test_empty_supplied_counts_as_missing(self):
        """An empty value for a required parameter counts as missing."""
        with pytest.raises(MissingRequiredParameterError):
            resolve_value(text_param("target", required=True), "")

    def test_optional_without_default_is_empty(self):
        """An optional parameter with no default should resolve to ""."""
        assert resolve_value(text_param("x"), None) == ""

    def test_select_rejects_outside_value(self):
        """A select value outside its options should be rejected."""
        with pytest.raises(InvalidParameterValueError) as exc_info:
            resolve_value(select_param("env", ["dev", "prod"]), "staging")

        assert exc_info.value.value == "staging"

    def test_select_accepts_option(self):
        """A select value from its options should pass through."""
        assert resolve_value(select_param("env", ["dev", "prod"]), "prod") == "prod"

    def test_optional_select_may_be_empty(self):
        """An optional select may resolve to ""."""
        assert resolve_value(select_param("env", ["dev", "prod"], required=False), None) == ""

    def test_select_without_options_is_free_text(self):
        """A select with no options should accept any value."""
        assert resolve_value(select_param("env", None), "anything") == "anything"


class TestResolveArgs:
    """Tests for resolve_args()."""

    def test_deploy_example(self):
        """A required placeholder should be replaced by its value."""
        params = [text_param("target", required=True)]

        assert resolve_args(["deploy", "{target}"], params, {"target": "prod"}) == ["deploy", "prod"]

    def test_deploy_missing_target(self):
        """A missing required placeholder should fail resolution."""
        params = [text_param("target", required=True)]

        with pytest.raises(MissingRequiredParameterError):
            resolve_args(["deploy", "{target}"], params, {})

    def test_args_without_placeholders_unchanged(self):
        """Arguments with no placeholders should come back unchanged."""
        assert resolve_args(["-la", "/tmp"], [], {}) == ["-la", "/tmp"]

    def test_unknown_placeholders_kept_verbatim(self):
        """Undeclared placeholders should stay as written."""
        params = [text_param("known", default="k")]

        assert resolve_args(["{unknown}", "${other}", "{known}"], params, {}) == [
            "{unknown}",
            "${other}",
            "k",
        ]

    def test_repeated_placeholder_substituted_everywhere(self):
        """Every occurrence of a placeholder should be replaced."""
        params = [text_param("name", required=True)]

        assert resolve_args(["{name}-{name}", "${name}"], params, {"name": "x"}) == ["x-x", "x"]

    def test_extra_supplied_values_ignored(self):
        """Values for undeclared names should be ignored."""
        assert resolve_args(["{a}"], [text_param("a")], {"a": "1", "zzz": "2"}) == ["1"]

    def test_undeclared_supplied_value_does_not_substitute(self):
        """A supplied value alone should not declare a parameter."""
        assert resolve_args(["{zzz}"], [], {"zzz": "2"}) == ["{zzz}"]

    def test_required_checked_even_when_not_referenced(self):
        """Required parameters are checked even if no argument uses them."""
        with pytest.raises(MissingRequiredParameterError):
            resolve_args(["static"], [text_param("unused", required=True)], {})


class TestResolveCommand:
    """Tests for resolve_command() and required_prompts()."""

    def make_command(self, **overrides):
        fields = dict(
            id="c1",
            name="Tool",
            command="{tool}",
            args=["--env", "${env}"],
            created_at=NOW,
            updated_at=NOW,
            parameters=[
                text_param("tool", default="make"),
                select_param("env", ["dev", "prod"]),
            ],
        )
        fields.update(overrides)
        return Command(**fields)

    def test_executable_is_resolved(self):
        """Placeholders in the executable should resolve too."""
        resolved = resolve_command(self.make_command(), {"env": "dev"})

        assert resolved.command == "make"
        assert resolved.args == ["--env", "dev"]

    def test_stored_command_untouched(self):
        """Resolving should not modify the stored command."""
        cmd = self.make_command()
        resolve_command(cmd, {"env": "dev", "tool": "ninja"})

        assert cmd.command == "{tool}"
        assert cmd.args == ["--env", "${env}"]

    def test_required_prompts_skip_defaulted(self):
        """Only required parameters without defaults need prompting."""
        cmd = self.make_command(parameters=[
            text_param("a", required=True),
            text_param("b", required=True, default="x"),
            text_param("c"),
        ])

        assert [p.name for p in required_prompts(cmd)] == ["a"]
