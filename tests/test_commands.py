"""
Tests for voice command interpretation.

Verifies:
- Rule order (navigation > generate > convert > help > prompt > unrecognized)
- Payloads and host effects per command kind
- Case-insensitive substring matching
"""
import pytest

from voice_assistant.commands import (
    CONVERT_CODE_ACTION,
    GENERATE_CODE_ACTION,
    HELP_MESSAGE,
    UNRECOGNIZED_MESSAGE,
    CommandInterpreter,
    CommandKind,
    classify,
)
from conftest import FakeHost


class TestNavigation:
    @pytest.mark.parametrize("text,view,message", [
        ("go to dashboard", "dashboard", "Navigating to dashboard"),
        ("Show Dashboard please", "dashboard", "Navigating to dashboard"),
        ("open the code generator", "ai-code-generator", "Opening code generator"),
        ("open the converter", "code-converter", "Opening code converter"),
        ("record bug", "bug-recorder", "Opening bug recorder"),
        ("show my snippets", "code-snippet-library", "Opening snippet library"),
    ])
    def test_navigation_targets(self, text, view, message):
        result = classify(text)

        assert result.kind is CommandKind.NAVIGATE
        assert result.view == view
        assert result.message == message

    def test_navigation_wins_over_generation(self):
        # "generate code" is a navigation phrase, not a generation request
        result = classify("generate code")

        assert result.kind is CommandKind.NAVIGATE
        assert result.view == "ai-code-generator"

    def test_navigation_wins_over_conversion(self):
        result = classify("convert code to python")

        assert result.kind is CommandKind.NAVIGATE
        assert result.view == "code-converter"

    def test_first_target_wins(self):
        # dashboard is listed before the generator
        assert classify("dashboard generator").view == "dashboard"

    def test_substring_match(self):
        # "bugs" matches inside "debugs"
        assert classify("he debugs a lot").view == "bug-recorder"


class TestGeneration:
    def test_generate_login_form(self):
        result = classify("generate a login form")

        assert result.kind is CommandKind.GENERATE
        assert result.prompt == "a login form"
        assert result.action == GENERATE_CODE_ACTION
        assert result.payload == {"prompt": "a login form"}
        assert result.message == "Generating code for: a login form"

    def test_leading_verb_stripped_case_insensitive(self):
        result = classify("Create a REST endpoint")

        assert result.prompt == "a REST endpoint"

    def test_verb_not_leading_keeps_text(self):
        result = classify("please build a parser")

        assert result.kind is CommandKind.GENERATE
        assert result.prompt == "please build a parser"

    def test_generation_wins_over_conversion(self):
        result = classify("create a function to convert dates")

        assert result.kind is CommandKind.GENERATE


class TestConversion:
    def test_convert_javascript_to_python(self):
        result = classify("convert javascript to python")

        assert result.kind is CommandKind.CONVERT
        assert result.action == CONVERT_CODE_ACTION
        assert result.payload == {"command": "convert javascript to python"}
        assert result.message == "Processing code conversion request"

    def test_convert_from(self):
        assert classify("Convert this from Java").kind is CommandKind.CONVERT

    def test_convert_without_direction_is_not_conversion(self):
        # no "to"/"from" substring, longer than the fallback threshold
        result = classify("convert everything")

        assert result.kind is CommandKind.PROMPT


class TestHelpAndFallback:
    def test_help(self):
        result = classify("help")

        assert result.kind is CommandKind.HELP
        assert result.message == HELP_MESSAGE
        assert result.message.startswith("I can help you with:")
        assert not result.has_effect

    def test_what_can_you_do(self):
        assert classify("What can you do?").kind is CommandKind.HELP

    def test_long_text_becomes_prompt(self):
        text = "explain this recursive function to me"
        result = classify(text)

        assert result.kind is CommandKind.PROMPT
        assert result.prompt == text
        assert result.message == (
            f"I'll help you with: {text}. Please navigate to the appropriate tool or I can generate code for you."
        )

    def test_short_text_unrecognized(self):
        result = classify("hi")

        assert result.kind is CommandKind.UNRECOGNIZED
        assert result.message == UNRECOGNIZED_MESSAGE
        assert not result.has_effect

    def test_threshold_is_exclusive(self):
        assert classify("abcdefghij").kind is CommandKind.UNRECOGNIZED
        assert classify("abcdefghijk").kind is CommandKind.PROMPT

    def test_empty(self):
        assert classify("").kind is CommandKind.UNRECOGNIZED
        assert classify("   ").kind is CommandKind.UNRECOGNIZED


def test_to_dict():
    data = classify("generate a login form").to_dict()

    assert data == {
        "kind": "generate",
        "message": "Generating code for: a login form",
        "view": None,
        "prompt": "a login form",
        "action": "generate-code",
        "payload": {"prompt": "a login form"},
    }


class TestInterpreterEffects:
    def test_navigate(self):
        host = FakeHost()
        CommandInterpreter(host).dispatch("go to dashboard")

        assert host.navigations == ["dashboard"]
        assert host.prompts == []
        assert host.actions == []

    def test_generate_sets_prompt_then_action(self):
        host = FakeHost()
        CommandInterpreter(host).dispatch("generate a login form")

        assert host.prompts == ["a login form"]
        assert host.actions == [("generate-code", {"prompt": "a login form"})]

    def test_convert(self):
        host = FakeHost()
        CommandInterpreter(host).dispatch("convert javascript to python")

        assert host.prompts == []
        assert host.actions == [("convert-code", {"command": "convert javascript to python"})]

    def test_prompt_only(self):
        host = FakeHost()
        CommandInterpreter(host).dispatch("explain this recursive function to me")

        assert host.prompts == ["explain this recursive function to me"]
        assert host.actions == []

    @pytest.mark.parametrize("text", ["help", "hi"])
    def test_no_side_effect(self, text):
        host = FakeHost()
        CommandInterpreter(host).dispatch(text)

        assert host.navigations == host.prompts == host.actions == host.messages == []
