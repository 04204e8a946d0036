import pytest
from pydantic import ValidationError

from formgen.schemas import ConditionalRule, FieldType, FormField, GeneratedField, normalize_field_type


@pytest.mark.parametrize("raw, expected", [
    ("text", FieldType.TEXT),
    ("tel", FieldType.PHONE),
    ("textarea", FieldType.PARAGRAPH),
    ("select", FieldType.SINGLE_CHOICE),
    ("radio", FieldType.SINGLE_CHOICE),
    ("checkbox", FieldType.BOOLEAN),
    ("multi-choice", FieldType.MULTI_CHOICE),
    ("Date", FieldType.DATE),
    ("signature", FieldType.TEXT),
    (None, FieldType.TEXT),
])
def test_normalize_field_type(raw, expected):
    assert normalize_field_type(raw) is expected


def test_choice_field_requires_options():
    with pytest.raises(ValidationError):
        FormField(id="f1", name="color", label="Color", type="single_choice")

    field = FormField(id="f1", name="color", label="Color", type="select", options=["Red", "Blue"])
    assert field.type is FieldType.SINGLE_CHOICE
    assert field.options == ["Red", "Blue"]


def test_non_choice_field_drops_options():
    field = FormField(id="f1", name="age", label="Age", type="number", options=["1", "2"])
    assert field.options is None


def test_rule_defaults_match_fresh_editor():
    rule = ConditionalRule()
    assert rule.enabled is False
    assert rule.action == "show"
    assert rule.operator == "equals"
    assert rule.sourceFieldId == ""
    assert rule.value == ""


def test_rule_value_is_coerced_to_text():
    assert ConditionalRule(value=None).value == ""
    assert ConditionalRule(value=3).value == "3"


def test_generated_choice_without_options_becomes_text():
    field = GeneratedField(name="plan", label="Plan", type="radio", options=[])
    assert field.type is FieldType.TEXT
    assert field.options is None
