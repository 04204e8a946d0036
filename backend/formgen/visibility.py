from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from formgen.schemas import ConditionalRule, FormField


def _as_text(value: Any) -> str:
    # absent, empty and unchecked answers all read as ""
    if value is None or value is False or value == "":
        return ""
    if value is True:
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(item) for item in value)
    return str(value)


def _is_filled(value: Any) -> bool:
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def _equals(source_value: Any, expected: str) -> bool:
    return _as_text(source_value).lower() == expected.lower()


def _not_equals(source_value: Any, expected: str) -> bool:
    return not _equals(source_value, expected)


def _contains(source_value: Any, expected: str) -> bool:
    return expected.lower() in _as_text(source_value).lower()


def _not_empty(source_value: Any, expected: str) -> bool:
    return _is_filled(source_value)


OPERATORS: Dict[str, Callable[[Any, str], bool]] = {
    "equals": _equals,
    "not_equals": _not_equals,
    "contains": _contains,
    "not_empty": _not_empty,
}


def _find_field(fields: Sequence[FormField], field_id: str) -> Optional[FormField]:
    for candidate in fields:
        if candidate.id == field_id:
            return candidate
    return None


def condition_met(rule: ConditionalRule, answers: Mapping[str, Any], all_fields: Sequence[FormField]) -> Optional[bool]:
    """
    Evaluate the rule's condition on its own, ignoring `action`.

    Returns None when the condition cannot be evaluated: the rule is
    disabled, its source field is gone, or the operator is unknown.
    """
    if not rule.enabled:
        return None

    source = _find_field(all_fields, rule.sourceFieldId)
    if source is None:
        return None

    predicate = OPERATORS.get(rule.operator)
    if predicate is None:
        return None

    return predicate(answers.get(source.name), rule.value or "")


def is_visible(field: FormField, answers: Mapping[str, Any], all_fields: Sequence[FormField]) -> bool:
    """
    Decide whether `field` is rendered for the current answers.

    `answers` maps field names to the values entered so far and `all_fields`
    is the form's full field list, used to resolve the rule's source field.
    Anything that cannot be evaluated leaves the field visible.
    """
    rule = field.conditionalRule
    if rule is None:
        return True

    met = condition_met(rule, answers, all_fields)
    if met is None:
        return True

    if rule.action == "show":
        return met
    if rule.action == "hide":
        return not met
    return True


def resolve_visibility(fields: Sequence[FormField], answers: Mapping[str, Any]) -> Dict[str, bool]:
    """
    Visibility of every field at once, `{field id: visible}`.

    A field whose source is itself hidden sees the source as unanswered, so
    a stale answer behind a hidden field cannot reveal anything. Each field
    is resolved once through an id index, so the whole form costs O(N).
    A rule cycle reads the raw answer at the point where it closes.
    """
    by_id = {f.id: f for f in fields}
    resolved: Dict[str, bool] = {}
    pending = set()

    def visible(field: FormField) -> bool:
        if field.id in resolved:
            return resolved[field.id]

        result = True
        rule = field.conditionalRule
        if rule is not None and rule.enabled and rule.action in ("show", "hide"):
            source = by_id.get(rule.sourceFieldId)
            predicate = OPERATORS.get(rule.operator)
            if source is not None and predicate is not None:
                pending.add(field.id)
                source_shown = source.id in pending or visible(source)
                pending.discard(field.id)
                value = answers.get(source.name) if source_shown else None
                met = predicate(value, rule.value or "")
                result = met if rule.action == "show" else not met

        resolved[field.id] = result
        return result

    return {f.id: visible(f) for f in fields}


def visible_fields(fields: Sequence[FormField], answers: Mapping[str, Any]) -> List[FormField]:
    shown = resolve_visibility(fields, answers)
    return [f for f in fields if shown[f.id]]


def visibility_map(fields: Sequence[FormField], answers: Mapping[str, Any]) -> Dict[str, bool]:
    return resolve_visibility(fields, answers)


def effective_answers(fields: Sequence[FormField], answers: Mapping[str, Any]) -> Dict[str, Any]:
    """The answers of visible fields only; hidden and unknown keys are dropped."""
    return {f.name: answers[f.name] for f in visible_fields(fields, answers) if f.name in answers}


def missing_required(fields: Sequence[FormField], answers: Mapping[str, Any]) -> List[FormField]:
    """Visible required fields that have no answer yet. Hidden fields are never demanded."""
    return [
        f for f in visible_fields(fields, answers)
        if f.required and not _is_filled(answers.get(f.name))
    ]
