"""Rule engine: apply a rule set to a parameter mapping.

A rule set maps a field (or a field group) to one or more rules::

    {
        "channel_mask": (Rule.MANDATORY, Rule.CHANNEL_MASK),
        ("offset", "limit"): (Rule.NUMBER, Rule.POSITIVE),
        ("id", "before", "after", "at"): Rule.SOME,
    }

Comma-joined strings are accepted on both sides (``"offset,limit":
"number,positive"``) and parsed into :class:`Rule` members up front, so
an unknown token fails before any parameter is inspected.

INVARIANT: Normalized values are written back into the mapping in place;
nothing else in the mapping is touched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, MutableMapping
from typing import Any, TypeAlias

from plugrest.errors import InvalidParameter
from plugrest.validation.rules import Rule, describe_failure, validator_for

FieldSpec: TypeAlias = str | tuple[str, ...]
RuleSpec: TypeAlias = str | Rule | Iterable[Rule | str]
RuleSet: TypeAlias = Mapping[FieldSpec, RuleSpec]


def _split(spec: str) -> list[str]:
    return [part.strip() for part in spec.split(",") if part.strip()]


def parse_rules(spec: RuleSpec) -> tuple[Rule, ...]:
    """Turn a rule spec into a tuple of :class:`Rule` members.

    Examples:
        >>> parse_rules("mandatory,plugidpub")
        (<Rule.MANDATORY: 'mandatory'>, <Rule.PLUGIDPUB: 'plugidpub'>)
    """
    if isinstance(spec, Rule):
        return (spec,)
    if isinstance(spec, str):
        return tuple(Rule.parse(token) for token in _split(spec))
    return tuple(item if isinstance(item, Rule) else Rule.parse(item) for item in spec)


def _fields(spec: FieldSpec) -> tuple[str, ...]:
    if isinstance(spec, str):
        return tuple(_split(spec))
    return tuple(spec)


def _compile(rules: RuleSet) -> list[tuple[tuple[str, ...], tuple[Rule, ...]]]:
    return [(_fields(fields), parse_rules(spec)) for fields, spec in rules.items()]


def check_params(params: MutableMapping[str, Any] | None, rules: RuleSet) -> None:
    """Validate *params* against *rules*, normalizing values in place.

    Raises:
        InvalidParameter: A field is missing or violates a rule.
        RuleDefinitionError: *rules* names an unknown rule.
    """
    compiled = _compile(rules)
    if params is not None and not isinstance(params, MutableMapping):
        raise InvalidParameter("parameters must be passed as an object")
    values: MutableMapping[str, Any] = params if params is not None else {}

    for fields, field_rules in compiled:
        for name in fields:
            _check_field(values, name, field_rules)

    for fields, field_rules in compiled:
        for rule in field_rules:
            if rule.is_group and not any(name in values for name in fields):
                group = ",".join(fields)
                raise InvalidParameter(
                    f"at least one of these fields is required: {group}",
                    field=group,
                    rule=rule,
                )


def _check_field(values: MutableMapping[str, Any], name: str, rules: tuple[Rule, ...]) -> None:
    for rule in rules:
        if rule is Rule.MANDATORY:
            if name not in values:
                raise InvalidParameter(f"missing parameter: {name}", field=name, rule=rule)
            continue
        if name not in values or rule.is_group:
            continue
        value = values[name]
        check = validator_for(rule)(value)
        if not check.ok:
            raise InvalidParameter(describe_failure(rule, name, value), field=name, rule=rule)
        if check.value is not value:
            values[name] = check.value
