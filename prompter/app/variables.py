from __future__ import annotations

import re
from typing import Mapping, Sequence

from prompter.app.models import PromptVariable

# One grammar for both directions: a token is exactly ``{{name}}`` with no inner spaces.
_TOKEN_TEMPLATE = r"\{\{%s\}\}"
_VARIABLE_TOKEN = re.compile(_TOKEN_TEMPLATE % r"([^{}\s]+)")


def _token_pattern(name: str) -> re.Pattern:
    return re.compile(_TOKEN_TEMPLATE % re.escape(name))


def extract_variable_names(content: str) -> list[str]:
    """Return the unique ``{{name}}`` tokens in content, in order of first use."""
    names: list[str] = []
    for match in _VARIABLE_TOKEN.finditer(content or ""):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def undeclared_variables(content: str, variables: Sequence[PromptVariable]) -> list[str]:
    """Tokens in content that no declared variable will ever fill."""
    declared = {variable.name for variable in variables}
    return [name for name in extract_variable_names(content) if name not in declared]


def initial_values(variables: Sequence[PromptVariable]) -> dict[str, str]:
    """Seed form values from each variable's default (empty string when unset)."""
    return {variable.name: variable.default or "" for variable in variables}


def missing_required(variables: Sequence[PromptVariable], values: Mapping[str, str]) -> list[str]:
    return [v.name for v in variables if v.required and not values.get(v.name, "")]


def can_confirm(variables: Sequence[PromptVariable], values: Mapping[str, str]) -> bool:
    """True when every required variable has a non-empty value."""
    return not missing_required(variables, values)


def substitute_variables(content: str, values: Mapping[str, str]) -> str:
    """Replace every literal ``{{name}}`` with its value; unknown tokens are left alone."""
    result = content or ""
    for name, value in values.items():
        result = _token_pattern(name).sub(lambda _m, value=value: value, result)
    return result
