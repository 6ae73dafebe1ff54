"""
Validation Rule Sets

A rule set maps a field name to a pydantic field definition, either a bare type
(required field) or a `(type, default)` tuple (optional field):

    {
        "template_name": str,
        "priority": (Literal["low", "normal", "high"], "normal"),
        "subject": (Optional[constr(max_length=255)], None),
    }

Only keys present in the rule set survive validation, extra keys are dropped.
A missing optional field comes back with its declared default, except a `None`
default, which leaves the field out so the column default applies.
"""

from typing import Any, Dict, List, Mapping

from pydantic import ValidationError, create_model

from .exceptions import UnexpectedInputType, ValidationFailed

RuleSet = Mapping[str, Any]


def _field_definition(rule: Any) -> Any:
    if isinstance(rule, tuple):
        return rule
    return (rule, ...)


def collect_errors(error: ValidationError) -> Dict[str, List[str]]:
    """Group pydantic errors by top-level field name"""
    errors: Dict[str, List[str]] = {}
    for item in error.errors():
        loc = item.get("loc") or ()
        key = str(loc[0]) if loc else "_data"
        errors.setdefault(key, []).append(item["msg"])
    return errors


class Validator:
    """Validates mappings against a rule set and projects them onto its keys"""

    def __init__(self, rules: RuleSet, name: str = "RuleSet"):
        self.rules = dict(rules)
        self.model = create_model(name, **{key: _field_definition(rule) for key, rule in self.rules.items()})
        self._defaulted = {key for key, field in self.model.model_fields.items() if field.default is not None}

    def validate(self, data: Any) -> Dict[str, Any]:
        """
        Validate data and return the validated subset

        Raises:
            ValidationFailed: field-level messages keyed by field name
        """
        try:
            instance = self.model.model_validate(data)
        except ValidationError as e:
            raise ValidationFailed(collect_errors(e))
        return instance.model_dump(include=instance.model_fields_set | self._defaulted)

    def project(self, data: Any) -> Dict[str, Any]:
        """Keep the keys present in the rule set without validating values"""
        if not isinstance(data, Mapping):
            raise UnexpectedInputType(data, [dict])
        return {key: value for key, value in data.items() if key in self.rules}

    def __call__(self, data: Any, validate: bool = True) -> Dict[str, Any]:
        return self.validate(data) if validate else self.project(data)
