"""
Checkout Form Builder
=====================

Builds the client-fillable checkout form of a package from its egg.

The form always starts with the server location, followed by every egg
variable the client may set, in the egg's order. Each field's input type
follows from its validation rules:

    boolean / bool   -> bool
    in:a,b,c         -> select (options a, b, c)
    numeric          -> number (min/max from min:/max:, min defaults to 0)
    anything else    -> text

The first matching signal wins.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .eggs import PLACEHOLDER_TOKENS, RemoteVariable, parse_egg
from .inventory import InventoryResolver
from .models import Package
from .rules import RuleSet


class FieldType(Enum):
    TEXT = "text"
    BOOL = "bool"
    SELECT = "select"
    NUMBER = "number"


@dataclass
class FormField:
    """One input of the checkout form."""
    key: str
    name: str
    description: str
    type: FieldType
    default_value: Any = ""
    rules: List[str] = field(default_factory=list)
    required: bool = False
    options: Optional[Union[List[str], Dict[int, str]]] = None
    min: Optional[str] = None
    max: Optional[str] = None
    disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Rendering contract; optional keys only appear when set."""
        data: Dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "default_value": self.default_value,
            "rules": list(self.rules),
            "required": self.required,
        }
        if self.options is not None:
            data["options"] = (
                dict(self.options) if isinstance(self.options, dict) else list(self.options)
            )
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        if self.disabled:
            data["disabled"] = True
        return data


def field_type_for(rule_set: RuleSet) -> FieldType:
    """Input type implied by a rule set."""
    if rule_set.is_boolean:
        return FieldType.BOOL
    if rule_set.choices is not None:
        return FieldType.SELECT
    if rule_set.is_numeric:
        return FieldType.NUMBER
    return FieldType.TEXT


class CheckoutFormBuilder:
    """Derives checkout form fields for packages."""

    LOCATION_NAME = "Server Location"
    LOCATION_DESCRIPTION = "Where do you want us to deploy your server?"
    NO_LOCATION_DESCRIPTION = (
        "There are currently no locations with room for this package. "
        "Please try again later."
    )

    def __init__(self, inventory: InventoryResolver):
        self.inventory = inventory

    def build_schema(self, package: Package) -> List[FormField]:
        """Location field first, then the client-editable egg variables."""
        return [self.location_field(package)] + self.variable_fields(package)

    def location_field(self, package: Package) -> FormField:
        options = self.inventory.list_available(package)
        if not options:
            return FormField(
                key="location",
                name=self.LOCATION_NAME,
                description=self.NO_LOCATION_DESCRIPTION,
                type=FieldType.SELECT,
                default_value=None,
                rules=["required"],
                required=True,
                options={},
                disabled=True,
            )

        return FormField(
            key="location",
            name=self.LOCATION_NAME,
            description=self.LOCATION_DESCRIPTION,
            type=FieldType.SELECT,
            default_value=next(iter(options)),
            rules=["required"],
            required=True,
            options=options,
        )

    def variable_fields(self, package: Package) -> List[FormField]:
        egg = parse_egg(package.get("egg"))
        excluded = set(package.get("excluded_variables", []))
        environment = package.get("environment", {})

        fields = []
        for variable in egg.variables:
            if not variable.user_viewable or variable.env_variable in excluded:
                continue

            current_value = self._current_value(variable, environment)
            if current_value in PLACEHOLDER_TOKENS:
                continue

            fields.append(self._variable_field(variable, current_value))
        return fields

    @staticmethod
    def _current_value(variable: RemoteVariable, environment: Dict[str, Any]) -> str:
        value = environment.get(variable.env_variable)
        if value is None:
            value = variable.default_value
        return "" if value is None else str(value)

    @staticmethod
    def _variable_field(variable: RemoteVariable, current_value: str) -> FormField:
        rule_set = variable.rule_set
        field_type = field_type_for(rule_set)

        form_field = FormField(
            key=variable.env_variable,
            name=variable.name,
            description=variable.description,
            type=field_type,
            default_value=current_value,
            rules=rule_set.tokens(),
            required=rule_set.required,
        )

        if field_type == FieldType.SELECT:
            form_field.options = rule_set.choices
        elif field_type == FieldType.NUMBER:
            form_field.max = rule_set.maximum
            form_field.min = rule_set.minimum if rule_set.minimum is not None else "0"

        return form_field
