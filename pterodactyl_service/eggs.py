"""
Egg Descriptors
===============

An egg is the panel's application template. Packages store the egg as
returned by the panel API; this module turns that into typed values.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import json

from .errors import ValidationError
from .rules import RuleSet


# Values the panel/adapter fills in at deploy time. Variables whose value is
# one of these are never shown to the client.
PLACEHOLDER_TOKENS = frozenset({
    "AUTO_PORT",
    "USERNAME",
    "RANDOM_TEXT",
    "RANDOM_NUMBER",
    "NODE_IP",
    "PASSWORD",
})


@dataclass(frozen=True)
class RemoteVariable:
    """A configurable environment variable of an egg."""
    env_variable: str
    name: str = ""
    description: str = ""
    user_viewable: bool = True
    user_editable: bool = True
    default_value: Optional[str] = None
    rules: str = ""

    @property
    def rule_set(self) -> RuleSet:
        return RuleSet.parse(self.rules)

    @classmethod
    def from_api(cls, attributes: Dict[str, Any]) -> "RemoteVariable":
        return cls(
            env_variable=attributes["env_variable"],
            name=attributes.get("name") or attributes["env_variable"],
            description=attributes.get("description") or "",
            user_viewable=bool(attributes.get("user_viewable", False)),
            user_editable=bool(attributes.get("user_editable", False)),
            default_value=attributes.get("default_value"),
            rules=attributes.get("rules") or "",
        )


@dataclass(frozen=True)
class Egg:
    """Application template with its variables."""
    id: Optional[int] = None
    nest: Optional[int] = None
    name: str = ""
    docker_image: str = ""
    startup: str = ""
    variables: List[RemoteVariable] = field(default_factory=list)

    def default_environment(self) -> Dict[str, str]:
        return {
            v.env_variable: "" if v.default_value is None else str(v.default_value)
            for v in self.variables
        }


def parse_egg(descriptor: Union[str, Dict[str, Any], None]) -> Egg:
    """
    Parse an egg descriptor.

    Accepts the JSON string stored on a package or an already decoded
    mapping, either bare attributes or wrapped in {"attributes": ...}.

    Raises:
        ValidationError: If the descriptor is not valid JSON
    """
    if not descriptor:
        return Egg()

    if isinstance(descriptor, str):
        try:
            data = json.loads(descriptor)
        except ValueError as e:
            raise ValidationError(f"Egg descriptor is not valid JSON: {e}")
    else:
        data = descriptor

    if not isinstance(data, dict):
        raise ValidationError("Egg descriptor must be an object")

    if "attributes" in data and isinstance(data["attributes"], dict):
        data = data["attributes"]

    variables_data = (
        data.get("relationships", {}).get("variables", {}).get("data", []) or []
    )

    return Egg(
        id=data.get("id"),
        nest=data.get("nest"),
        name=data.get("name", ""),
        docker_image=data.get("docker_image", ""),
        startup=data.get("startup", ""),
        variables=[
            RemoteVariable.from_api(item.get("attributes", {}))
            for item in variables_data
        ],
    )
