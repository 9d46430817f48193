"""
Validation Rule Parsing
=======================

Egg variables carry Laravel-style validation rules as a pipe-delimited
string, e.g. "required|numeric|min:1|max:10". RuleSet parses that string
once into typed rules the form builder can query.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple


BOOLEAN_RULES = ("boolean", "bool")


@dataclass(frozen=True)
class Rule:
    """One rule: a name and its optional argument."""
    name: str
    argument: Optional[str] = None

    @classmethod
    def parse(cls, token: str) -> "Rule":
        name, sep, argument = token.partition(":")
        return cls(name=name.strip().lower(), argument=argument.strip() if sep else None)

    def __str__(self) -> str:
        if self.argument is None:
            return self.name
        return f"{self.name}:{self.argument}"


@dataclass(frozen=True)
class RuleSet:
    """Parsed rule string."""
    raw: str
    rules: Tuple[Rule, ...]

    @classmethod
    def parse(cls, raw: Optional[str]) -> "RuleSet":
        raw = raw or ""
        tokens = [t for t in (part.strip() for part in raw.split("|")) if t]
        return cls(raw=raw, rules=tuple(Rule.parse(t) for t in tokens))

    def tokens(self) -> List[str]:
        """Rule tokens as written, in order."""
        return [str(rule) for rule in self.rules]

    def get(self, name: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def argument(self, name: str) -> Optional[str]:
        rule = self.get(name)
        return rule.argument if rule else None

    @property
    def required(self) -> bool:
        return self.has("required")

    @property
    def is_boolean(self) -> bool:
        return any(self.has(name) for name in BOOLEAN_RULES)

    @property
    def choices(self) -> Optional[List[str]]:
        """Options of an in: rule, or None when there is none."""
        rule = self.get("in")
        if rule is None or not rule.argument:
            return None
        return [choice.strip() for choice in rule.argument.split(",")]

    @property
    def is_numeric(self) -> bool:
        return self.has("numeric")

    def _int_argument(self, name: str) -> Optional[str]:
        value = self.argument(name)
        if value is None:
            return None
        try:
            return str(int(value))
        except ValueError:
            return None

    @property
    def minimum(self) -> Optional[str]:
        return self._int_argument("min")

    @property
    def maximum(self) -> Optional[str]:
        return self._int_argument("max")
