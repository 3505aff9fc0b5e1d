"""
Rule registry for centralized rule management.

The registry provides:
- Explicit control over which rules are available
- Name resolution for the CLI and the checker (ids, aliases, lower-case names)
- Testing isolation (build a private RuleRegistry with only specific rules)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from plancheck.exceptions import ConfigurationError

if TYPE_CHECKING:
    from plancheck.rules.base import Rule

T = TypeVar("T", bound="Rule")


def _canonical(name: str) -> str:
    return name.strip().upper().replace("-", "_")


class RuleRegistry:
    """
    Centralized registry for all plan rules.

    Rules register themselves using the @register_rule decorator.

    Example:
        registry = get_registry()
        rule_cls = registry.resolve("table_scan")   # -> FullScan
        rules = registry.filter(exclude={"ROW_COUNT"})
    """

    def __init__(self) -> None:
        self._rules: dict[str, type[Rule]] = {}
        self._aliases: dict[str, str] = {}

    def register(self, rule_cls: type[T]) -> type[T]:
        """
        Register a rule class and its aliases.

        Raises:
            ValueError: If the rule id or one of its aliases is already taken
        """
        rule_id = rule_cls.rule_id

        if rule_id in self._rules or rule_id in self._aliases:
            existing = self._rules.get(rule_id) or self._rules[self._aliases[rule_id]]
            raise ValueError(
                f"Rule '{rule_id}' already registered by {existing.__module__}.{existing.__name__}. "
                f"Cannot register {rule_cls.__module__}.{rule_cls.__name__}"
            )

        aliases = [_canonical(alias) for alias in rule_cls.aliases]
        for alias in aliases:
            if alias in self._rules or alias in self._aliases:
                raise ValueError(
                    f"Alias '{alias}' of rule '{rule_id}' collides with an existing rule name"
                )

        self._rules[rule_id] = rule_cls
        for alias in aliases:
            self._aliases[alias] = rule_id
        return rule_cls

    def unregister(self, rule_id: str) -> bool:
        """Remove a rule and its aliases. Returns True if it was registered."""
        if rule_id not in self._rules:
            return False
        del self._rules[rule_id]
        self._aliases = {a: r for a, r in self._aliases.items() if r != rule_id}
        return True

    def resolve(self, name: str) -> type[Rule]:
        """
        Resolve a rule id, alias or CLI name to a rule class.

        "full_scan", "FULL_SCAN", "table-scan" and "TABLE_SCAN" all resolve
        to the full scan rule.

        Raises:
            ConfigurationError: If no rule goes by that name
        """
        key = _canonical(name)
        rule_id = self._aliases.get(key, key)
        rule_cls = self._rules.get(rule_id)
        if rule_cls is None:
            raise ConfigurationError(
                f"Unknown rule '{name}'. Available: {', '.join(self.names())}",
                config_key="rule",
            )
        return rule_cls

    def all(self) -> list[type[Rule]]:
        """All rule classes, in registration order."""
        return list(self._rules.values())

    def names(self) -> list[str]:
        """Every accepted name (ids and aliases) in lower case."""
        return sorted(name.lower() for name in [*self._rules, *self._aliases])

    def aliases_for(self, rule_id: str) -> list[str]:
        return [alias for alias, target in self._aliases.items() if target == rule_id]

    def filter(
        self,
        include: set[str] | None = None,
        exclude: set[str] | None = None,
    ) -> list[type[Rule]]:
        """
        Get a filtered list of rule classes.

        Args:
            include: If provided, only include these rule IDs
            exclude: If provided, exclude these rule IDs
        """
        rules = self.all()

        if include is not None:
            rules = [r for r in rules if r.rule_id in include]

        if exclude is not None:
            rules = [r for r in rules if r.rule_id not in exclude]

        return rules

    def clear(self) -> None:
        """Remove all registered rules."""
        self._rules.clear()
        self._aliases.clear()

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: str) -> bool:
        key = _canonical(name)
        return key in self._rules or key in self._aliases


# Global registry instance
_global_registry = RuleRegistry()


def get_registry() -> RuleRegistry:
    """Get the global rule registry."""
    return _global_registry


def register_rule(rule_cls: type[T]) -> type[T]:
    """
    Decorator to register a rule with the global registry.

    Example:
        @register_rule
        class FullScan(Rule):
            rule_id = "FULL_SCAN"
            ...
    """
    return _global_registry.register(rule_cls)
