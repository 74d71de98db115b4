"""
CredAdmin - Password Policy

A policy is a named mapping of rule name to rule parameter, for example
{"minLength": 8}. Each known rule name maps to a rule class; a policy is
parsed into rule instances when it is registered, so an unknown rule or a bad
parameter fails at configuration time rather than at the first password
check.

Validators are cached per policy name. Re-registering a name drops the cached
validator, so later lookups see the new rules. A validator a caller already
holds keeps enforcing the rules it was built with.
"""

import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

import structlog

from .errors import PasswordPolicyViolation, PolicyConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_POLICY = "default"

SPECIAL_CHARS = r"[!@#$%^&*(),.?\":{}|<>_=+\-\[\]\\/;'`~]"


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class Rule(ABC):
    """Base for policy rules. Subclasses set `name` and implement check()."""

    name: ClassVar[str] = ""

    @classmethod
    @abstractmethod
    def from_param(cls, value: Any) -> "Rule":
        """Build the rule from its policy parameter, or raise PolicyConfigurationError."""

    @abstractmethod
    def check(self, password: Optional[str]) -> Optional[str]:
        """Return a violation message, or None if the password passes."""


def _int_param(rule_name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise PolicyConfigurationError(
            f"Rule {rule_name} needs a non-negative integer, got {value!r}"
        )
    return value


def _bool_param(rule_name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise PolicyConfigurationError(
            f"Rule {rule_name} needs true or false, got {value!r}"
        )
    return value


@dataclass(frozen=True)
class MinLength(Rule):
    name: ClassVar[str] = "minLength"
    length: int

    @classmethod
    def from_param(cls, value: Any) -> "MinLength":
        return cls(_int_param(cls.name, value))

    def check(self, password: Optional[str]) -> Optional[str]:
        # Surrounding whitespace does not count towards the length
        pw_length = len(password.strip()) if password is not None else 0
        if pw_length == 0:
            return "Empty password supplied."
        if pw_length < self.length:
            return (f"The password length of {pw_length} is less than the "
                    f"required length of {self.length}.")
        return None


@dataclass(frozen=True)
class MaxLength(Rule):
    name: ClassVar[str] = "maxLength"
    length: int

    @classmethod
    def from_param(cls, value: Any) -> "MaxLength":
        return cls(_int_param(cls.name, value))

    def check(self, password: Optional[str]) -> Optional[str]:
        if password and len(password) > self.length:
            return (f"The password length of {len(password)} exceeds the "
                    f"maximum length of {self.length}.")
        return None


@dataclass(frozen=True)
class PatternRule(Rule):
    """A rule requiring at least one character matching `pattern`."""

    pattern: ClassVar[str] = ""
    message: ClassVar[str] = ""
    required: bool

    @classmethod
    def from_param(cls, value: Any) -> "PatternRule":
        return cls(_bool_param(cls.name, value))

    def check(self, password: Optional[str]) -> Optional[str]:
        if self.required and not re.search(self.pattern, password or ""):
            return self.message
        return None


@dataclass(frozen=True)
class RequireDigit(PatternRule):
    name: ClassVar[str] = "requireDigit"
    pattern: ClassVar[str] = r"\d"
    message: ClassVar[str] = "The password must contain at least one digit."


@dataclass(frozen=True)
class RequireUppercase(PatternRule):
    name: ClassVar[str] = "requireUppercase"
    pattern: ClassVar[str] = r"[A-Z]"
    message: ClassVar[str] = "The password must contain at least one uppercase letter."


@dataclass(frozen=True)
class RequireLowercase(PatternRule):
    name: ClassVar[str] = "requireLowercase"
    pattern: ClassVar[str] = r"[a-z]"
    message: ClassVar[str] = "The password must contain at least one lowercase letter."


@dataclass(frozen=True)
class RequireSpecial(PatternRule):
    name: ClassVar[str] = "requireSpecial"
    pattern: ClassVar[str] = SPECIAL_CHARS
    message: ClassVar[str] = "The password must contain at least one special character."


RULES: Dict[str, type] = {
    rule.name: rule
    for rule in (MinLength, MaxLength, RequireDigit, RequireUppercase,
                 RequireLowercase, RequireSpecial)
}


# =============================================================================
# Policies
# =============================================================================

@dataclass(frozen=True)
class PasswordPolicy:
    name: str
    rules: Tuple[Rule, ...]
    config: Mapping[str, Any]


def parse_policy(name: str, config: Mapping[str, Any]) -> PasswordPolicy:
    """
    Turn a raw rule mapping into a typed policy.

    Raises:
        PolicyConfigurationError: Unknown rule name or invalid parameter
    """
    rules = []
    for rule_name, value in config.items():
        rule_cls = RULES.get(rule_name)
        if rule_cls is None:
            raise PolicyConfigurationError(
                f"Policy {name!r}: validation for {rule_name!r} is not implemented"
            )
        rules.append(rule_cls.from_param(value))
    return PasswordPolicy(name, tuple(rules), MappingProxyType(dict(config)))


def validate_password(password: Optional[str], policy: PasswordPolicy) -> List[str]:
    """Apply every rule of the policy, in order. Returns all violation messages."""
    messages = []
    for rule in policy.rules:
        message = rule.check(password)
        if message is not None:
            messages.append(message)
    return messages


class PasswordPolicyValidator:
    """Checks candidate passwords against one policy."""

    def __init__(self, policy: PasswordPolicy):
        self._policy = policy

    @classmethod
    def from_config(cls, config: Mapping[str, Any], name: str = DEFAULT_POLICY):
        return cls(parse_policy(name, config))

    @property
    def name(self) -> str:
        return self._policy.name

    @property
    def policy(self) -> Mapping[str, Any]:
        """The raw rule mapping, read-only."""
        return self._policy.config

    def validate(self, password: Optional[str]) -> List[str]:
        return validate_password(password, self._policy)

    def check(self, password: Optional[str]) -> None:
        """
        Raises:
            PasswordPolicyViolation: With every violation, if any
        """
        messages = self.validate(password)
        if messages:
            raise PasswordPolicyViolation(messages)


# =============================================================================
# Registry
# =============================================================================

class PolicyRegistry:
    """
    Named policies and their cached validators.

    Usage:
        registry = PolicyRegistry()
        registry.set_default({"minLength": 8})
        validator = registry.get_validator()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._policies: Dict[str, PasswordPolicy] = {}
        self._validators: Dict[str, PasswordPolicyValidator] = {}

    def register(self, name: str, config: Mapping[str, Any]) -> PasswordPolicy:
        """Add or replace a named policy. Replacing drops its cached validator."""
        policy = parse_policy(name, config)
        with self._lock:
            replaced = name in self._policies
            self._policies[name] = policy
            self._validators.pop(name, None)
        logger.debug("policy.registered", policy=name, replaced=replaced,
                     rules=list(policy.config))
        return policy

    def set_default(self, config: Mapping[str, Any]) -> PasswordPolicy:
        return self.register(DEFAULT_POLICY, config)

    def get_validator(self, name: Optional[str] = None) -> PasswordPolicyValidator:
        """
        Return the (cached) validator for a policy; None means the default.

        Raises:
            PolicyConfigurationError: If no policy has that name
        """
        name = DEFAULT_POLICY if name is None else name
        with self._lock:
            policy = self._policies.get(name)
            if policy is None:
                raise PolicyConfigurationError(
                    f"No password policy is configured under the name {name!r}"
                )
            validator = self._validators.get(name)
            if validator is None:
                validator = PasswordPolicyValidator(policy)
                self._validators[name] = validator
            return validator

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._policies)
