"""Password policy rules, validator and registry."""

import pytest

from credadmin.errors import PasswordPolicyViolation, PolicyConfigurationError
from credadmin.policy import (
    DEFAULT_POLICY,
    MinLength,
    PasswordPolicyValidator,
    PolicyRegistry,
    Rule,
    parse_policy,
    validate_password,
)


@pytest.mark.parametrize("password", ["12345678", "longenough1", "a" * 64])
def test_min_length_accepts_long_enough(password):
    policy = parse_policy("p", {"minLength": 8})
    assert validate_password(password, policy) == []


@pytest.mark.parametrize("password", ["1", "1234567", "short"])
def test_min_length_rejects_short(password):
    policy = parse_policy("p", {"minLength": 8})
    assert validate_password(password, policy) == [
        f"The password length of {len(password)} is less than the required length of 8."
    ]


@pytest.mark.parametrize("password", [None, "", "   ", "\t\n"])
def test_blank_password_gives_single_empty_message(password):
    policy = parse_policy("p", {"minLength": 8})
    assert validate_password(password, policy) == ["Empty password supplied."]


def test_min_length_ignores_surrounding_whitespace():
    policy = parse_policy("p", {"minLength": 8})
    assert validate_password("  abcdefg  ", policy) == [
        "The password length of 7 is less than the required length of 8."
    ]


def test_all_violations_reported_in_rule_order():
    validator = PasswordPolicyValidator.from_config({
        "minLength": 10,
        "requireDigit": True,
        "requireUppercase": True,
        "requireSpecial": True,
    })
    with pytest.raises(PasswordPolicyViolation) as exc_info:
        validator.check("abc")
    assert exc_info.value.messages == [
        "The password length of 3 is less than the required length of 10.",
        "The password must contain at least one digit.",
        "The password must contain at least one uppercase letter.",
        "The password must contain at least one special character.",
    ]
    assert "digit" in str(exc_info.value)


def test_check_passes_silently():
    validator = PasswordPolicyValidator.from_config(
        {"minLength": 8, "requireDigit": True, "requireLowercase": True, "maxLength": 20}
    )
    validator.check("longenough1")


def test_max_length():
    validator = PasswordPolicyValidator.from_config({"maxLength": 4})
    assert validator.validate("abcd") == []
    assert validator.validate("abcde") == [
        "The password length of 5 exceeds the maximum length of 4."
    ]


def test_disabled_pattern_rule_does_nothing():
    validator = PasswordPolicyValidator.from_config({"requireDigit": False})
    assert validator.validate("nodigits") == []


def test_unknown_rule_fails_at_registration():
    registry = PolicyRegistry()
    with pytest.raises(PolicyConfigurationError, match="mustRhyme"):
        registry.register("poetry", {"minLength": 8, "mustRhyme": True})
    # Nothing was registered
    assert registry.names() == []


def test_unknown_rule_is_not_a_recoverable_error():
    with pytest.raises(RuntimeError):
        PasswordPolicyValidator.from_config({"noSuchRule": 1})


@pytest.mark.parametrize("config", [
    {"minLength": "8"},
    {"minLength": -1},
    {"minLength": True},
    {"requireDigit": 1},
])
def test_bad_rule_parameter_fails_at_registration(config):
    with pytest.raises(PolicyConfigurationError):
        parse_policy("p", config)


def test_parsed_rules_are_typed():
    policy = parse_policy("p", {"minLength": 12})
    assert policy.rules == (MinLength(12),)


def test_registry_default_policy():
    registry = PolicyRegistry()
    registry.set_default({"minLength": 8})
    validator = registry.get_validator()
    assert validator.name == DEFAULT_POLICY
    assert validator is registry.get_validator(DEFAULT_POLICY)


def test_registry_caches_validators():
    registry = PolicyRegistry()
    registry.register("admins", {"minLength": 16})
    assert registry.get_validator("admins") is registry.get_validator("admins")


def test_reregistering_invalidates_cache_but_not_held_validators():
    registry = PolicyRegistry()
    registry.register("staff", {"minLength": 8})
    held = registry.get_validator("staff")

    registry.register("staff", {"minLength": 12})
    fresh = registry.get_validator("staff")

    assert fresh is not held
    assert fresh.validate("longenough1") != []
    # Stale validator keeps its original rules
    assert held.validate("longenough1") == []


def test_unknown_policy_name():
    registry = PolicyRegistry()
    with pytest.raises(PolicyConfigurationError):
        registry.get_validator("missing")
    with pytest.raises(PolicyConfigurationError):
        registry.get_validator()


def test_policy_mapping_is_read_only():
    config = {"minLength": 8}
    validator = PasswordPolicyValidator.from_config(config)
    assert validator.policy == {"minLength": 8}
    with pytest.raises(TypeError):
        validator.policy["minLength"] = 1
    # Later changes to the caller's dict do not leak in
    config["minLength"] = 1
    assert validator.policy["minLength"] == 8


def test_rule_base_is_abstract():
    with pytest.raises(TypeError):
        Rule()

    class NoCheck(Rule):
        @classmethod
        def from_param(cls, value):
            return cls()

    with pytest.raises(TypeError):
        NoCheck.from_param(True)
