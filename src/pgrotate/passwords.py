"""
Password generation for rotated credentials.

Passwords are drawn from the operating system CSPRNG through the
``secrets`` module. Characters that need escaping inside a SQL literal
or a connection URI are never produced.
"""

from __future__ import annotations

import re
import secrets
import string

from pgrotate.config import PasswordPolicy
from pgrotate.exceptions import ConfigurationError

_SYSTEM_RANDOM = secrets.SystemRandom()


def character_classes(policy: PasswordPolicy) -> dict[str, str]:
    """
    Get the allowed characters of each class under a policy.

    Returns:
        Mapping of class name to allowed characters
    """
    excluded = set(policy.exclude_characters)
    classes = {
        "uppercase": string.ascii_uppercase,
        "lowercase": string.ascii_lowercase,
        "digit": string.digits,
        "symbol": policy.symbols,
    }
    return {
        name: "".join(c for c in chars if c not in excluded)
        for name, chars in classes.items()
    }


def generate_password(policy: PasswordPolicy | None = None) -> str:
    """
    Generate a password that satisfies a policy.

    When the policy requires each character type, one character of each
    class is placed first and the rest are drawn from the combined
    alphabet, then the whole password is shuffled.

    Args:
        policy: Password policy (defaults to 32 characters, all types)

    Returns:
        The generated password

    Raises:
        ConfigurationError: If exclusions leave a required class empty
    """
    policy = policy or PasswordPolicy()
    classes = character_classes(policy)

    empty = [name for name, chars in classes.items() if not chars]
    if empty and policy.require_each_type:
        raise ConfigurationError(
            f"Excluded characters leave no {', '.join(empty)} characters"
        )

    alphabet = "".join(classes.values())
    chars: list[str] = []
    if policy.require_each_type:
        chars.extend(secrets.choice(pool) for pool in classes.values())
    chars.extend(secrets.choice(alphabet) for _ in range(policy.length - len(chars)))

    _SYSTEM_RANDOM.shuffle(chars)
    return "".join(chars)


def validate_password(password: str, policy: PasswordPolicy | None = None) -> list[str]:
    """
    Check a password against a policy.

    Returns:
        List of violations, empty when the password is acceptable
    """
    policy = policy or PasswordPolicy()
    errors = []

    if len(password) != policy.length:
        errors.append(f"Password must be exactly {policy.length} characters")

    bad = sorted(set(password) & set(policy.exclude_characters))
    if bad:
        errors.append(f"Password contains excluded characters: {''.join(bad)}")

    if policy.require_each_type:
        if not re.search(r"[A-Z]", password):
            errors.append("Password must contain an uppercase letter")
        if not re.search(r"[a-z]", password):
            errors.append("Password must contain a lowercase letter")
        if not re.search(r"\d", password):
            errors.append("Password must contain a digit")
        if not any(c in policy.symbols for c in password):
            errors.append("Password must contain a symbol")

    return errors
