"""
Unit tests for password generation.
"""

from __future__ import annotations

import string
from unittest.mock import patch

import pytest

from pgrotate.config import PasswordPolicy
from pgrotate.exceptions import ConfigurationError
from pgrotate.passwords import character_classes, generate_password, validate_password

UNSAFE = "\"@/\\'"


class TestGeneratePassword:
    """Tests for generate_password."""

    def test_default_policy(self):
        """Test generated passwords meet the default policy."""
        for _ in range(200):
            password = generate_password()

            assert len(password) == 32
            assert not set(password) & set(UNSAFE)
            assert any(c in string.ascii_uppercase for c in password)
            assert any(c in string.ascii_lowercase for c in password)
            assert any(c in string.digits for c in password)
            assert any(c in PasswordPolicy().symbols for c in password)
            assert validate_password(password) == []

    def test_custom_length(self):
        """Test length follows the policy."""
        password = generate_password(PasswordPolicy(length=64))

        assert len(password) == 64

    def test_minimum_length_has_every_class(self):
        """Test a 4 character password still has one of each class."""
        for _ in range(50):
            password = generate_password(PasswordPolicy(length=4))

            assert validate_password(password, PasswordPolicy(length=4)) == []

    def test_custom_exclusions(self):
        """Test extra excluded characters never appear."""
        policy = PasswordPolicy(exclude_characters="aeiouAEIOU0")

        for _ in range(100):
            password = generate_password(policy)

            assert not set(password) & set("aeiouAEIOU0" + UNSAFE)

    def test_passwords_differ(self):
        """Test consecutive passwords are distinct."""
        passwords = {generate_password() for _ in range(50)}

        assert len(passwords) == 50

    def test_uses_secrets_module(self):
        """Test characters are drawn from the secrets CSPRNG."""
        with patch("pgrotate.passwords.secrets.choice", return_value="A") as mock_choice:
            generate_password(PasswordPolicy(length=8, require_each_type=False))

        assert mock_choice.call_count == 8

    def test_excluding_a_whole_class(self):
        """Test excluding every digit is a configuration error."""
        policy = PasswordPolicy(exclude_characters=string.digits)

        with pytest.raises(ConfigurationError) as exc_info:
            generate_password(policy)

        assert "digit" in str(exc_info.value)


class TestCharacterClasses:
    """Tests for character_classes."""

    def test_symbols_exclude_unsafe_characters(self):
        """Test the symbol class never holds unsafe characters."""
        classes = character_classes(PasswordPolicy(symbols="!@#'/"))

        assert classes["symbol"] == "!#"


class TestValidatePassword:
    """Tests for validate_password."""

    def test_valid(self):
        """Test a compliant password."""
        password = "Aa1!" + "x" * 28

        assert validate_password(password) == []

    def test_wrong_length(self):
        """Test length violations."""
        errors = validate_password("Aa1!")

        assert any("32" in e for e in errors)

    @pytest.mark.parametrize("char", list(UNSAFE))
    def test_excluded_character(self, char):
        """Test unsafe characters are reported."""
        password = "Aa1!" + char + "x" * 27

        errors = validate_password(password)

        assert any("excluded" in e for e in errors)

    @pytest.mark.parametrize(
        "password,expected",
        [
            ("a1!" + "x" * 29, "uppercase"),
            ("A1!" + "X" * 29, "lowercase"),
            ("Aa!" + "x" * 29, "digit"),
            ("Aa1" + "x" * 29, "symbol"),
        ],
    )
    def test_missing_class(self, password, expected):
        """Test each missing class is reported."""
        errors = validate_password(password)

        assert any(expected in e for e in errors)
