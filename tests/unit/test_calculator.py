"""
Unit tests for calculator module.

Tests cover:
- Operator precedence and parentheses
- Unary signs and decimals
- Rejection of anything that is not arithmetic
- Division by zero and malformed expressions
"""

import sys
import os

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from wabot.calculator import CalcError, evaluate, format_result, tokenize


class TestEvaluate:
    """Tests for evaluate function."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("2+2*3", 8),
            ("(2+2)*3", 12),
            ("10/4", 2.5),
            ("10 - 2 - 3", 5),
            ("2*3/4", 1.5),
            ("-3+5", 2),
            ("-(2+3)", -5),
            ("+4", 4),
            ("--2", 2),
            ("1.5*2", 3),
            (".5+.5", 1),
            ("  7  ", 7),
            ("((1))", 1),
        ],
    )
    def test_valid_expressions(self, expression, expected):
        """Test arithmetic results."""
        assert evaluate(expression) == expected

    def test_integral_result_is_int(self):
        """Test that 8.0 comes back as int 8."""
        result = evaluate("16/2")
        assert result == 8
        assert isinstance(result, int)

    @pytest.mark.parametrize(
        "expression",
        [
            "import os",
            "__import__('os')",
            "os.system('ls')",
            "2**10",
            "abs(-1)",
            "x+1",
            "1e5",
            "2 % 3",
            "[1]",
        ],
    )
    def test_rejects_non_arithmetic(self, expression):
        """Test that identifiers, calls and other operators are errors."""
        with pytest.raises(CalcError):
            evaluate(expression)

    @pytest.mark.parametrize("expression", ["", "   ", "2+", "(2+3", "2+3)", "*2", "()", "2 3"])
    def test_rejects_malformed(self, expression):
        """Test that malformed expressions raise CalcError."""
        with pytest.raises(CalcError):
            evaluate(expression)

    def test_division_by_zero(self):
        """Test division by zero is reported."""
        with pytest.raises(CalcError, match="zéro"):
            evaluate("1/(2-2)")

    def test_rejects_overlong_expression(self):
        """Test length limit."""
        with pytest.raises(CalcError):
            evaluate("1+" * 200 + "1")

    def test_calc_error_is_value_error(self):
        """Test CalcError can be caught as ValueError."""
        assert issubclass(CalcError, ValueError)


class TestTokenize:
    """Tests for tokenize function."""

    def test_tokens(self):
        assert tokenize("12+(3.5)") == [
            ("num", "12"),
            ("op", "+"),
            ("op", "("),
            ("num", "3.5"),
            ("op", ")"),
        ]

    def test_whitespace_ignored(self):
        assert tokenize(" 1 + 2 ") == [("num", "1"), ("op", "+"), ("num", "2")]


class TestFormatResult:
    """Tests for format_result function."""

    def test_int(self):
        assert format_result(8) == "8"

    def test_float(self):
        assert format_result(2.5) == "2.5"

    def test_float_precision(self):
        assert format_result(1 / 3) == "0.3333333333"
