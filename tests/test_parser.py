"""Unit tests for parser module."""

import unittest

from cali_pkg.currency import RateCache
from cali_pkg.expressions import (
    AssignmentExpr,
    BinaryOpExpr,
    ConvertExpr,
    DateOffsetExpr,
    ErrorExpr,
    NumberExpr,
    Op,
    PercentageExpr,
    PercentOfExpr,
    UnitValueExpr,
    VariableExpr,
)
from cali_pkg.parser import (
    is_blank_or_comment,
    parse_line,
    parse_number,
    parse_simple_value,
    strip_comment,
)
from cali_pkg.types import Number, Percentage


class TestHelpers(unittest.TestCase):
    """Test comment handling and number parsing."""

    def test_strip_comment(self):
        self.assertEqual(strip_comment("10 + 2  # groceries"), "10 + 2")
        self.assertEqual(strip_comment("   5   "), "5")
        self.assertEqual(strip_comment("# only a comment"), "")

    def test_blank_or_comment(self):
        self.assertTrue(is_blank_or_comment(""))
        self.assertTrue(is_blank_or_comment("    "))
        self.assertTrue(is_blank_or_comment("  # note"))
        self.assertFalse(is_blank_or_comment("1 + 1 # note"))

    def test_parse_number(self):
        self.assertEqual(parse_number("42"), 42.0)
        self.assertEqual(parse_number(" -3.5 "), -3.5)
        self.assertEqual(parse_number("1e5"), 100000.0)
        self.assertIsNone(parse_number("12abc"))
        self.assertIsNone(parse_number(""))


class TestSimpleValues(unittest.TestCase):
    """Test the fallback stage for literals and variables."""

    def test_number(self):
        self.assertEqual(parse_line("42", {}), NumberExpr(42.0))

    def test_percentage_literal(self):
        self.assertEqual(parse_line("15%", {}), PercentageExpr(15.0))

    def test_unit_value(self):
        self.assertEqual(parse_line("10 USD", {}), UnitValueExpr(10.0, "USD"))
        self.assertEqual(parse_line("5kg", {}), UnitValueExpr(5.0, "kg"))

    def test_scientific_number_is_not_a_unit(self):
        self.assertEqual(parse_line("1e5", {}), NumberExpr(100000.0))

    def test_signed_exponent_stays_in_number(self):
        self.assertEqual(parse_line("1e-5", {}), NumberExpr(1e-05))
        self.assertEqual(parse_line("2.5E+3", {}), NumberExpr(2500.0))

    def test_signed_exponent_then_operator(self):
        self.assertEqual(
            parse_line("2e-3 + 1", {}),
            BinaryOpExpr(NumberExpr(0.002), Op.ADD, NumberExpr(1.0)),
        )

    def test_bound_variable(self):
        self.assertEqual(parse_line("price", {"price": Number(3.0)}), VariableExpr("price"))

    def test_unbound_word_is_error(self):
        self.assertEqual(parse_line("foo", {}), ErrorExpr("Cannot parse expression: foo"))

    def test_variable_with_currency(self):
        expr = parse_simple_value("z USD", {"z": Number(7.0)})
        self.assertEqual(
            expr,
            BinaryOpExpr(VariableExpr("z"), Op.MULTIPLY, UnitValueExpr(1.0, "USD")),
        )

    def test_empty_line(self):
        self.assertEqual(parse_line("   ", {}), ErrorExpr("Empty expression"))
        self.assertEqual(parse_line("# comment", {}), ErrorExpr("Empty expression"))


class TestArithmetic(unittest.TestCase):
    """Test binary operator splitting."""

    def test_addition(self):
        self.assertEqual(
            parse_line("1 + 2", {}),
            BinaryOpExpr(NumberExpr(1.0), Op.ADD, NumberExpr(2.0)),
        )

    def test_subtraction_chain_groups_right(self):
        expr = parse_line("10 - 2 - 3", {})
        self.assertEqual(
            expr,
            BinaryOpExpr(
                NumberExpr(10.0),
                Op.SUBTRACT,
                BinaryOpExpr(NumberExpr(2.0), Op.SUBTRACT, NumberExpr(3.0)),
            ),
        )

    def test_additive_binds_loosest(self):
        expr = parse_line("2 * 3 + 4", {})
        self.assertEqual(
            expr,
            BinaryOpExpr(
                BinaryOpExpr(NumberExpr(2.0), Op.MULTIPLY, NumberExpr(3.0)),
                Op.ADD,
                NumberExpr(4.0),
            ),
        )

    def test_multiplicative_operators(self):
        for symbol, op in (("*", Op.MULTIPLY), ("/", Op.DIVIDE), ("^", Op.POWER), ("%", Op.MODULO)):
            with self.subTest(symbol=symbol):
                self.assertEqual(
                    parse_line(f"7 {symbol} 2", {}),
                    BinaryOpExpr(NumberExpr(7.0), op, NumberExpr(2.0)),
                )

    def test_negative_literal(self):
        self.assertEqual(parse_line("-5", {}), NumberExpr(-5.0))

    def test_incomplete_expression(self):
        self.assertEqual(parse_line("10 +", {}), ErrorExpr("Cannot parse expression: 10 +"))


class TestGrammarStages(unittest.TestCase):
    """Test the keyword-driven forms."""

    def test_assignment(self):
        expr = parse_line("x = 5", {})
        self.assertEqual(expr, AssignmentExpr("x", NumberExpr(5.0)))

    def test_assignment_requires_identifier(self):
        expr = parse_line("2x = 4", {})
        self.assertIsInstance(expr, ErrorExpr)

    def test_assignment_of_conversion(self):
        expr = parse_line("total = 3 ft in cm", {})
        self.assertEqual(
            expr,
            AssignmentExpr("total", ConvertExpr(UnitValueExpr(3.0, "ft"), "cm")),
        )

    def test_conversion(self):
        self.assertEqual(
            parse_line("10 USD in EUR", {}),
            ConvertExpr(UnitValueExpr(10.0, "USD"), "EUR"),
        )
        self.assertEqual(
            parse_line("2 hours to min", {}),
            ConvertExpr(UnitValueExpr(2.0, "hours"), "min"),
        )

    def test_conversion_splits_on_last_keyword(self):
        expr = parse_line("5 in to cm", {})
        self.assertEqual(expr, ConvertExpr(UnitValueExpr(5.0, "in"), "cm"))

    def test_percent_of(self):
        self.assertEqual(
            parse_line("20% of 50", {}),
            PercentOfExpr(NumberExpr(20.0), NumberExpr(50.0)),
        )

    def test_percent_of_unit(self):
        self.assertEqual(
            parse_line("20% of 50 USD", {}),
            PercentOfExpr(NumberExpr(20.0), UnitValueExpr(50.0, "USD")),
        )

    def test_variable_of(self):
        expr = parse_line("tax of 100", {"tax": Percentage(8.0)})
        self.assertEqual(expr, PercentOfExpr(VariableExpr("tax"), NumberExpr(100.0)))

    def test_variable_of_requires_binding(self):
        self.assertIsInstance(parse_line("tax of 100", {}), ErrorExpr)

    def test_of_what_is(self):
        self.assertEqual(
            parse_line("20 of what is 10", {}),
            PercentOfExpr(NumberExpr(20.0), NumberExpr(10.0)),
        )

    def test_percent_literal_of_what_is(self):
        # the "%" form wins, leaving "what is 10" as the value
        expr = parse_line("20% of what is 10", {})
        self.assertIsInstance(expr, PercentOfExpr)
        self.assertEqual(expr.percent, NumberExpr(20.0))
        self.assertIsInstance(expr.value, ErrorExpr)

    def test_bound_variable_of_what_is(self):
        expr = parse_line("p of what is 10", {"p": Number(20.0)})
        self.assertEqual(expr.percent, VariableExpr("p"))
        self.assertIsInstance(expr.value, ErrorExpr)

    def test_date_offset(self):
        self.assertEqual(parse_line("next friday", {}), DateOffsetExpr("friday", 0, "days"))
        self.assertEqual(
            parse_line("next Monday + 2 weeks", {}),
            DateOffsetExpr("monday", 2, "weeks"),
        )
        self.assertEqual(
            parse_line("next monday - 1 day", {}),
            DateOffsetExpr("monday", -1, "day"),
        )

    def test_trailing_comment_is_ignored(self):
        self.assertEqual(
            parse_line("3 * 4 # dozen", {}),
            BinaryOpExpr(NumberExpr(3.0), Op.MULTIPLY, NumberExpr(4.0)),
        )


class TestSetRate(unittest.TestCase):
    """Test that setrate lines install rates as a parse-time side effect."""

    def setUp(self):
        self.rates = RateCache(fetcher=dict, refresh_on_start=False)

    def test_setrate_installs_rate(self):
        expr = parse_line("setrate USD to GBP = 0.65", {}, self.rates)
        self.assertEqual(expr, UnitValueExpr(0.65, "GBP"))
        self.assertEqual(self.rates.get_exchange_rate("USD", "GBP"), 0.65)
        self.assertAlmostEqual(self.rates.get_exchange_rate("GBP", "USD"), 1 / 0.65)

    def test_setrate_is_case_insensitive(self):
        expr = parse_line("SetRate eur in jpy = 160", {}, self.rates)
        self.assertEqual(expr, UnitValueExpr(160.0, "JPY"))
        self.assertEqual(self.rates.get_exchange_rate("EUR", "JPY"), 160.0)

    def test_zero_rate_is_not_installed(self):
        expr = parse_line("setrate USD to GBP = 0", {}, self.rates)
        self.assertNotIsInstance(expr, UnitValueExpr)
        self.assertEqual(self.rates.get_exchange_rate("USD", "GBP"), 0.72)

    def test_infinite_rate_is_not_installed(self):
        expr = parse_line("setrate USD to GBP = " + "9" * 400, {}, self.rates)
        self.assertNotIsInstance(expr, UnitValueExpr)
        self.assertEqual(self.rates.get_exchange_rate("USD", "GBP"), 0.72)


if __name__ == "__main__":
    unittest.main()
