# test_show_when.py
#
# Run:
#   python -m unittest -v

import unittest

from r_serializer import RFormula
import show_when as m


class TestShowWhen(unittest.TestCase):
    # ---------- comparisons ----------
    def test_equality(self):
        self.assertEqual(m.parse_condition("region == 'EU'"), {"var": "region", "op": "eq", "val": "EU"})

    def test_all_comparison_operators(self):
        cases = {
            "x != 1": "neq",
            "x > 1": "gt",
            "x < 1": "lt",
            "x >= 1": "gte",
            "x <= 1": "lte",
        }
        for expr, op in cases.items():
            with self.subTest(expr=expr):
                self.assertEqual(m.parse_condition(expr), {"var": "x", "op": op, "val": 1})

    def test_in_with_vector(self):
        self.assertEqual(
            m.parse_condition(RFormula("region %in% c('EU', 'US')")),
            {"var": "region", "op": "in", "val": ["EU", "US"]},
        )

    def test_constants_and_negative_numbers(self):
        self.assertEqual(m.parse_condition("flag == TRUE")["val"], True)
        self.assertEqual(m.parse_condition("x > -2.5")["val"], -2.5)

    # ---------- logical operators ----------
    def test_and_or(self):
        cond = m.parse_condition("~ wave == 1 & (age > 30 | age < 18)")
        self.assertEqual(cond["op"], "and")
        self.assertEqual(cond["conditions"][0], {"var": "wave", "op": "eq", "val": 1})
        self.assertEqual(cond["conditions"][1]["op"], "or")

    def test_negated_equality_flips_operator(self):
        self.assertEqual(m.parse_condition("!(region == 'EU')"), {"var": "region", "op": "neq", "val": "EU"})
        self.assertEqual(m.parse_condition("!(region != 'EU')")["op"], "eq")

    def test_negation_of_other_condition_wraps_in_not(self):
        self.assertEqual(
            m.parse_condition("!(a > 1)"),
            {"op": "not", "condition": {"var": "a", "op": "gt", "val": 1}},
        )

    # ---------- errors ----------
    def test_unsupported_operator_raises(self):
        with self.assertRaisesRegex(ValueError, "Unsupported operator"):
            m.parse_condition("x + 1")

    def test_function_call_condition_raises(self):
        with self.assertRaises(ValueError):
            m.parse_condition("is.na(x)")

    def test_empty_expression_raises(self):
        with self.assertRaises(ValueError):
            m.parse_condition("~")

    def test_non_literal_value_raises(self):
        with self.assertRaises(ValueError):
            m.parse_condition("x == y")

    # ---------- JSON ----------
    def test_json_is_compact(self):
        self.assertEqual(m.show_when_json("region == 'EU'"), '{"var":"region","op":"eq","val":"EU"}')

    def test_infinite_value_is_rejected(self):
        self.assertEqual(m.parse_condition("x == Inf")["val"], float("inf"))
        with self.assertRaisesRegex(ValueError, "non-finite"):
            m.show_when_json("x == Inf")


if __name__ == "__main__":
    unittest.main(verbosity=2)
