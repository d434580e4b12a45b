# test_r_expr.py
#
# Run:
#   python -m unittest -v

import unittest

from r_serializer import RFormula
import r_expr as m


class TestRExpr(unittest.TestCase):
    # ---------- strip_formula ----------
    def test_strip_formula_variants(self):
        self.assertEqual(m.strip_formula("~ x > 5"), "x > 5")
        self.assertEqual(m.strip_formula("x > 5"), "x > 5")
        self.assertEqual(m.strip_formula(RFormula(" x > 5 ")), "x > 5")

    # ---------- tokenize_r_expression ----------
    def test_tokenize_basic_comparison(self):
        self.assertEqual(
            m.tokenize_r_expression("age >= 30"),
            [("name", "age"), ("op", ">="), ("number", "30")],
        )

    def test_tokenize_special_operator_and_call(self):
        tokens = m.tokenize_r_expression("region %in% c('EU', 'US')")
        self.assertEqual(tokens[1], ("op", "%in%"))
        self.assertEqual(tokens[2], ("name", "c"))
        self.assertEqual(tokens[3], ("lparen", "("))
        self.assertEqual(tokens[4], ("string", "EU"))
        self.assertEqual(tokens[5], ("comma", ","))

    def test_tokenize_backquoted_name(self):
        self.assertEqual(m.tokenize_r_expression("`my var` == 1")[0], ("name", "`my var`"))

    def test_tokenize_unterminated_string_raises(self):
        with self.assertRaises(ValueError):
            m.tokenize_r_expression("x == 'abc")

    def test_tokenize_unknown_character_raises(self):
        with self.assertRaises(ValueError):
            m.tokenize_r_expression("x # 1")

    # ---------- canonical_number ----------
    def test_canonical_number(self):
        self.assertEqual(m.canonical_number("1.0"), "1")
        self.assertEqual(m.canonical_number("1e3"), "1000")
        self.assertEqual(m.canonical_number("2.5"), "2.5")
        self.assertEqual(m.canonical_number("5L"), "5L")

    # ---------- canonical_expression ----------
    def test_spacing_variants_share_one_canonical_form(self):
        forms = {m.canonical_expression(e) for e in ("x>5", "x > 5", "~x >5", RFormula("x  >  5.0"))}
        self.assertEqual(forms, {"x > 5"})

    def test_canonical_function_call_and_negation(self):
        self.assertEqual(m.canonical_expression("~ !is.na( x )"), "!is.na(x)")

    def test_canonical_strings_use_double_quotes(self):
        self.assertEqual(
            m.canonical_expression("region %in% c('a','b')"),
            'region %in% c("a", "b")',
        )

    def test_canonical_tight_operators(self):
        self.assertEqual(m.canonical_expression("dplyr :: n ( )"), "dplyr::n()")
        self.assertEqual(m.canonical_expression("x ^ 2 > -1"), "x^2 > -1")


if __name__ == "__main__":
    unittest.main(verbosity=2)
