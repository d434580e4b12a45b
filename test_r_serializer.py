# test_r_serializer.py
#
# Run:
#   python -m unittest -v

import unittest

import yaml

import r_serializer as m


class TestRSerializer(unittest.TestCase):
    # ---------- scalars ----------
    def test_none_and_booleans(self):
        self.assertEqual(m.serialize(None), "NULL")
        self.assertEqual(m.serialize(True), "TRUE")
        self.assertEqual(m.serialize(False), "FALSE")

    def test_numbers(self):
        self.assertEqual(m.serialize(7), "7")
        self.assertEqual(m.serialize(2.5), "2.5")
        # floats keep their decimal point
        self.assertEqual(m.serialize(3.0), "3.0")
        self.assertEqual(m.serialize(float("nan")), "NA_real_")
        self.assertEqual(m.serialize(float("-inf")), "-Inf")

    def test_string_escapes_quotes_and_newlines(self):
        self.assertEqual(m.serialize("it's"), "'it\\'s'")
        self.assertEqual(m.serialize("a\nb"), "'a\\nb'")
        self.assertEqual(m.serialize("back\\slash"), "'back\\\\slash'")

    def test_escape_string_for_double_quotes(self):
        self.assertEqual(m.escape_string('a "b"'), 'a "b"')
        self.assertEqual(m.escape_string('a "b"', quote='"'), 'a \\"b\\"')

    # ---------- vectors and lists ----------
    def test_homogeneous_list_becomes_c(self):
        self.assertEqual(m.serialize(["a", "b"]), "c('a', 'b')")
        self.assertEqual(m.serialize([1, 2.5]), "c(1, 2.5)")

    def test_mixed_list_becomes_list(self):
        self.assertEqual(m.serialize([1, "a"]), "list(1, 'a')")

    def test_empty_list(self):
        self.assertEqual(m.serialize([]), "c()")

    def test_dict_becomes_named_list(self):
        self.assertEqual(m.serialize({"k": 1, "b": "x"}), "list(k = 1, b = 'x')")

    def test_dict_with_non_syntactic_names_is_backquoted(self):
        self.assertEqual(m.serialize({"my key": 1}), "list(`my key` = 1)")
        self.assertEqual(m.serialize({"if": 1}), "list(`if` = 1)")

    def test_r_code_and_formula_are_verbatim(self):
        self.assertEqual(m.serialize(m.RCode("data")), "data")
        self.assertEqual(m.serialize(m.RFormula("x > 5")), "~x > 5")

    def test_unsupported_type_raises(self):
        with self.assertRaises(TypeError):
            m.serialize(object())

    # ---------- format_call ----------
    def test_format_call_multiline(self):
        lines = m.format_call("viz_bar", [("data", "data"), ("x_var", "'degree'")], indent="  ")
        self.assertEqual(lines, ["  viz_bar(", "    data = data,", "    x_var = 'degree'", "  )"])

    def test_format_call_without_arguments(self):
        self.assertEqual(m.format_call("f", []), ["f()"])

    # ---------- YAML tags ----------
    def test_spec_loader_tags(self):
        doc = yaml.load("a: !r my_data\nb: !formula ~ x > 5\nc: 1\n", Loader=m.SpecLoader)
        self.assertEqual(doc["a"], m.RCode("my_data"))
        self.assertEqual(doc["b"], m.RFormula("x > 5"))
        self.assertEqual(doc["c"], 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
