# test_page_to_qmd.py
#
# Run:
#   python -m unittest -v

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import page_to_qmd as m

PAGE = """\
name: Survey
data_path: survey.rds
visualizations:
  - viz_type: bar
    x_var: degree
    title: Degrees
"""


class TestPageToQmd(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name).resolve()

    def tearDown(self) -> None:
        self.tmp.cleanup()

    # ---------- helpers ----------
    def write(self, rel: str, content: str) -> Path:
        p = self.root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        return p

    def run_main(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = m.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    # ---------- output_path_for ----------
    def test_output_path_for(self):
        src = self.root / "page.yml"
        self.assertEqual(m.output_path_for(src, None), self.root / "page.qmd")
        self.assertIsNone(m.output_path_for(src, "-"))
        self.assertEqual(m.output_path_for(src, "x/out.qmd"), Path("x/out.qmd"))

    # ---------- main ----------
    def test_writes_qmd_next_to_input(self):
        p = self.write("page.yml", PAGE)
        code, _, err = self.run_main(str(p))
        self.assertEqual(code, 0, err)
        text = (self.root / "page.qmd").read_text(encoding="utf-8")
        self.assertIn('title: "Survey"', text)
        self.assertIn("```{r bar-degree}", text)

    def test_stdout_output(self):
        p = self.write("page.yml", PAGE)
        code, out, _ = self.run_main(str(p), "-o", "-")
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("---\n"))
        self.assertFalse((self.root / "page.qmd").exists())

    def test_config_file_is_used(self):
        p = self.write("page.yml", "name: Empty\n")
        cfg = self.write("config.yml", "fallback_text: Nothing here yet.\n")
        code, out, _ = self.run_main(str(p), "-c", str(cfg), "-o", "-")
        self.assertEqual(code, 0)
        self.assertIn("Nothing here yet.", out)

    def test_bad_config_returns_2(self):
        p = self.write("page.yml", PAGE)
        cfg = self.write("config.yml", "- not a mapping\n")
        code, _, err = self.run_main(str(p), "-c", str(cfg))
        self.assertEqual(code, 2)
        self.assertIn("[page_to_qmd] Failed to load config", err)

    def test_missing_input_returns_2(self):
        code, _, err = self.run_main(str(self.root / "missing.yml"))
        self.assertEqual(code, 2)
        self.assertIn("[page_to_qmd] Invalid input path", err)

    def test_output_with_several_inputs_returns_2(self):
        a = self.write("a.yml", PAGE)
        b = self.write("b.yml", PAGE)
        code, _, _ = self.run_main(str(a), str(b), "-o", "out.qmd")
        self.assertEqual(code, 2)

    def test_invalid_spec_returns_1(self):
        p = self.write("page.yml", "visualizations:\n  - viz_type: bar\n    show_when: x + 1\n")
        code, _, err = self.run_main(str(p))
        self.assertEqual(code, 1)
        self.assertIn("page.yml", err)
        self.assertIn("Unsupported operator", err)

    def test_root_restricts_inputs(self):
        p = self.write("page.yml", PAGE)
        other = self.root / "pages"
        other.mkdir()
        code, _, _ = self.run_main(str(p), "--root", str(other))
        self.assertEqual(code, 2)

    def test_several_inputs_each_get_output(self):
        a = self.write("a.yml", PAGE)
        b = self.write("sub/b.yml", PAGE)
        code, _, _ = self.run_main(str(a), str(b))
        self.assertEqual(code, 0)
        self.assertTrue((self.root / "a.qmd").is_file())
        self.assertTrue((self.root / "sub" / "b.qmd").is_file())

    def test_debug_traces(self):
        p = self.write("page.yml", PAGE)
        code, _, err = self.run_main(str(p), "--debug")
        self.assertEqual(code, 0)
        self.assertIn("[Survey] setup chunk", err)
        self.assertIn("wrote", err)


if __name__ == "__main__":
    unittest.main(verbosity=2)
