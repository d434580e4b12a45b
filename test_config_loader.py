# test_config_loader.py
#
# Run:
#   python -m unittest -v

import tempfile
import unittest
from pathlib import Path

import config_loader as m
from compile_context import CompileContext


class TestConfigLoader(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    # ---------- helpers ----------
    def write(self, content: str) -> Path:
        p = self.root / "config.yml"
        p.write_text(content, encoding="utf-8")
        return p

    # ---------- load_config ----------
    def test_empty_file_gives_defaults(self):
        cfg = m.load_config(self.write(""))
        self.assertEqual(cfg.default_dataset, "data")
        self.assertEqual(cfg.dashboard_row_size, 2)
        self.assertEqual(cfg.chunk_label_max_length, 50)
        self.assertEqual(cfg.r_package, "dashboardr")
        self.assertEqual(cfg.heading_level(False), 2)
        self.assertEqual(cfg.heading_level(True), 4)

    def test_mappings_are_merged_key_by_key(self):
        cfg = m.load_config(self.write(
            "knitr_options:\n"
            "  echo: true\n"
            "viz_heading_level:\n"
            "  flat: 3\n"
        ))
        self.assertIs(cfg.knitr_options["echo"], True)
        self.assertEqual(cfg.knitr_options["dpi"], 300)
        self.assertEqual(cfg.heading_level(False), 3)
        self.assertEqual(cfg.heading_level(True), 4)

    def test_scalars_override_defaults(self):
        cfg = m.load_config(self.write("dashboard_row_size: 3\nr_package: mypkg\n"))
        self.assertEqual(cfg.dashboard_row_size, 3)
        self.assertEqual(cfg.r_package, "mypkg")

    def test_non_mapping_root_raises(self):
        with self.assertRaises(TypeError):
            m.load_config(self.write("- a\n- b\n"))

    def test_invalid_integer_raises(self):
        for text in ("dashboard_row_size: 0\n", "chunk_label_max_length: true\n", "filter_hash_length: '8'\n"):
            with self.subTest(text=text):
                with self.assertRaises(TypeError):
                    m.load_config(self.write(text))

    def test_non_mapping_section_raises(self):
        with self.assertRaises(TypeError):
            m.load_config(self.write("overlay: dark\n"))

    # ---------- CompileContext ----------
    def test_claim_label_counts_per_base(self):
        ctx = CompileContext()
        self.assertEqual(ctx.claim_label("bar"), "bar")
        self.assertEqual(ctx.claim_label("bar"), "bar-2")
        self.assertEqual(ctx.claim_label("pie"), "pie")
        self.assertEqual(ctx.claim_label("bar"), "bar-3")

    def test_context_heading_level_follows_mode(self):
        self.assertEqual(CompileContext().heading_level, 2)
        self.assertEqual(CompileContext(dashboard=True).heading_level, 4)
        self.assertEqual(CompileContext().r_package, "dashboardr")


if __name__ == "__main__":
    unittest.main(verbosity=2)
