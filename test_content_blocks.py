# test_content_blocks.py
#
# Run:
#   python -m unittest -v

import unittest

from compile_context import CompileContext
import content_blocks as m


def text(lines):
    return "\n".join(lines)


class TestContentBlocks(unittest.TestCase):
    def setUp(self) -> None:
        self.ctx = CompileContext()

    def render(self, block, **kwargs):
        return m.render_block(block, self.ctx, **kwargs)

    # ---------- helpers ----------
    def test_text_of_joins_lists(self):
        self.assertEqual(m.text_of(["a", "b"]), "a\nb")
        self.assertEqual(m.text_of(None), "")
        self.assertFalse(m.has_text("   "))

    def test_icon_shortcode(self):
        self.assertEqual(m.icon_shortcode("ph:users-three"), "{{< iconify ph users-three >}}")
        self.assertEqual(m.with_icon("Age", "ph:users"), "{{< iconify ph users >}} Age")
        self.assertEqual(m.with_icon("Age", None), "Age")

    def test_icon_without_collection_raises(self):
        with self.assertRaisesRegex(ValueError, "collection:name"):
            m.icon_shortcode("users")

    # ---------- text-like blocks ----------
    def test_text_block(self):
        self.assertEqual(self.render({"type": "text", "content": "Hello"}), ["", "Hello", ""])

    def test_callout_unknown_type_falls_back_to_note(self):
        out = text(self.render({"type": "callout", "callout_type": "shout", "content": "Hi", "title": "T"}))
        self.assertIn("::: {.callout-note}", out)
        self.assertIn("## T", out)

    def test_image_plain_and_styled(self):
        plain = self.render({"type": "image", "src": "a.png", "alt": "A", "caption": "Cap"})
        self.assertIn("![A](a.png)", plain)
        self.assertIn("*Cap*", plain)

        styled = text(self.render({"type": "image", "src": "a.png", "width": "50%", "align": "center"}))
        self.assertIn('<img src="a.png"', styled)
        self.assertIn('width="50%"', styled)
        self.assertIn("margin-left: auto", styled)

    def test_missing_required_field_raises(self):
        with self.assertRaisesRegex(ValueError, "missing required field"):
            self.render({"type": "image"})
        with self.assertRaisesRegex(ValueError, "url\\|src"):
            self.render({"type": "video"})

    def test_video_embed_urls(self):
        self.assertEqual(
            m.video_embed_url("https://www.youtube.com/watch?v=abc123&t=5"),
            "https://www.youtube.com/embed/abc123",
        )
        self.assertEqual(m.video_embed_url("https://youtu.be/xyz"), "https://www.youtube.com/embed/xyz")
        self.assertEqual(m.video_embed_url("https://vimeo.com/76979871"), "https://vimeo.com/76979871")
        self.assertIsNone(m.video_embed_url("movie.mp4"))

        self.assertIn("{{< video https://www.youtube.com/embed/abc >}}", self.render({"type": "video", "url": "https://youtu.be/abc"}))
        self.assertIn("<video", text(self.render({"type": "video", "src": "movie.mp4"})))

    def test_quote_with_attribution(self):
        out = self.render({"type": "quote", "quote": "To be", "attribution": "Hamlet"})
        self.assertIn("> To be", out)
        self.assertIn("> — Hamlet", out)

    def test_divider_styles(self):
        self.assertIn("---", self.render({"type": "divider"}))
        self.assertIn("dashed", text(self.render({"type": "divider", "style": "dashed"})))

    def test_badge_unknown_color_is_primary(self):
        self.assertIn("badge-primary", text(self.render({"type": "badge", "text": "New", "color": "pink"})))

    def test_html_is_escaped_in_attributes(self):
        out = text(self.render({"type": "iframe", "url": "https://x.org/?a=1&b='2'"}))
        self.assertIn("&amp;", out)
        self.assertIn("&#x27;", out)

    # ---------- R-backed blocks ----------
    def test_table_prints_preloaded_object(self):
        out = self.render({"type": "table", "table_var": "tbl", "caption": "Counts"})
        self.assertIn("knitr::kable(tbl)", out)
        self.assertIn('#| tbl-cap: "Counts"', out)

    def test_caption_quotes_are_escaped_in_chunk_option(self):
        out = self.render({"type": "gt", "gt_var": "g", "caption": 'A "quoted" cap\\x'})
        self.assertIn('#| tbl-cap: "A \\"quoted\\" cap\\\\x"', out)

    def test_hc_default_variable(self):
        self.assertIn("hc_obj", self.render({"type": "hc"}))

    def test_value_box_uses_package_namespace(self):
        out = text(self.render({"type": "value_box", "title": "Users", "value": "1,024", "description": "**bold**"}))
        self.assertIn("dashboardr::render_value_box(", out)
        self.assertIn("title = 'Users'", out)
        self.assertIn("<strong>bold</strong>", out)

    def test_markdown_to_html(self):
        self.assertEqual(
            m.markdown_to_html("[site](https://x.org) *em*\nnext"),
            "<a href='https://x.org' target='_blank' rel='noopener'>site</a> <em>em</em><br>next",
        )

    def test_sparkline_card_defaults_and_filter(self):
        out = text(self.render({"type": "sparkline_card", "x_var": "month", "filter_expr": "wave == 1"}))
        self.assertIn("dashboardr::render_sparkline_card(", out)
        self.assertIn("data = data,", out)
        self.assertIn("agg = 'count'", out)
        self.assertIn("filter_expr = ~wave == 1", out)

    # ---------- inputs ----------
    def test_input_defaults_to_select_multiple(self):
        out = text(self.render({"type": "input", "input_id": "region", "filter_var": "region", "options": ["EU", "US"]}))
        self.assertIn("dashboardr::render_input(", out)
        self.assertIn("type = 'select_multiple'", out)
        self.assertIn("options = c('EU', 'US')", out)
        self.assertIn("size = 'md'", out)

    def test_input_validation(self):
        with self.assertRaisesRegex(ValueError, "unknown input type"):
            m.validate_input({"type": "input", "input_id": "x", "input_type": "dial"})
        with self.assertRaisesRegex(ValueError, "size"):
            m.validate_input({"type": "input", "input_id": "x", "size": "xl"})
        with self.assertRaisesRegex(ValueError, "2 labels given for 3 options"):
            m.validate_input({"type": "input", "input_id": "x", "labels": ["a", "b"], "options": [1, 2, 3]})
        # sliders may label fewer ticks than values
        self.assertEqual(
            m.validate_input({"type": "input", "input_type": "slider", "labels": ["lo"], "options": [1, 2]}),
            "slider",
        )

    def test_linked_child_input(self):
        parent = {"type": "input", "input_id": "country"}
        child = {
            "type": "input",
            "input_id": "city",
            ".linked_parent_id": "country",
            ".options_by_parent": {"DE": ["Berlin"]},
        }
        out = text(self.render(parent, next_block=child))
        self.assertIn("linked_child_id = 'city'", out)
        self.assertIn("options_by_parent = list(DE = c('Berlin'))", out)
        self.assertIsNone(m.linked_child(parent, {"type": "input", "input_id": "other"}))

    # ---------- layouts ----------
    def test_flat_layout_row(self):
        block = {"type": "layout_row", "items": [{"type": "text", "content": "a"}, {"type": "text", "content": "b"}]}
        out = self.render(block, render_child=lambda item, ctx: [item["content"]])
        self.assertEqual(out, ["", ":::: {layout-ncol=2}", "", "::: {}", "a", ":::", "", "::: {}", "b", ":::", "", "::::", ""])

    def test_dashboard_layout_column_with_width(self):
        ctx = CompileContext(dashboard=True)
        block = {"type": "layout_column", "width": 30, "items": [{"type": "text", "content": "a"}]}
        out = m.render_block(block, ctx, render_child=lambda item, c: [item["content"]])
        self.assertEqual(out, ["", "## Column {width=30}", "", "a"])

    def test_layout_children_sorted_by_insertion_index(self):
        block = {"type": "layout_row", "items": [{"n": 2, ".insertion_index": 2}, {"n": 1, ".insertion_index": 1}]}
        self.assertEqual([c["n"] for c in m.layout_children(block)], [1, 2])

    def test_layout_rejects_pagination_and_tabgroups(self):
        for child in ({"pagination_break": True}, {"type": "text", "tabgroup": "a/b"}):
            with self.subTest(child=child):
                with self.assertRaises(ValueError):
                    m.layout_children({"type": "layout_column", "items": [child]})

    # ---------- dispatch ----------
    def test_unknown_block_returns_none(self):
        self.assertIsNone(self.render({"type": "hologram"}))
        self.assertFalse(m.is_content_block({"type": "hologram"}))
        self.assertTrue(m.is_content_block({"type": "layout_row"}))

    # ---------- show_when ----------
    def test_show_when_wraps_block(self):
        out = self.render({"type": "text", "content": "Only EU", "show_when": "region == 'EU'"})
        self.assertEqual(
            out,
            [
                "",
                '<div class="viz-show-when" data-show-when="{&quot;var&quot;:&quot;region&quot;,&quot;op&quot;:&quot;eq&quot;,&quot;val&quot;:&quot;EU&quot;}">',
                "",
                "",
                "Only EU",
                "",
                "",
                "</div>",
                "",
            ],
        )

    def test_bad_show_when_on_block_raises(self):
        with self.assertRaisesRegex(ValueError, "Unsupported operator"):
            self.render({"type": "text", "content": "x", "show_when": "x %% 2 == 0"})


if __name__ == "__main__":
    unittest.main(verbosity=2)
