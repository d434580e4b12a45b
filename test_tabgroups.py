# test_tabgroups.py
#
# Run:
#   python -m unittest -v

import unittest

import tabgroups as m


def names(entries):
    return [e.get("name") or e.get("title") for e in entries]


class TestTabgroups(unittest.TestCase):
    # ---------- split_path ----------
    def test_split_path_string_and_list(self):
        self.assertEqual(m.split_path("a/b/c"), ["a", "b", "c"])
        self.assertEqual(m.split_path(["a", "b"]), ["a", "b"])
        self.assertEqual(m.split_path(" a // b "), ["a", "b"])
        self.assertEqual(m.split_path(None), [])

    # ---------- insertion order ----------
    def test_sort_by_insertion_puts_unindexed_last(self):
        items = [{"title": "c"}, {"title": "b", ".insertion_index": 2}, {"title": "a", ".insertion_index": 1}]
        self.assertEqual(names(m.sort_by_insertion(items)), ["a", "b", "c"])

    # ---------- build / flatten ----------
    def test_items_without_tabgroups_come_back_unchanged(self):
        items = [{"title": "a"}, {"title": "b"}]
        self.assertEqual(m.group_items(items), items)
        self.assertFalse(m.has_tabgroups(items))

    def test_items_without_tabgroups_follow_insertion_index(self):
        items = [{"title": "b", ".insertion_index": 2}, {"title": "a", ".insertion_index": 1}, {"title": "c"}]
        # "c" falls back to its list position
        self.assertEqual(names(m.group_items(items)), ["a", "b", "c"])

    def test_sibling_paths_share_one_container(self):
        a = {"title": "A"}
        b = {"title": "B", "tabgroup": "demo/age"}
        c = {"title": "C", "tabgroup": "demo/sex"}
        d = {"title": "D"}
        out = m.group_items([a, b, c, d])

        self.assertEqual(len(out), 3)
        self.assertIs(out[0], a)
        self.assertIs(out[2], d)

        demo = out[1]
        self.assertEqual(demo["type"], "tabgroup")
        self.assertEqual(demo["name"], "demo")
        self.assertEqual(names(demo["tabs"]), ["age", "sex"])
        self.assertEqual(demo["tabs"][0]["path"], "demo/age")
        self.assertEqual(demo["tabs"][0]["tabs"], [b])
        self.assertEqual(demo["tabs"][1]["tabs"], [c])

    def test_container_sits_at_smallest_index_beneath_it(self):
        items = [
            {"title": "first"},
            {"title": "late", "tabgroup": "g", ".insertion_index": 5},
            {"title": "early", "tabgroup": "g/sub", ".insertion_index": 1},
            {"title": "middle", ".insertion_index": 3},
        ]
        out = m.group_items(items)
        self.assertEqual(names(out), ["first", "g", "middle"])
        g = out[1]
        self.assertEqual(g[".insertion_index"], 1)
        # own item (index 5) and child container (index 1) merge by index
        self.assertEqual(names(g["tabs"]), ["sub", "late"])

    def test_items_are_not_mutated(self):
        item = {"title": "x", "tabgroup": "g"}
        m.group_items([item])
        self.assertEqual(item, {"title": "x", "tabgroup": "g"})

    def test_labels_by_path_and_by_name(self):
        items = [{"title": "x", "tabgroup": "demo/age"}]
        out = m.group_items(items, {"demo": "Demographics", "demo/age": "Age groups"})
        self.assertEqual(out[0]["label"], "Demographics")
        self.assertEqual(out[0]["tabs"][0]["label"], "Age groups")

        out = m.group_items(items, {"age": "By age"})
        self.assertNotIn("label", out[0])
        self.assertEqual(out[0]["tabs"][0]["label"], "By age")

    def test_build_tracks_min_index(self):
        root = m.build([{"tabgroup": "a/b", ".insertion_index": 4}, {"tabgroup": "a", ".insertion_index": 2}])
        self.assertEqual(root.children["a"].min_index, 2)
        self.assertEqual(root.children["a"].children["b"].min_index, 4)
        self.assertEqual(root.children["a"].children["b"].path, "a/b")


if __name__ == "__main__":
    unittest.main(verbosity=2)
