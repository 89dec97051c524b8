"""Tests for breadth-first link traversal."""

from vaultkit.graph import build_index
from vaultkit.traversal import traverse

from conftest import make_doc


def _visited(result):
    return [(n["name"], n["depth"], n["link_type"]) for n in result["notes"]]


class TestTraverse:
    """Single and multi-root BFS."""

    def test_cycle_visits_each_note_once(self, scenario_index):
        result = traverse(scenario_index, "A", 5)
        assert result["root"] == "A"
        assert result["depth"] == 5
        assert _visited(result) == [("A", 0, None), ("B", 1, "wikilink")]
        assert result["missing"] == []

    def test_depth_zero_returns_only_root(self, scenario_index):
        result = traverse(scenario_index, "C", 0)
        assert _visited(result) == [("C", 0, None)]
        assert result["missing"] == []

    def test_missing_targets_reported_with_referrers(self, scenario_index):
        result = traverse(scenario_index, "C", 1)
        assert _visited(result) == [("C", 0, None), ("B", 1, "wikilink")]
        assert result["missing"] == [{"name": "ghost", "referenced_by": ["C"]}]

    def test_multi_root_shared_visited_set(self, scenario_index):
        result = traverse(scenario_index, ["A", "D", "a"], 2)
        assert result["roots"] == ["A", "D"]
        assert "root" not in result
        assert _visited(result) == [("A", 0, None), ("D", 0, None), ("B", 1, "wikilink")]
        assert result["missing"] == [{"name": "ghost", "referenced_by": ["D"]}]

    def test_embed_link_type(self):
        index = build_index([make_doc("Page", "![[Chart]] then [[Chart]]"), make_doc("Chart")])
        result = traverse(index, "Page", 1)
        assert _visited(result) == [("Page", 0, None), ("Chart", 1, "embed")]

    def test_nodes_at_max_depth_not_expanded(self):
        docs = [
            make_doc("One", "[[Two]]"),
            make_doc("Two", "[[Three]]"),
            make_doc("Three", "[[Nowhere]]"),
        ]
        result = traverse(build_index(docs), "One", 2)
        assert [n["name"] for n in result["notes"]] == ["One", "Two", "Three"]
        assert result["missing"] == []

    def test_smallest_depth_wins(self):
        docs = [
            make_doc("Root", "[[Far]] [[Near]]"),
            make_doc("Far", "[[Near]]"),
            make_doc("Near"),
        ]
        result = traverse(build_index(docs), "Root", 3)
        depths = {n["name"]: n["depth"] for n in result["notes"]}
        assert depths == {"Root": 0, "Far": 1, "Near": 1}

    def test_same_depth_sorted_by_name(self):
        docs = [make_doc("Hub", "[[zeta]] [[Alpha]] [[beta]]")] + [
            make_doc(n) for n in ("zeta", "Alpha", "beta")
        ]
        result = traverse(build_index(docs), "Hub", 1)
        assert [n["name"] for n in result["notes"]] == ["Hub", "Alpha", "beta", "zeta"]

    def test_exclude_folders_skips_but_keeps_root(self, scenario_index):
        result = traverse(scenario_index, "C", 2, exclude_folders=["projects"])
        assert _visited(result) == [("C", 0, None)]

        result = traverse(scenario_index, "A", 2, exclude_folders=["projects"])
        assert _visited(result) == [("A", 0, None)]

    def test_include_content_and_tags(self, scenario_index):
        result = traverse(scenario_index, "A", 0, include_content=True)
        (node,) = result["notes"]
        assert node["path"] == "projects/A.md"
        assert node["tags"] == ["project", "alpha"]
        assert node["frontmatter_tags"] == ["project", "alpha"]
        assert node["inline_tags"] == []
        assert node["frontmatter"] == {"tags": ["project", "alpha"]}
        assert "See [[B]]" in node["content"]

        without = traverse(scenario_index, "A", 0)
        assert "content" not in without["notes"][0]

    def test_fuzzy_root(self):
        index = build_index([make_doc("Daily-Log", "[[Other]]"), make_doc("Other")])
        assert traverse(index, "daily log", 1)["error"]
        assert traverse(index, "daily_log", 1)["root"] == "Daily-Log"


class TestTraverseErrors:
    """Invalid input comes back as an error field with empty results."""

    def test_unknown_root(self, scenario_index):
        result = traverse(scenario_index, "Ghost", 2)
        assert result["error"] == "Note 'Ghost' not found"
        assert result["notes"] == []
        assert result["missing"] == []

    def test_one_unknown_root_fails_all(self, scenario_index):
        assert "error" in traverse(scenario_index, ["A", "Nope"], 2)

    def test_negative_depth(self, scenario_index):
        assert "error" in traverse(scenario_index, "A", -1)

    def test_no_roots(self, scenario_index):
        assert "error" in traverse(scenario_index, [], 2)
