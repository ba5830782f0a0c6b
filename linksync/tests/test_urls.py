import unittest

from linksync.urls import (
    build_obsidian_url,
    build_singularity_url,
    extract_sid,
    extract_task_id,
    get_field_value,
    parse_field_path,
    set_field_value,
    strip_sid,
)


class UrlHelperTests(unittest.TestCase):
    def test_extract_task_id_from_reference_url(self) -> None:
        self.assertEqual(extract_task_id("singularityapp://?&page=any&id=T-ab12-cd34"), "T-ab12-cd34")
        self.assertEqual(
            extract_task_id("singularityapp://?&page=any&id=T-ab12#sid=0b5f1c9e-4a3d-4e8b-9c2f-6d7e8f9a0b1c"),
            "T-ab12",
        )
        self.assertIsNone(extract_task_id("https://example.com"))

    def test_build_singularity_url_round_trips_task_id(self) -> None:
        self.assertEqual(extract_task_id(build_singularity_url("T-abc")), "T-abc")

    def test_build_obsidian_url_encodes_like_uri_component(self) -> None:
        url = build_obsidian_url("My Vault", "Projects/Q1 (draft)!.md")
        self.assertEqual(url, "obsidian://open?vault=My%20Vault&file=Projects%2FQ1%20(draft)!.md")

    def test_sid_helpers(self) -> None:
        url = "obsidian://open?vault=V&file=a.md#sid=ABCDEF12-0000-4000-8000-000000000000"
        self.assertEqual(extract_sid(url), "ABCDEF12-0000-4000-8000-000000000000")
        self.assertEqual(strip_sid(url), "obsidian://open?vault=V&file=a.md")
        self.assertIsNone(extract_sid("obsidian://open?vault=V&file=a.md"))
        self.assertIsNone(extract_sid(None))

    def test_field_paths_walk_mappings_and_lists(self) -> None:
        fm = {"project": {"tasks": ["a", {"ref": "b"}]}}

        self.assertEqual(parse_field_path("project.tasks[1].ref"), ["project", "tasks", 1, "ref"])
        self.assertEqual(get_field_value(fm, "project.tasks[0]"), "a")
        self.assertEqual(get_field_value(fm, "project.tasks[1].ref"), "b")
        self.assertIsNone(get_field_value(fm, "project.tasks[5]"))

        self.assertTrue(set_field_value(fm, "project.tasks[1].ref", "c"))
        self.assertEqual(fm["project"]["tasks"][1]["ref"], "c")
        self.assertFalse(set_field_value(fm, "project.missing", "x"))

class KeyPathTests(unittest.TestCase):
    def test_key_sequence_reaches_keys_a_dotted_path_cannot(self) -> None:
        fm = {"release.v2": "a", 2024: ["b"], "plain": {"0": "c"}}

        self.assertEqual(get_field_value(fm, ["release.v2"]), "a")
        self.assertEqual(get_field_value(fm, [2024, 0]), "b")
        self.assertEqual(get_field_value(fm, ["plain", "0"]), "c")

        self.assertTrue(set_field_value(fm, ["release.v2"], "x"))
        self.assertTrue(set_field_value(fm, [2024, 0], "y"))
        self.assertEqual(fm, {"release.v2": "x", 2024: ["y"], "plain": {"0": "c"}})
        self.assertFalse(set_field_value(fm, [2024, 3], "z"))


if __name__ == "__main__":
    unittest.main()
