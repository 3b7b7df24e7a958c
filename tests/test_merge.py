"""Tests for merge resolution and GccStore.merge."""

from datetime import datetime

from gccmem.memory.merge import MergeConflict, resolve_snapshots, union_items
from tests.fixtures.snapshot_data import PROGRAMMING_SKILLS_V1


SKILLS = "programming_skills"


class TestUnionItems:
    """Test list union."""

    def test_target_first_then_new_source_items(self):
        assert union_items(["TypeScript", "Go"], ["Python", "Go"]) == ["TypeScript", "Go", "Python"]

    def test_case_insensitive_keeps_first_spelling(self):
        assert union_items(["TypeScript"], ["typescript", "Python"]) == ["TypeScript", "Python"]

    def test_trims_and_drops_blank_items(self):
        assert union_items(["React "], [" react", "", "   ", "Vue"]) == ["React ", "Vue"]

    def test_dedups_within_one_side(self):
        assert union_items(["a", "A", "b"], []) == ["a", "b"]


class TestResolveSnapshots:
    """Test per-field merge policy."""

    def test_lists_are_unioned_without_conflict(self):
        merged, conflicts = resolve_snapshots(
            {"languages": ["typescript", "Python"]},
            {"languages": ["TypeScript"]},
        )

        assert merged == {"languages": ["TypeScript", "Python"]}
        assert conflicts == []

    def test_differing_scalars_conflict_and_target_wins(self):
        merged, conflicts = resolve_snapshots({"name": "Bob"}, {"name": "Alice"})

        assert merged == {"name": "Alice"}
        assert conflicts == [MergeConflict(field="name", source_values=["Bob"], target_values=["Alice"])]

    def test_bool_and_int_scalars_conflict(self):
        merged, conflicts = resolve_snapshots({"enabled": True}, {"enabled": 1})

        assert merged == {"enabled": 1}
        assert conflicts == [MergeConflict(field="enabled", source_values=[True], target_values=[1])]

    def test_int_and_float_scalars_conflict(self):
        merged, conflicts = resolve_snapshots({"focus": 1.0}, {"focus": 1})

        assert type(merged["focus"]) is int
        assert len(conflicts) == 1

    def test_equal_scalars_are_kept(self):
        merged, conflicts = resolve_snapshots({"workHours": "9-17"}, {"workHours": "9-17"})

        assert merged == {"workHours": "9-17"}
        assert conflicts == []

    def test_list_against_scalar_conflicts(self):
        merged, conflicts = resolve_snapshots({"tools": ["git"]}, {"tools": "git"})

        assert merged == {"tools": "git"}
        assert conflicts == [MergeConflict(field="tools", source_values=["git"], target_values=["git"])]

    def test_none_counts_as_a_scalar(self):
        merged, conflicts = resolve_snapshots({"manager": "Carol"}, {"manager": None})

        assert merged == {"manager": None}
        assert conflicts[0].source_values == ["Carol"]
        assert conflicts[0].target_values == []

    def test_one_sided_fields_are_taken(self):
        merged, conflicts = resolve_snapshots(
            {"frameworks": ["React"], "editor": "vim"},
            {"languages": ["Go"], "timezone": "UTC"},
        )

        assert merged == {
            "languages": ["Go"],
            "timezone": "UTC",
            "frameworks": ["React"],
            "editor": "vim",
        }
        assert list(merged) == ["languages", "timezone", "frameworks", "editor"]
        assert conflicts == []

    def test_empty_target(self):
        merged, conflicts = resolve_snapshots({"languages": ["Go"], "editor": "vim"}, {})

        assert merged == {"languages": ["Go"], "editor": "vim"}
        assert conflicts == []

    def test_volatile_fields_are_restamped(self):
        now = datetime(2026, 3, 1, 12, 0, 0)
        merged, conflicts = resolve_snapshots(
            {"lastUpdated": "2026-01-02T00:00:00"},
            {"lastUpdated": "2026-01-01T00:00:00"},
            volatile_fields=["lastUpdated"],
            now=now,
        )

        assert merged == {"lastUpdated": now.isoformat()}
        assert conflicts == []

    def test_merged_lists_do_not_alias_inputs(self):
        source = {"languages": ["Go"]}
        target = {"editor": "vim", "frameworks": ["React"]}

        merged, _ = resolve_snapshots(source, target)
        merged["languages"].append("Rust")
        merged["frameworks"].append("Vue")

        assert source == {"languages": ["Go"]}
        assert target["frameworks"] == ["React"]


class TestStoreMerge:
    """Test merging branches through the store."""

    def test_union_and_dedup(self, store):
        store.commit(SKILLS, {"languages": ["TypeScript"]}, "Main", "HIGH")
        store.create_branch(SKILLS, "exp")
        store.commit(SKILLS, {"languages": ["typescript", "Python"]}, "Exp", "LOW", branch_name="exp")

        result = store.merge(SKILLS, "exp")

        assert result.success is True
        assert result.conflicts == []
        languages = store.get_head_snapshot(SKILLS)["languages"]
        assert languages == ["TypeScript", "Python"]

    def test_scalar_conflict_keeps_target(self, store):
        store.commit(SKILLS, {"name": "Alice"}, "Main", "HIGH")
        store.create_branch(SKILLS, "exp")
        store.commit(SKILLS, {"name": "Bob"}, "Exp", "LOW", branch_name="exp")

        result = store.merge(SKILLS, "exp")

        assert result.success is True
        assert len(result.conflicts) == 1
        assert result.conflicts[0].field == "name"
        assert store.get_head_snapshot(SKILLS)["name"] == "Alice"

    def test_merge_commit_policy(self, store):
        main_head = store.commit(SKILLS, PROGRAMMING_SKILLS_V1, "Main", "HIGH")
        store.create_branch(SKILLS, "exp")
        store.commit(SKILLS, {"languages": ["Python"]}, "Exp", "LOW", branch_name="exp")

        result = store.merge(SKILLS, "exp")
        head = store.get_head_commit(SKILLS)

        assert head.hash == result.commit_hash
        assert head.parent_hash == main_head.hash
        assert head.message == "Merge 'exp' into 'main'"
        assert head.confidence == "MEDIUM"
        assert head.delta.added == {"languages": ["Python"]}

    def test_source_without_commits_fails(self, store):
        store.commit(SKILLS, PROGRAMMING_SKILLS_V1, "Main", "HIGH")
        store.create_branch(SKILLS, "empty", from_branch="nowhere")

        result = store.merge(SKILLS, "empty")

        assert result.success is False
        assert result.commit_hash is None
        assert result.conflicts == []
        assert len(store.log(SKILLS)) == 1

    def test_merge_into_other_branch(self, store):
        store.commit(SKILLS, {"languages": ["Go"]}, "Main", "HIGH")
        store.create_branch(SKILLS, "exp")

        result = store.merge(SKILLS, "main", target_branch="exp")

        assert result.success is True
        assert store.get_head_commit(SKILLS, "exp").hash == result.commit_hash
        assert len(store.log(SKILLS)) == 1

    def test_merge_into_empty_target(self, store):
        store.commit(SKILLS, {"languages": ["Go"]}, "Exp", "LOW", branch_name="exp")

        result = store.merge(SKILLS, "exp")

        assert result.success is True
        assert store.get_head_snapshot(SKILLS) == {"languages": ["Go"]}
        assert store.get_head_commit(SKILLS).parent_hash is None

    def test_source_branch_is_unchanged(self, store):
        store.commit(SKILLS, {"languages": ["TypeScript"]}, "Main", "HIGH")
        store.create_branch(SKILLS, "exp")
        exp_head = store.commit(SKILLS, {"languages": ["Python"]}, "Exp", "LOW", branch_name="exp")

        store.merge(SKILLS, "exp")

        assert store.get_head_commit(SKILLS, "exp").hash == exp_head.hash
        assert store.get_head_snapshot(SKILLS, "exp") == {"languages": ["Python"]}

    def test_result_to_dict(self, store):
        store.commit(SKILLS, {"name": "Alice"}, "Main", "HIGH")
        store.create_branch(SKILLS, "exp")
        store.commit(SKILLS, {"name": "Bob"}, "Exp", "LOW", branch_name="exp")

        data = store.merge(SKILLS, "exp").to_dict()

        assert data["success"] is True
        assert data["conflicts"] == [
            {"field": "name", "source_values": ["Bob"], "target_values": ["Alice"]}
        ]
