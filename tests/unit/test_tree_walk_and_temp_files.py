"""Unit tests for the tree walk and temporary workspace helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.utils.temp_files import temporary_workspace
from src.utils.tree_walk import collect_string_leaves


class TestCollectStringLeaves:
    def test_document_order(self) -> None:
        tree = {"shapes": [{"paragraphs": [" Title ", ""]}, {"rows": [["a", "b"], ["c"]]}], "notes": "n"}

        assert collect_string_leaves(tree) == ["Title", "a", "b", "c", "n"]

    def test_non_string_leaves_are_ignored(self) -> None:
        assert collect_string_leaves([1, None, 2.5, ("x",)]) == ["x"]

    def test_depth_limit_skips_deep_containers(self) -> None:
        tree: object = "deep"
        for _ in range(10):
            tree = [tree]

        assert collect_string_leaves(tree, max_depth=5) == []
        assert collect_string_leaves(tree, max_depth=10) == ["deep"]

    def test_very_deep_input_does_not_recurse(self) -> None:
        tree: object = "bottom"
        for _ in range(5000):
            tree = {"child": tree}

        assert collect_string_leaves(tree, max_depth=10_000) == ["bottom"]


class TestTemporaryWorkspace:
    def test_removed_after_normal_exit(self, tmp_path: Path) -> None:
        with temporary_workspace(prefix="t-", root=tmp_path) as workspace:
            (workspace / "file.bin").write_bytes(b"x")
            assert workspace.parent == tmp_path
            assert workspace.name.startswith("t-")

        assert not workspace.exists()

    def test_removed_after_exception(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with temporary_workspace(root=tmp_path) as workspace:
                (workspace / "nested").mkdir()
                raise RuntimeError("boom")

        assert not workspace.exists()
        assert list(tmp_path.iterdir()) == []
