"""
Tests for artifact removal.
"""

import os
import shutil

import pytest

from file_operations import ArtifactRemover, RemovalStatus, remove_path


def test_removes_directory_tree(make_tree):
    root = make_tree({"target": {"debug": {"app": "bin"}, "x.o": ""}})

    result = remove_path(str(root / "target"))

    assert result.status is RemovalStatus.REMOVED
    assert result.success
    assert not (root / "target").exists()
    assert root.exists()


def test_missing_path_is_not_a_failure(tmp_path):
    result = remove_path(str(tmp_path / "gone"))

    assert result.status is RemovalStatus.MISSING
    assert result.success


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_is_unlinked_not_followed(make_tree):
    real = make_tree({"keep.txt": "precious"}, root_name="real")
    project = make_tree({"Cargo.toml": ""}, root_name="project")
    os.symlink(real, project / "target", target_is_directory=True)

    result = remove_path(str(project / "target"))

    assert result.status is RemovalStatus.REMOVED
    assert not os.path.lexists(project / "target")
    assert (real / "keep.txt").read_text() == "precious"


def test_failure_is_captured(make_tree, monkeypatch, caplog):
    root = make_tree({"node_modules": {"a.js": ""}})

    def refuse(path, *args, **kwargs):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(shutil, "rmtree", refuse)

    result = remove_path(str(root / "node_modules"))

    assert result.status is RemovalStatus.FAILED
    assert not result.success
    assert "Permission denied" in result.error_message
    assert "Failed to remove" in caplog.text


def test_remover_keeps_going_after_a_failure(make_tree, monkeypatch):
    root = make_tree({"a": {"x": ""}, "b": {"y": ""}, "c": {"z": ""}})
    real_rmtree = shutil.rmtree

    def selective(path, *args, **kwargs):
        if os.path.basename(path) == "b":
            raise OSError("device busy")
        return real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(shutil, "rmtree", selective)
    messages = []
    remover = ArtifactRemover(progress_callback=messages.append)

    results = [remover.remove(str(root / name)) for name in ("a", "b", "c", "d")]

    assert [r.status for r in results] == [
        RemovalStatus.REMOVED,
        RemovalStatus.FAILED,
        RemovalStatus.REMOVED,
        RemovalStatus.MISSING,
    ]
    assert [os.path.basename(r.path) for r in remover.failures] == ["b"]
    assert remover.removed_count == 2
    assert len(remover.failures) == 1
    assert messages[0] == f"Removing {root / 'a'}"
    assert len(messages) == 4
    assert (root / "b").exists()
