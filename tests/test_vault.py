"""Tests for vault scanning and document loading."""

import os
from datetime import UTC

import pytest

from vaultkit.vault import load_documents, read_document, scan_vault

from conftest import write_note


def _rel(paths, root):
    return [p.relative_to(root).as_posix() for p in paths]


class TestScanVault:
    """Directory walking and exclusion rules."""

    def test_finds_markdown_sorted_by_path(self, tmp_path):
        write_note(tmp_path, "b.md", "")
        write_note(tmp_path, "a/z.md", "")
        write_note(tmp_path, "a/notes.txt", "")
        assert _rel(scan_vault(tmp_path), tmp_path) == ["a/z.md", "b.md"]

    def test_suffix_is_case_sensitive(self, tmp_path):
        write_note(tmp_path, "Upper.MD", "")
        write_note(tmp_path, "lower.md", "")
        assert _rel(scan_vault(tmp_path), tmp_path) == ["lower.md"]

    def test_default_excluded_dirs(self, tmp_path):
        write_note(tmp_path, "keep.md", "")
        for excluded in (".obsidian", "templates", ".trash", "sub/smart-chats"):
            write_note(tmp_path, f"{excluded}/skip.md", "")
        assert _rel(scan_vault(tmp_path), tmp_path) == ["keep.md"]

    def test_default_excluded_prefix(self, tmp_path):
        write_note(tmp_path, "TagsRoutes/reports/r.md", "")
        write_note(tmp_path, "TagsRoutes/kept.md", "")
        assert _rel(scan_vault(tmp_path), tmp_path) == ["TagsRoutes/kept.md"]

    def test_explicit_exclusions(self, tmp_path):
        write_note(tmp_path, "drafts/x.md", "")
        write_note(tmp_path, "out/gen/y.md", "")
        write_note(tmp_path, "z.md", "")
        found = scan_vault(tmp_path, excluded_dirs=["drafts"], excluded_prefixes=["out/gen/"])
        assert _rel(found, tmp_path) == ["z.md"]

    def test_config_file_extends_exclusions(self, tmp_path, monkeypatch):
        vault = tmp_path / "vault"
        write_note(vault, "private/secret.md", "")
        write_note(vault, "gen/report.md", "")
        write_note(vault, "ok.md", "")
        (tmp_path / ".vaultkit.yaml").write_text(
            "exclude_dirs: [private]\nexclude_prefixes: gen\n", encoding="utf-8"
        )
        monkeypatch.chdir(tmp_path)
        assert _rel(scan_vault(vault), vault) == ["ok.md"]

    def test_config_file_read_once_per_scan(self, tmp_path, monkeypatch):
        from vaultkit import config

        calls = []
        discover = config._discover_project_config

        def counting(*args, **kwargs):
            calls.append(1)
            return discover(*args, **kwargs)

        monkeypatch.setattr(config, "_discover_project_config", counting)
        write_note(tmp_path, "a.md", "")

        scan_vault(tmp_path)

        assert len(calls) == 1

    def test_missing_root(self, tmp_path):
        assert scan_vault(tmp_path / "nope") == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_cycle_terminates(self, tmp_path):
        write_note(tmp_path, "sub/n.md", "")
        os.symlink(tmp_path, tmp_path / "sub" / "loop")
        assert _rel(scan_vault(tmp_path), tmp_path) == ["sub/n.md"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_outside_vault_skipped(self, tmp_path):
        vault = tmp_path / "vault"
        outside = tmp_path / "outside"
        write_note(outside, "leak.md", "")
        write_note(vault, "in.md", "")
        os.symlink(outside, vault / "linked")
        assert _rel(scan_vault(vault), vault) == ["in.md"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_dangling_symlink_skipped(self, tmp_path):
        write_note(tmp_path, "in.md", "")
        os.symlink(tmp_path / "gone.md", tmp_path / "dangling.md")
        assert _rel(scan_vault(tmp_path), tmp_path) == ["in.md"]


class TestLoadDocuments:
    """Reading notes into Documents."""

    def test_read_document_fields(self, tmp_path):
        path = write_note(
            tmp_path, "folder/My Note.md", "---\ntags: [x]\n---\nSee [[Other]] #y\n- [ ] task\n"
        )
        doc = read_document(path, tmp_path)

        assert doc.name == "My Note"
        assert doc.path == "folder/My Note.md"
        assert doc.frontmatter == {"tags": ["x"]}
        assert doc.tags == ["x", "y"]
        assert [l.target for l in doc.links] == ["Other"]
        assert doc.checkboxes[0].text == "task"
        assert doc.modified.tzinfo == UTC

    def test_dotted_name_keeps_inner_dots(self, tmp_path):
        path = write_note(tmp_path, "v1.2 notes.md", "")
        assert read_document(path, tmp_path).name == "v1.2 notes"

    def test_load_documents_in_path_order(self, vault_root):
        docs = load_documents(vault_root)
        assert [d.path for d in docs] == ["Home.md", "notes/Café Notes.md", "projects/Plan.md"]

    def test_unreadable_file_skipped(self, tmp_path, caplog):
        write_note(tmp_path, "good.md", "fine")
        (tmp_path / "bad.md").write_bytes(b"\xff\xfe\xfa invalid utf-8")

        docs = load_documents(tmp_path)

        assert [d.name for d in docs] == ["good"]
        assert "bad.md" in caplog.text
