"""
Unit tests for the unified diff parser.
"""

import pytest

from autocodereview.diff.parser import UnifiedDiffParser
from autocodereview.exceptions import DiffUnavailable
from autocodereview.models.diff import ChangeKind

from stubs import TWO_FILE_DIFF


class TestUnifiedDiffParser:
    """Unit tests for UnifiedDiffParser class."""

    def setup_method(self):
        self.parser = UnifiedDiffParser()

    def test_parse_two_files_in_order(self):
        document = self.parser.parse(TWO_FILE_DIFF)

        assert document.file_paths == ["a.py", "b.py"]
        assert [f.change_kind for f in document.files] == [ChangeKind.MODIFIED, ChangeKind.MODIFIED]
        assert document.files[0].additions == 3
        assert document.files[0].deletions == 0
        assert document.files[1].additions == 0
        assert document.files[1].deletions == 1

    def test_round_trip_is_exact(self):
        document = self.parser.parse(TWO_FILE_DIFF)

        assert document.to_text() == TWO_FILE_DIFF
        assert all(len(f.hunks) == 1 for f in document.files)
        assert document.files[1].hunks[0].startswith("@@ -3,3 +3,2 @@ def main():\n")

    def test_hunks_are_slices_of_source(self):
        document = self.parser.parse(TWO_FILE_DIFF)

        position = 0
        for hunk in (h for f in document.files for h in f.hunks):
            found = TWO_FILE_DIFF.index(hunk, position)
            position = found + len(hunk)
        assert position == len(TWO_FILE_DIFF)

    def test_empty_diff(self):
        document = self.parser.parse("")

        assert document.is_empty
        assert document.files == ()
        assert document.to_text() == ""

    def test_whitespace_only_diff_is_empty(self):
        document = self.parser.parse("\n\n")

        assert document.is_empty
        assert document.to_text() == "\n\n"

    def test_text_without_file_headers_is_malformed(self):
        with pytest.raises(DiffUnavailable):
            self.parser.parse("this is not a diff\n")

    def test_added_and_deleted_files(self):
        diff = (
            "diff --git a/new.txt b/new.txt\n"
            "new file mode 100644\n"
            "index 0000000..3b18e51\n"
            "--- /dev/null\n"
            "+++ b/new.txt\n"
            "@@ -0,0 +1 @@\n"
            "+hello\n"
            "diff --git a/old.txt b/old.txt\n"
            "deleted file mode 100644\n"
            "index 3b18e51..0000000\n"
            "--- a/old.txt\n"
            "+++ /dev/null\n"
            "@@ -1 +0,0 @@\n"
            "-bye\n"
        )
        document = self.parser.parse(diff)

        assert document.file_paths == ["new.txt", "old.txt"]
        assert document.files[0].change_kind == ChangeKind.ADDED
        assert document.files[1].change_kind == ChangeKind.DELETED
        assert document.to_text() == diff

    def test_rename_without_content_change(self):
        diff = (
            "diff --git a/src/old_name.py b/src/new_name.py\n"
            "similarity index 100%\n"
            "rename from src/old_name.py\n"
            "rename to src/new_name.py\n"
        )
        document = self.parser.parse(diff)

        file_diff = document.files[0]
        assert file_diff.change_kind == ChangeKind.RENAMED
        assert file_diff.path == "src/new_name.py"
        assert file_diff.old_path == "src/old_name.py"
        assert file_diff.hunks == ()

    def test_binary_file(self):
        diff = (
            "diff --git a/logo.png b/logo.png\n"
            "index 1111111..2222222 100644\n"
            "Binary files a/logo.png and b/logo.png differ\n"
        )
        document = self.parser.parse(diff)

        assert document.files[0].is_binary
        assert document.files[0].path == "logo.png"
        assert document.files[0].hunks == ()

    def test_removed_line_that_looks_like_header_stays_in_hunk(self):
        diff = (
            "diff --git a/schema.sql b/schema.sql\n"
            "--- a/schema.sql\n"
            "+++ b/schema.sql\n"
            "@@ -1,3 +1,2 @@\n"
            "--- drop this comment\n"
            "+++ add this one\n"
            " SELECT 1;\n"
            "-SELECT 2;\n"
        )
        document = self.parser.parse(diff)

        assert document.file_paths == ["schema.sql"]
        assert len(document.files[0].hunks) == 1
        assert document.to_text() == diff

    def test_plain_unified_diff_without_git_headers(self):
        diff = (
            "--- a/one.txt\t2024-01-01 10:00:00\n"
            "+++ b/one.txt\t2024-01-02 10:00:00\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
            "--- a/two.txt\n"
            "+++ b/two.txt\n"
            "@@ -1 +1 @@\n"
            "-c\n"
            "+d\n"
        )
        document = self.parser.parse(diff)

        assert document.file_paths == ["one.txt", "two.txt"]
        assert document.to_text() == diff

    def test_no_newline_marker_and_missing_final_newline(self):
        diff = (
            "diff --git a/x.txt b/x.txt\n"
            "--- a/x.txt\n"
            "+++ b/x.txt\n"
            "@@ -1 +1 @@\n"
            "-old\n"
            "+new\n"
            "\\ No newline at end of file"
        )
        document = self.parser.parse(diff)

        assert document.files[0].hunks[0].endswith("\\ No newline at end of file")
        assert document.to_text() == diff

    def test_crlf_line_endings_preserved(self):
        diff = TWO_FILE_DIFF.replace("\n", "\r\n")
        document = self.parser.parse(diff)

        assert document.file_paths == ["a.py", "b.py"]
        assert document.to_text() == diff

    def test_trailing_blank_lines_kept_in_last_hunk(self):
        diff = TWO_FILE_DIFF + "\n\n"
        document = self.parser.parse(diff)

        assert document.files[-1].hunks[-1].endswith("     return x\n\n\n")
        assert document.to_text() == diff

    def test_preamble_before_first_file(self):
        preamble = "From 1234 Mon Sep 17 00:00:00 2001\nSubject: [PATCH] change\n\n"
        document = self.parser.parse(preamble + TWO_FILE_DIFF)

        assert document.preamble == preamble
        assert document.file_paths == ["a.py", "b.py"]
        assert document.hunk_text() == "".join(h for f in document.files for h in f.hunks)

    def test_multiple_hunks_in_one_file(self):
        diff = (
            "diff --git a/m.py b/m.py\n"
            "--- a/m.py\n"
            "+++ b/m.py\n"
            "@@ -1,2 +1,2 @@\n"
            " a\n"
            "-b\n"
            "+B\n"
            "@@ -10,2 +10,3 @@ class M:\n"
            " x\n"
            "+y\n"
            " z\n"
        )
        document = self.parser.parse(diff)

        hunks = document.files[0].hunks
        assert len(hunks) == 2
        assert hunks[1].startswith("@@ -10,2 +10,3 @@ class M:")

    def test_quoted_non_ascii_binary_path(self):
        diff = (
            'diff --git "a/\\303\\251.png" "b/\\303\\251.png"\n'
            "index 1111111..2222222 100644\n"
            'Binary files "a/\\303\\251.png" and "b/\\303\\251.png" differ\n'
            "diff --git a/x.py b/x.py\n"
            "--- a/x.py\n"
            "+++ b/x.py\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )
        document = self.parser.parse(diff)

        assert document.file_paths == ["é.png", "x.py"]
        assert document.files[0].is_binary
        assert document.to_text() == diff

    def test_quoted_paths_in_markers(self):
        diff = (
            'diff --git "a/docs/r\\303\\251sum\\303\\251.md" "b/docs/r\\303\\251sum\\303\\251.md"\n'
            'new file mode 100644\n'
            '--- /dev/null\n'
            '+++ "b/docs/r\\303\\251sum\\303\\251.md"\n'
            "@@ -0,0 +1 @@\n"
            "+hello\n"
        )
        document = self.parser.parse(diff)

        assert document.file_paths == ["docs/résumé.md"]
        assert document.files[0].change_kind == ChangeKind.ADDED

    def test_quoted_path_with_escaped_quote_and_space(self):
        diff = (
            'diff --git "a/my \\"notes\\".txt" "b/my \\"notes\\".txt"\n'
            "old mode 100644\n"
            "new mode 100755\n"
        )
        document = self.parser.parse(diff)

        assert document.file_paths == ['my "notes".txt']
        assert document.files[0].hunks == ()

    def test_quoted_rename(self):
        diff = (
            'diff --git a/plain.txt "b/\\303\\274ber.txt"\n'
            "similarity index 100%\n"
            "rename from plain.txt\n"
            'rename to "\\303\\274ber.txt"\n'
        )
        document = self.parser.parse(diff)

        assert document.files[0].change_kind == ChangeKind.RENAMED
        assert document.files[0].path == "über.txt"
        assert document.files[0].old_path == "plain.txt"
