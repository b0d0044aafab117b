from app.catalog.keys import ancestor_folders, is_folder_key, parent_prefix


class TestParentPrefix:
    def test_nested_file(self):
        assert parent_prefix("a/b/c/file.txt") == "a/b/c/"

    def test_folder_key(self):
        assert parent_prefix("a/b/") == "a/"

    def test_root(self):
        assert parent_prefix("file.txt") is None
        assert parent_prefix("a/") is None


class TestAncestorFolders:
    def test_depth_matches_segment_count(self):
        assert ancestor_folders("a/b/c/file.txt") == [
            ("a/", None),
            ("a/b/", "a/"),
            ("a/b/c/", "a/b/"),
        ]

    def test_folder_excludes_itself(self):
        assert ancestor_folders("docs/img/") == [("docs/", None)]

    def test_root_key_has_no_ancestors(self):
        assert ancestor_folders("x.txt") == []

    def test_doubled_delimiters_skipped(self):
        assert ancestor_folders("a//b.txt") == [("a/", None)]


def test_is_folder_key():
    assert is_folder_key("docs/")
    assert not is_folder_key("docs/readme.md")
