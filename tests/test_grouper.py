"""
Unit tests for group_duplicates.
Verifies hash bucketing, empty-hash exclusion and deterministic ordering.
"""
from fakes import file_info
from sharepoint_dedup.services.grouper import group_duplicates


class TestGroupDuplicates:

    def test_basic_duplicate_detection(self):
        files = [
            file_info("1", "/a.txt", "X", 10),
            file_info("2", "/b.txt", "X", 10),
            file_info("3", "/c.txt", "Y", 20),
        ]

        groups = group_duplicates(files)

        assert len(groups) == 1
        assert groups[0].hash == "X"
        assert [f.id for f in groups[0].files] == ["1", "2"]
        assert groups[0].file_size == 10
        assert groups[0].total_wasted_space == 10

    def test_empty_hash_files_never_grouped(self):
        files = [file_info("p", "/p", ""), file_info("q", "/q", "")]
        assert group_duplicates(files) == []

    def test_singletons_dropped(self):
        files = [file_info("1", "/a", "X"), file_info("2", "/b", "Y")]
        assert group_duplicates(files) == []

    def test_algorithms_are_not_conflated(self):
        a = file_info("1", "/a", "ABC")
        b = file_info("2", "/b", "ABC").model_copy(update={"hash_algorithm": "sha1Hash"})

        assert group_duplicates([a, b]) == []

    def test_same_hash_different_size_split(self):
        files = [
            file_info("1", "/a", "X", 10),
            file_info("2", "/b", "X", 10),
            file_info("3", "/c", "X", 99),
        ]

        groups = group_duplicates(files)

        assert len(groups) == 1
        assert {f.id for f in groups[0].files} == {"1", "2"}

    def test_members_keep_input_order_and_groups_sorted(self):
        files = [
            file_info("z2", "/z2", "Z"),
            file_info("a1", "/a1", "A"),
            file_info("z1", "/z1", "Z"),
            file_info("a2", "/a2", "A"),
        ]

        groups = group_duplicates(files)

        assert [g.hash for g in groups] == ["A", "Z"]
        assert [f.id for f in groups[1].files] == ["z2", "z1"]
        assert group_duplicates(list(files)) == groups

    def test_group_invariants(self):
        files = [file_info(str(i), f"/f{i}", "H" if i % 2 else "", 5) for i in range(10)]

        for group in group_duplicates(files):
            assert len(group.files) >= 2
            assert group.hash != ""
            assert all(f.hash == group.hash and f.size == group.file_size for f in group.files)
