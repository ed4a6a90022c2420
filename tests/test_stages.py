"""
Unit tests for the individual grouping stages and their helpers.
"""
import os
import pytest
from twinscan.core.grouper import FileGrouperImpl
from twinscan.core.models import FileRecord, MatchType
from twinscan.core.stages import (
    levenshtein, collapse_hard_links,
    SizeStage, PartialHashStage, FullHashStage, MetadataStage, FuzzyNameStage,
)


def _record(path):
    st = path.stat()
    return FileRecord(path=str(path), size=st.st_size, inode=(st.st_dev, st.st_ino))


@pytest.fixture
def grouper():
    g = FileGrouperImpl(max_workers=2)
    yield g
    g.close()


class TestLevenshtein:
    @pytest.mark.parametrize("a, b, expected", [
        ("", "", 0),
        ("abc", "", 3),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
        ("report.pdf", "report1.pdf", 1),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
    ])
    def test_distance(self, a, b, expected):
        assert levenshtein(a, b) == expected

    def test_symmetric(self):
        assert levenshtein("invoice_2023.pdf", "invoice-2024.pdf") == levenshtein(
            "invoice-2024.pdf", "invoice_2023.pdf")


class TestCollapseHardLinks:
    def test_keeps_first_record_per_identity(self):
        files = [
            FileRecord(path="/a", size=1, inode=(1, 10)),
            FileRecord(path="/b", size=1, inode=(1, 10)),
            FileRecord(path="/c", size=1, inode=(1, 11)),
            FileRecord(path="/d", size=1),
            FileRecord(path="/e", size=1),
        ]

        assert [f.path for f in collapse_hard_links(files)] == ["/a", "/c", "/d", "/e"]


class TestContentStages:
    def test_size_stage_flattens_and_buckets(self, grouper):
        files = [FileRecord(path=f"/x/{i}", size=size) for i, size in enumerate([1, 1, 2, 3, 3])]

        buckets = SizeStage(grouper).process([files], [], set())

        assert sorted(len(b) for b in buckets) == [2, 2]

    def test_partial_stage_excludes_oversized_files(self, make_file, grouper):
        small_a = make_file("a.bin", b"x" * 10)
        small_b = make_file("b.bin", b"x" * 10)
        files = [_record(small_a), _record(small_b)]

        assert PartialHashStage(grouper, max_hash_size=9).process([files], [], set()) == []
        assert len(PartialHashStage(grouper, max_hash_size=10).process([files], [], set())) == 1

    def test_full_stage_confirms_exact_groups_and_claims(self, make_file, grouper):
        a = make_file("a.txt", b"content")
        b = make_file("b.txt", b"content")
        confirmed, claimed = [], set()

        leftover = FullHashStage(grouper).process([[_record(a), _record(b)]], confirmed, claimed)

        assert leftover == []
        assert len(confirmed) == 1
        group = confirmed[0]
        assert group.match_type == MatchType.EXACT
        assert len(group.key) == 64
        assert claimed == {str(a), str(b)}

    def test_full_stage_drops_hard_link_only_groups(self, make_file, grouper, temp_dir):
        original = make_file("original.dat", b"payload")
        link = temp_dir / "link.dat"
        try:
            os.link(original, link)
        except (OSError, NotImplementedError):
            pytest.skip("Hard links not supported on this filesystem")
        confirmed = []

        FullHashStage(grouper).process([[_record(original), _record(link)]], confirmed, set())

        assert confirmed == []

    def test_snippet_filter(self, make_file, grouper):
        a = make_file("a.txt", b"Copyright ACME\nbody")
        b = make_file("b.txt", b"Copyright ACME\nbody")
        files = [_record(a), _record(b)]

        hit, miss = [], []
        FullHashStage(grouper, snippet_filter="ACME").process([files], hit, set())
        FullHashStage(grouper, snippet_filter="Globex").process([files], miss, set())

        assert len(hit) == 1
        assert miss == []

    def test_snippet_beyond_window_is_not_seen(self, make_file, grouper):
        content = b"x" * 2000 + b"needle"
        files = [_record(make_file("a.txt", content)), _record(make_file("b.txt", content))]
        confirmed = []

        FullHashStage(grouper, snippet_filter="needle").process([files], confirmed, set())

        assert confirmed == []


class TestNameStages:
    def test_metadata_requires_distinct_folders(self, grouper):
        files = [
            FileRecord(path="/one/Notes.txt", size=50),
            FileRecord(path="/two/notes.TXT", size=50),
            FileRecord(path="/one/other.txt", size=50),
        ]
        confirmed, claimed = [], set()

        MetadataStage(grouper, files).process([], confirmed, claimed)

        assert len(confirmed) == 1
        assert confirmed[0].match_type == MatchType.METADATA
        assert confirmed[0].key == "metadata"
        assert claimed == {"/one/Notes.txt", "/two/notes.TXT"}

    def test_metadata_same_folder_is_not_a_group(self, grouper):
        files = [FileRecord(path="/one/a.txt", size=5), FileRecord(path="/one/A.txt", size=5)]
        confirmed = []

        MetadataStage(grouper, files).process([], confirmed, set())

        assert confirmed == []

    def test_metadata_skips_claimed_files(self, grouper):
        files = [FileRecord(path="/one/a.txt", size=5), FileRecord(path="/two/a.txt", size=5)]
        confirmed = []

        MetadataStage(grouper, files).process([], confirmed, {"/one/a.txt"})

        assert confirmed == []

    def test_fuzzy_pairs_within_threshold(self):
        files = [
            FileRecord(path="/d/report.pdf", size=1),
            FileRecord(path="/d/report1.pdf", size=2),
            FileRecord(path="/d/completely_different.bin", size=3),
        ]
        confirmed = []

        FuzzyNameStage(files).process([], confirmed, set())

        assert len(confirmed) == 1
        pair = confirmed[0]
        assert pair.match_type == MatchType.FUZZY_NAME
        assert pair.key == "fuzzy"
        assert [f.name for f in pair.files] == ["report.pdf", "report1.pdf"]

    def test_fuzzy_identical_names_are_not_paired(self):
        files = [FileRecord(path="/a/same.txt", size=1), FileRecord(path="/b/same.txt", size=2)]
        confirmed = []

        FuzzyNameStage(files).process([], confirmed, set())

        assert confirmed == []

    def test_fuzzy_file_may_join_several_pairs(self):
        files = [
            FileRecord(path="/d/a1.txt", size=1),
            FileRecord(path="/d/a2.txt", size=1),
            FileRecord(path="/d/a3.txt", size=1),
        ]
        confirmed = []

        FuzzyNameStage(files, threshold=1).process([], confirmed, set())

        assert len(confirmed) == 3
        assert all(len(g.files) == 2 for g in confirmed)

    def test_fuzzy_candidate_limit(self):
        files = [FileRecord(path=f"/d/file{i}.txt", size=1) for i in range(5)]
        confirmed = []

        FuzzyNameStage(files, candidate_limit=2).process([], confirmed, set())

        assert len(confirmed) == 1
        assert {f.name for f in confirmed[0].files} == {"file0.txt", "file1.txt"}

    def test_fuzzy_ignores_claimed(self):
        files = [FileRecord(path="/d/report.pdf", size=1), FileRecord(path="/d/report1.pdf", size=2)]
        confirmed = []

        FuzzyNameStage(files).process([], confirmed, {"/d/report.pdf"})

        assert confirmed == []
