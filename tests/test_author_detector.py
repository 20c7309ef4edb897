"""
Unit tests for header author-name detection.
"""

from __future__ import annotations

from processing.author_detector import (
    AuthorNameDetector,
    DetectorConfig,
    detect_authors,
    extract_names_from_line,
    header_lines,
    is_likely_author_name,
    score_author_line,
)


def test_prefixed_author_line_keeps_order():
    assert detect_authors("Authors: Jane Doe, John Smith") == ["Jane Doe", "John Smith"]


def test_no_name_shaped_lines_returns_empty():
    text = "this paper is about nothing in particular\nwe measure things\nAbstract\nMore words here."
    assert detect_authors(text) == []
    assert detect_authors("") == []


def test_title_block_with_affiliation_line():
    text = "\n".join(
        [
            "a study of sparse widget graphs",
            "Alice Johnson, Bob Lee, Carol King",
            "Department of Computer Science, Example University",
            "Abstract",
            "Jane Doe, John Smith wrote the related work.",
        ]
    )
    assert detect_authors(text) == ["Alice Johnson", "Bob Lee", "Carol King"]


def test_author_list_wrapped_over_two_lines_is_merged():
    text = "\n".join(
        [
            "sparse widget graphs at scale",
            "Alice Johnson, Bob Lee,",
            "Carol King, Dan Brown",
            "Example University",
            "Abstract",
        ]
    )
    assert detect_authors(text) == ["Alice Johnson", "Bob Lee", "Carol King", "Dan Brown"]


def test_korean_prefixed_names():
    assert detect_authors("저자: 김철수, 이영희") == ["김철수", "이영희"]


def test_names_are_capped():
    names = [
        "Alice Adams", "Bob Brown", "Carol Clark", "David Davis", "Erin Evans",
        "Frank Ford", "Grace Green", "Henry Hill", "Irene Irwin", "Jack Jones",
        "Karen King", "Liam Lewis", "Mona Moore", "Nina Nash", "Oscar Owen",
    ]
    result = detect_authors("Authors: " + ", ".join(names))
    assert result == names[:12]


def test_emails_and_footnote_digits_are_stripped():
    names = extract_names_from_line("Jane Doe1, John Smith2 jane@example.org")
    assert names == ["Jane Doe", "John Smith"]


def test_by_prefix_does_not_eat_names_starting_with_by():
    assert extract_names_from_line("Byron Hale, Ada Stone") == ["Byron Hale", "Ada Stone"]


def test_name_filter_rejects_noise_and_digits():
    assert is_likely_author_name("Jane Doe") is True
    assert is_likely_author_name("Ludwig van Beethoven") is True
    assert is_likely_author_name("J. R. Tolkien") is True
    assert is_likely_author_name("Example University") is False
    assert is_likely_author_name("Jane Doe 2024") is False
    assert is_likely_author_name("jane doe") is False
    assert is_likely_author_name("Jane") is False


def test_header_stops_at_abstract_but_not_on_first_line():
    lines = header_lines("Title here\nJane Doe\nAbstract\nbody")
    assert lines == ["Title here", "Jane Doe"]

    running_title = header_lines("Abstract Algebra Notes\nJane Doe, John Smith")
    assert running_title == ["Abstract Algebra Notes", "Jane Doe, John Smith"]


def test_line_scorer_weights():
    config = DetectorConfig()
    assert score_author_line("Authors: Jane Doe, John Smith", ["Jane Doe", "John Smith"], 0, config) == 16
    # noise without prefix, late line
    assert score_author_line("Jane Doe, Example University", ["Jane Doe"], 20, config) == 1
    # email penalty
    assert score_author_line("Jane Doe jane@x.org", ["Jane Doe"], 0, config) == 5


def test_injected_scorer_decides_the_winner():
    def prefer_bob(line, names, index, config):
        return 100 if "Bob" in line else 1

    detector = AuthorNameDetector(scorer=prefer_bob)
    text = "Alice Johnson, Carol King\nsomething else\nBob Lee, Dan Brown"
    assert detector.detect(text) == ["Bob Lee", "Dan Brown"]


def test_candidates_are_ranked_best_first():
    detector = AuthorNameDetector()
    ranked = detector.candidates("Alice Johnson, Carol King\nsomething else\nBob Lee")
    assert ranked[0].names == ["Alice Johnson", "Carol King"]
    assert all(ranked[i].score >= ranked[i + 1].score for i in range(len(ranked) - 1))


def test_single_name_winner_accumulates_near_best_lines():
    filler = ["sparse methods for graphs"] * 5
    text = "\n".join(
        ["sparse widget graphs", "Jane Doe", "sparse methods for graphs", "John Smith"]
        + filler
        + ["Bob Lee, Example University"]
    )
    detector = AuthorNameDetector()

    ranked = detector.candidates(text)
    assert [c.names for c in ranked] == [["Jane Doe"], ["John Smith"], ["Bob Lee"]]
    assert [c.score for c in ranked] == [6, 6, 1]
    # Bob Lee is more than three points behind the best line
    assert detector.detect(text) == ["Jane Doe", "John Smith"]


def test_accumulated_names_are_capped():
    names = ["Alice Adams", "Bob Brown", "Carol Clark", "David Davis", "Erin Evans", "Frank Ford", "Grace Green"]
    text = "\n".join(name + "\nsparse methods for graphs" for name in names)

    result = AuthorNameDetector(DetectorConfig(early_line_index=100, max_names=5)).detect(text)
    assert result == names[:5]


def test_names_beyond_scan_window_are_ignored():
    filler = ["sparse methods for graphs"] * 45
    text = "\n".join(filler + ["Jane Doe, John Smith"])

    assert detect_authors(text) == []
    assert detect_authors(text, DetectorConfig(scan_lines=50)) == ["Jane Doe", "John Smith"]


def test_header_is_capped_at_seventy_lines():
    lines = [f"plain header line {i}" for i in range(100)]
    assert len(header_lines("\n".join(lines))) == 70

    lines[80] = "Abstract"
    assert header_lines("\n".join(lines)) == lines[:70]
