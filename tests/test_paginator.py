from __future__ import annotations

import pytest

from bookshelf.reader.paginator import PARAGRAPH_SEPARATOR, paginate, split_paragraphs


SAMPLES = [
    "",
    "   \n\n  \n",
    "Single paragraph.",
    "One.\n\nTwo.\n\nThree.",
    "  padded  \n \n\n\t\nnext one\r\n\r\nwindows break",
    "# Heading\n\nSome *markdown* text.\nSame paragraph, new line.\n\n> quote\n\n- a\n- b",
    "x" * 50 + "\n\n" + "y" * 5 + "\n\n" + "z" * 30,
]


def test_empty_input_yields_one_empty_page() -> None:
    assert paginate("") == [""]
    assert paginate("\n\n   \n") == [""]


@pytest.mark.parametrize("text", SAMPLES)
@pytest.mark.parametrize("budget", [1, 5, 20, 60, 1600])
def test_rejoined_pages_reproduce_paragraphs(text: str, budget: int) -> None:
    pages = paginate(text, budget)
    assert pages
    assert PARAGRAPH_SEPARATOR.join(pages) == PARAGRAPH_SEPARATOR.join(split_paragraphs(text))


@pytest.mark.parametrize("text", SAMPLES)
@pytest.mark.parametrize("budget", [1, 5, 20, 60, 1600])
def test_pages_respect_budget_unless_single_long_paragraph(text: str, budget: int) -> None:
    for page in paginate(text, budget):
        if len(page) > budget:
            assert len(split_paragraphs(page)) == 1


def test_paragraphs_are_packed_greedily() -> None:
    text = "aaaa\n\nbbbb\n\ncccc"
    # "aaaa\n\nbbbb" is 10 characters
    assert paginate(text, 10) == ["aaaa\n\nbbbb", "cccc"]
    assert paginate(text, 9) == ["aaaa", "bbbb", "cccc"]
    assert paginate(text, 16) == ["aaaa\n\nbbbb\n\ncccc"]


def test_oversized_paragraph_gets_its_own_page() -> None:
    long = "L" * 40
    assert paginate(f"short\n\n{long}\n\ntail", 20) == ["short", long, "tail"]


def test_multiple_blank_lines_collapse() -> None:
    assert split_paragraphs("a\n\n\n\n  \nb") == ["a", "b"]


def test_budget_must_be_positive() -> None:
    with pytest.raises(ValueError):
        paginate("text", 0)
