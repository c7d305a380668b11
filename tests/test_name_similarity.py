import pytest

from movie_poll.services.identity_service import name_similarity


def test_same_name_ignoring_case_and_spaces():
    assert name_similarity("Alice", "  alice ") == 1.0


def test_nickname_contained_in_full_name():
    assert name_similarity("Ali", "Alice") == 0.8
    assert name_similarity("Alice", "Ali") == 0.8


def test_short_nickname_falls_back_to_edit_distance():
    # Containment needs 3+ characters; "al" vs "alice" is 3 edits over 5
    assert name_similarity("Al", "Alice") == pytest.approx(0.4)


def test_edit_distance_similarity():
    assert name_similarity("Bob", "Rob") == pytest.approx(2 / 3)
    assert name_similarity("Jonathan", "Jonathon") == pytest.approx(0.875)


def test_unrelated_names_score_zero():
    assert name_similarity("abcde", "vwxyz") == 0.0


@pytest.mark.parametrize("a,b", [("Alice", "Alicia"), ("Sam", "Samantha"), ("Kim", "Tim")])
def test_similarity_is_symmetric(a, b):
    assert name_similarity(a, b) == name_similarity(b, a)
