from types import SimpleNamespace

import pytest

import store
from errors import NotFound, ValidationError
from models import ROLE_SEEKER
from reviews import RatingSummary, compute_rating_summary, parse_rating, submit_review


@pytest.mark.parametrize("raw, expected", [
    ("4", 4),
    (3, 3),
    (" 5 ", 5),
    ("7", 5),
    (7, 5),
    ("-2", 0),
    ("abc", 0),
    ("", 0),
    (None, 0),
    ("4.5", 0),
])
def test_parse_rating(raw, expected):
    assert parse_rating(raw) == expected


def test_submit_review_appends(app_ctx, make_provider):
    account_id = make_provider()

    submit_review(account_id, "  Alice ", "4", " Great work ")

    reviews = store.get_by_id(account_id).reviews
    assert len(reviews) == 1
    assert reviews[0].visitor_name == "Alice"
    assert reviews[0].rating == 4
    assert reviews[0].comment == "Great work"
    assert reviews[0].submitted_at is not None


def test_rating_above_five_is_clamped(app_ctx, make_provider):
    account_id = make_provider()
    review = submit_review(account_id, "Bob", 7, "Superb")
    assert review.rating == 5


def test_non_numeric_rating_becomes_inquiry(app_ctx, make_provider):
    account_id = make_provider()
    review = submit_review(account_id, "Bob", "abc", "Are you free on Monday?")
    assert review.rating == 0
    assert review.is_inquiry


@pytest.mark.parametrize("name, comment", [
    ("", "Nice"),
    ("   ", "Nice"),
    ("Carol", ""),
    ("Carol", "  "),
    (None, None),
])
def test_blank_name_or_comment_never_mutates(app_ctx, make_provider, name, comment):
    account_id = make_provider()

    with pytest.raises(ValidationError):
        submit_review(account_id, name, "5", comment)

    assert store.get_by_id(account_id).reviews == []


def test_review_for_unknown_account(app_ctx):
    with pytest.raises(NotFound):
        submit_review(12345, "Dan", "3", "Hello")


def test_review_for_seeker_account(app_ctx, make_provider):
    account_id = make_provider(role=ROLE_SEEKER)
    with pytest.raises(NotFound):
        submit_review(account_id, "Dan", "3", "Hello")


def test_reviews_keep_submission_order(app_ctx, make_provider):
    account_id = make_provider()
    for i in range(3):
        submit_review(account_id, f"Visitor {i}", str(i + 1), "ok")

    names = [r.visitor_name for r in store.get_by_id(account_id).reviews]
    assert names == ["Visitor 0", "Visitor 1", "Visitor 2"]


def test_summary_excludes_inquiries():
    reviews = [SimpleNamespace(rating=0), SimpleNamespace(rating=4), SimpleNamespace(rating=2)]
    assert compute_rating_summary(reviews) == RatingSummary(3.0, 2)


def test_summary_without_ratings():
    assert compute_rating_summary([]) == RatingSummary("N/A", 0)
    assert compute_rating_summary([SimpleNamespace(rating=0)]) == RatingSummary("N/A", 0)


def test_summary_rounds_to_one_decimal():
    reviews = [{"rating": 4}, {"rating": 4}, {"rating": 5}]
    assert compute_rating_summary(reviews).average == 4.3


def test_summary_rounds_half_up():
    reviews = [{"rating": 1}, {"rating": 2}, {"rating": 2}, {"rating": 4}]
    # 9 / 4 = 2.25
    assert compute_rating_summary(reviews).average == 2.3


def test_summary_from_account(app_ctx, make_provider):
    account_id = make_provider()
    submit_review(account_id, "A", "5", "x")
    submit_review(account_id, "B", "0", "question")
    submit_review(account_id, "C", "4", "y")

    summary = compute_rating_summary(store.get_by_id(account_id))
    assert summary == RatingSummary(4.5, 2)
    assert summary.has_ratings
