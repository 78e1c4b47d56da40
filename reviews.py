import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Union

import store
from errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

MIN_RATING = 0
MAX_RATING = 5
NO_RATING = "N/A"


class RatingSummary(NamedTuple):
    average: Union[float, str]
    count: int

    @property
    def has_ratings(self) -> bool:
        return self.count > 0


def parse_rating(raw) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return MIN_RATING
    return max(MIN_RATING, min(MAX_RATING, value))


def submit_review(account_id, visitor_name, rating, comment, now=None):
    visitor_name = (visitor_name or "").strip()
    comment = (comment or "").strip()
    if not visitor_name or not comment:
        raise ValidationError("Please provide your name and a comment.")

    account = store.find_by_id(account_id)
    if account is None or not account.is_provider:
        raise NotFound(f"Provider {account_id} not found.")

    review = store.append_review(
        account.id,
        visitor_name=visitor_name,
        rating=parse_rating(rating),
        comment=comment,
        submitted_at=now,
    )
    logger.info("Review %s added for provider %s (rating=%s)", review.id, account.id, review.rating)
    return review


def compute_rating_summary(account_or_reviews) -> RatingSummary:
    """Average of the 1-5 ratings; 0-rated inquiries are left out."""
    reviews = getattr(account_or_reviews, "reviews", account_or_reviews) or []
    ratings = []
    for r in reviews:
        value = r["rating"] if isinstance(r, dict) else r.rating
        if 1 <= value <= MAX_RATING:
            ratings.append(value)

    if not ratings:
        return RatingSummary(NO_RATING, 0)

    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    average = float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    return RatingSummary(average, len(ratings))
