"""Provider search and the category list behind the search filter."""
from sqlalchemy import func, or_

import store
from errors import ValidationError
from models import ROLE_PROVIDER, Account
from reviews import compute_rating_summary

ALL_CATEGORIES = "All Categories"
OTHER_CATEGORY = "other"


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def normalize_category(category, new_category=None) -> str:
    category = (category or "").strip()
    if category.lower() != OTHER_CATEGORY:
        return category

    new_category = (new_category or "").strip()
    if not new_category:
        raise ValidationError("Please specify the new category.")
    return new_category[:1].upper() + new_category[1:].lower()


def _rating_order(account):
    summary = compute_rating_summary(account)
    if not summary.has_ratings:
        return (1, 0.0, account.id)
    return (0, -summary.average, account.id)


def search(text=None, category=None):
    criteria = [Account.role == ROLE_PROVIDER, Account.is_subscribed.is_(True)]

    category = (category or "").strip()
    if category and category != ALL_CATEGORIES:
        criteria.append(func.lower(Account.category) == category.lower())

    text = (text or "").strip()
    if text:
        pattern = f"%{_escape_like(text)}%"
        criteria.append(or_(
            Account.name.ilike(pattern, escape="\\"),
            Account.description.ilike(pattern, escape="\\"),
        ))

    providers = store.find(*criteria)
    # rated providers first, best average on top; unrated keep id order
    return sorted(providers, key=_rating_order)


def distinct_categories(base_categories):
    stored = store.distinct("category", Account.role == ROLE_PROVIDER)
    merged = set(base_categories or [])
    merged.update(c for c in stored if c and c.strip())
    return [ALL_CATEGORIES] + sorted(merged)
