"""Account storage.

Every write commits its own transaction, so a failed call never leaves a
partially persisted record behind. Reviews are appended with a single INSERT.
"""
import logging

from sqlalchemy.exc import IntegrityError

from errors import DuplicateKey, NotFound
from models import Account, Review, db, dump_json_list, utcnow

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = {"id", "email", "trial_start_date", "created_at", "reviews"}


def _normalize_email(email) -> str:
    return (email or "").strip().lower()


def _coerce_id(account_id):
    try:
        return int(account_id)
    except (TypeError, ValueError):
        return None


def _apply(account: Account, fields: dict):
    for key, value in fields.items():
        if key == "sample_work":
            account.sample_work_json = dump_json_list(value)
        elif hasattr(Account, key):
            setattr(account, key, value)
        else:
            raise ValueError(f"Unknown account field: {key}")


def create(**fields) -> Account:
    fields["email"] = _normalize_email(fields.get("email"))
    if find_by_email(fields["email"]):
        raise DuplicateKey("Email already in use.")

    account = Account()
    _apply(account, fields)
    if account.trial_start_date is None:
        account.trial_start_date = utcnow()

    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise DuplicateKey("Email already in use.") from e
    return account


def find_by_email(email):
    email = _normalize_email(email)
    if not email:
        return None
    return Account.query.filter_by(email=email).first()


def find_by_id(account_id):
    pk = _coerce_id(account_id)
    if pk is None:
        return None
    return db.session.get(Account, pk)


def get_by_id(account_id) -> Account:
    account = find_by_id(account_id)
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    return account


def update_by_id(account_id, **fields) -> Account:
    blocked = IMMUTABLE_FIELDS.intersection(fields)
    if blocked:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(blocked))}")

    account = get_by_id(account_id)
    _apply(account, fields)
    db.session.commit()
    return account


def find(*criteria, order_by=None):
    query = Account.query.filter(*criteria)
    if order_by is None:
        order_by = Account.id.asc()
    return query.order_by(order_by).all()


def distinct(field: str, *criteria) -> set:
    column = getattr(Account, field, None)
    if column is None:
        raise ValueError(f"Unknown account field: {field}")
    rows = db.session.query(column).filter(*criteria).distinct()
    return {row[0] for row in rows}


def append_review(account_id, visitor_name: str, rating: int, comment: str, submitted_at=None) -> Review:
    review = Review(
        account_id=account_id,
        visitor_name=visitor_name,
        rating=rating,
        comment=comment,
        submitted_at=submitted_at or utcnow(),
    )
    db.session.add(review)
    db.session.commit()
    return review
