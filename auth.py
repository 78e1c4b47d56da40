import logging

from werkzeug.security import check_password_hash, generate_password_hash

import store
from errors import InvalidCredentials
from models import ROLE_PROVIDER, utcnow
from search import normalize_category

logger = logging.getLogger(__name__)


def hash_password(plaintext: str) -> str:
    return generate_password_hash(plaintext)


def verify_credentials(email: str, plaintext: str):
    """Return the account for these credentials.

    Unknown emails and wrong passwords raise the same ``InvalidCredentials``.
    """
    account = store.find_by_email(email)
    if account is None or not check_password_hash(account.password_hash, plaintext or ""):
        logger.info("Failed login for %s", (email or "").strip().lower())
        raise InvalidCredentials()
    return account


def register_provider(form, profile_picture_uri: str = ""):
    account = store.create(
        email=form.email,
        password_hash=hash_password(form.password),
        role=ROLE_PROVIDER,
        name=form.name,
        category=normalize_category(form.category, form.new_category),
        contact_info=form.contact_info,
        description=form.description,
        sample_work=form.sample_work,
        profile_picture_uri=profile_picture_uri,
        is_subscribed=False,
        trial_start_date=utcnow(),
    )
    logger.info("Registered provider %s (%s)", account.id, account.email)
    return account
