"""Free trial and subscription rules for provider accounts."""
import logging
import math
from datetime import timedelta

from flask import current_app, has_app_context

import store
from models import utcnow

logger = logging.getLogger(__name__)

DEFAULT_TRIAL_DAYS = 7
ONE_DAY = timedelta(days=1)


def _trial_days() -> int:
    if has_app_context():
        return current_app.config.get("TRIAL_DAYS", DEFAULT_TRIAL_DAYS)
    return DEFAULT_TRIAL_DAYS


def trial_end(account):
    return account.trial_start_date + timedelta(days=_trial_days())


def is_trial_active(account, now=None) -> bool:
    if account.is_subscribed:
        return False
    now = now or utcnow()
    return now < trial_end(account)


def days_left(account, now=None) -> int:
    now = now or utcnow()
    if not is_trial_active(account, now):
        return 0
    # a partial day still counts as a full day
    return math.ceil((trial_end(account) - now) / ONE_DAY)


def activate_subscription(account_id):
    """Flip the subscription flag on. Calling it again is a no-op success."""
    account = store.get_by_id(account_id)
    if account.is_subscribed:
        return account

    account = store.update_by_id(account.id, is_subscribed=True, subscribed_at=utcnow())
    logger.info("Subscription activated for account %s", account.id)
    return account
