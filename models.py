import json
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin

db = SQLAlchemy()

ROLE_PROVIDER = "provider"
ROLE_SEEKER = "seeker"
ROLES = (ROLE_PROVIDER, ROLE_SEEKER)


def utcnow() -> datetime:
    # naive UTC, matching what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =========================================================
# HELPERS
# =========================================================
def dump_json_list(items):
    cleaned = []
    for x in items or []:
        x = (x or "").strip()
        if x and x not in cleaned:
            cleaned.append(x)
    return json.dumps(cleaned, ensure_ascii=False)


def load_json_list(value):
    if not value:
        return []
    try:
        data = json.loads(value)
    except ValueError:
        return []
    return data if isinstance(data, list) else []


# =========================================================
# MODELS
# =========================================================
class Account(UserMixin, db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(150), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_PROVIDER)  # provider / seeker

    name = db.Column(db.String(150))
    category = db.Column(db.String(100), index=True)
    contact_info = db.Column(db.String(255))
    description = db.Column(db.Text, default="")
    profile_picture_uri = db.Column(db.String(255), default="")
    sample_work_json = db.Column(db.Text, default="[]")

    is_subscribed = db.Column(db.Boolean, nullable=False, default=False)
    trial_start_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    subscribed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    reviews = db.relationship(
        "Review", backref="account", lazy=True,
        order_by="Review.id", cascade="all, delete-orphan"
    )

    @property
    def sample_work(self):
        return load_json_list(self.sample_work_json)

    @property
    def is_provider(self) -> bool:
        return self.role == ROLE_PROVIDER

    def __repr__(self):
        return f"<Account {self.id} {self.email}>"


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    visitor_name = db.Column(db.String(150), nullable=False)
    rating = db.Column(db.Integer, nullable=False, default=0)  # 0 = inquiry
    comment = db.Column(db.Text, nullable=False)
    submitted_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def is_inquiry(self) -> bool:
        return self.rating == 0


class WebSession(db.Model):
    __tablename__ = "web_sessions"

    sid = db.Column(db.String(64), primary_key=True)
    data = db.Column(db.Text, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
