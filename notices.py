"""One-shot user notices carried across a redirect on Flask's flash channel."""
from typing import NamedTuple

from flask import flash, get_flashed_messages

SUCCESS = "success"
ERROR = "error"
KINDS = (SUCCESS, ERROR)


class Notice(NamedTuple):
    kind: str
    text: str


def push(kind: str, text: str):
    if kind not in KINDS:
        raise ValueError(f"Unknown notice kind: {kind}")
    flash(text, kind)


def success(text: str):
    push(SUCCESS, text)


def error(text: str):
    push(ERROR, text)


def pop_all():
    """Notices queued since the last render. Reading them clears them."""
    return [Notice(kind, text) for kind, text in get_flashed_messages(with_categories=True)]
