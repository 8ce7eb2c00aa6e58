"""
tests/unit/conftest.py

Unit tests build model instances without an app. Relationships are declared
by class name, so every model module must be imported before the first
mapper configuration.
"""

from squareup.app.models import (  # noqa: F401
    contribution,
    delete_vote,
    friend,
    group,
    membership,
    one_time_code,
    receiver_share,
    refresh_token,
    user,
)
