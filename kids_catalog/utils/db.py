"""
Session helpers for statements that bypass the unit of work.
"""


def expire_cached(db_session, model, pk, *attribute_names):
    """
    Expire attributes of an already-loaded instance after a bulk UPDATE.

    Counter updates run as plain UPDATE statements; this makes the next
    attribute access on a loaded instance read the stored value. Instances
    that are not loaded are left alone.
    """
    key = db_session.identity_key(model, pk)
    instance = db_session.identity_map.get(key)
    if instance is not None:
        db_session.expire(instance, list(attribute_names) or None)
