"""
Kid ownership lookup.

Kid profiles belong to the account service. The catalog only needs one
question answered, whether a kid belongs to a parent account, and asks it
through KidDirectory so the backing store can be swapped.
"""

from kids_catalog.models.kid import KidProfile


class KidDirectory:
    """Contract for kid ownership checks."""

    def kid_belongs_to(self, kid_id: str, user_id: str) -> bool:
        raise NotImplementedError


class SqlKidDirectory(KidDirectory):
    """KidDirectory backed by the local kid_profiles table."""

    def __init__(self, db_session):
        self.db_session = db_session

    def kid_belongs_to(self, kid_id: str, user_id: str) -> bool:
        if not kid_id or not user_id:
            return False
        kid = self.db_session.query(KidProfile.id).filter_by(
            id=kid_id,
            user_id=user_id,
            is_active=True
        ).first()
        return kid is not None
