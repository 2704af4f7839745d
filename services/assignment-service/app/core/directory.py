from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from app.models.user import User
from app.schemas.user import UserRoleEnum

class ModeratorDirectory:
    """
    Read-only lookups over the users eligible for ticket assignment.
    Iteration order is ascending user id.
    """

    def __init__(self, db: Session, case_sensitive: bool = False):
        self.db = db
        self.case_sensitive = case_sensitive

    def _key(self, skill: str) -> str:
        skill = skill.strip()
        return skill if self.case_sensitive else skill.casefold()

    def _keys(self, skills: Optional[Iterable[str]]) -> set:
        return {self._key(s) for s in (skills or []) if isinstance(s, str) and s.strip()}

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def list_by_role(self, role: str) -> List[User]:
        return self.db.query(User).filter(User.role == role).order_by(User.id).all()

    def find_by_skill_overlap(self, skills: Iterable[str], role: str = UserRoleEnum.MODERATOR.value) -> Optional[User]:
        """
        First user of the given role sharing at least one skill with `skills`.
        No ranking by overlap size; an empty skill list never matches.
        """
        wanted = self._keys(skills)
        if not wanted:
            return None
        for user in self.list_by_role(role):
            if wanted & self._keys(user.skills):
                return user
        return None

    def find_one_by_role(self, role: str) -> Optional[User]:
        return self.db.query(User).filter(User.role == role).order_by(User.id).first()
