from sqlmodel import Session, select

from ..core.clock import utcnow
from ..models.UserPreferences import UserPreferences, PreferencesUpdate


class PreferencesStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> UserPreferences | None:
        statement = select(UserPreferences).where(UserPreferences.user_id == user_id)
        return self.session.exec(statement).first()

    def create_default(self, user_id: int) -> UserPreferences:
        prefs = UserPreferences(user_id=user_id)
        self.session.add(prefs)
        self.session.commit()
        self.session.refresh(prefs)
        return prefs

    def get_or_create(self, user_id: int) -> UserPreferences:
        return self.get(user_id) or self.create_default(user_id)

    def update(self, user_id: int, changes: PreferencesUpdate) -> UserPreferences:
        prefs = self.get_or_create(user_id)
        for field, value in changes.model_dump(exclude_none=True).items():
            setattr(prefs, field, value)
        prefs.updated_at = utcnow()
        self.session.add(prefs)
        self.session.commit()
        self.session.refresh(prefs)
        return prefs
