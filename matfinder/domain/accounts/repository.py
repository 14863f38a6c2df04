"""Account repository - Database operations for user accounts"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import UserAccount


class AccountRepository:
    """Repository for account database operations"""

    @staticmethod
    def get_by_id(db: Session, account_id: str) -> Optional[UserAccount]:
        return db.query(UserAccount).filter(UserAccount.id == account_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[UserAccount]:
        return db.query(UserAccount).filter(UserAccount.email == email.strip().lower()).first()

    @staticmethod
    def get_by_user_name(db: Session, user_name: str) -> Optional[UserAccount]:
        """User names are unique case-insensitively"""
        return (
            db.query(UserAccount)
            .filter(func.lower(UserAccount.user_name) == user_name.strip().lower())
            .first()
        )

    @staticmethod
    def get_by_identifier(db: Session, identifier: str) -> Optional[UserAccount]:
        """Look up by email when it contains '@', otherwise by user name"""
        if "@" in identifier:
            return AccountRepository.get_by_email(db, identifier)
        return AccountRepository.get_by_user_name(db, identifier)

    @staticmethod
    def search(db: Session, search: Optional[str] = None, limit: int = 100) -> list[UserAccount]:
        query = db.query(UserAccount)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(UserAccount.email).like(pattern),
                    func.lower(UserAccount.user_name).like(pattern),
                    func.lower(UserAccount.name).like(pattern),
                )
            )
        return query.order_by(UserAccount.created_at.desc()).limit(limit).all()

    @staticmethod
    def create(db: Session, **account_data) -> UserAccount:
        account = UserAccount(**account_data)
        db.add(account)
        db.commit()
        db.refresh(account)
        return account

    @staticmethod
    def update(db: Session, account: UserAccount, **updates) -> UserAccount:
        for key, value in updates.items():
            if hasattr(account, key):
                setattr(account, key, value)
        db.commit()
        db.refresh(account)
        return account

    @staticmethod
    def delete(db: Session, account: UserAccount) -> None:
        db.delete(account)
        db.commit()
