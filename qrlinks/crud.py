from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qrlinks import models
from qrlinks.errors import ConstraintViolation, DuplicateCode, DuplicateEmail


class LinkRepository:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, link: models.Link) -> models.Link:
        self.db.add(link)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            taken = (
                self.db.query(models.Link.link_id)
                .filter_by(shortened_code=link.shortened_code)
                .first()
            )
            if taken is not None:
                raise DuplicateCode(link.shortened_code)
            raise ConstraintViolation() from exc
        self.db.refresh(link)
        return link

    def find_by_code(self, code: str) -> models.Link | None:
        return self.db.query(models.Link).filter_by(shortened_code=code).first()

    def owner_exists(self, user_id: int) -> bool:
        return self.db.get(models.User, user_id) is not None

    def find_by_owner(self, user_id: int) -> list[models.Link]:
        return (
            self.db.query(models.Link)
            .filter_by(user_id=user_id)
            .order_by(models.Link.link_id)
            .all()
        )

    def update(self, link: models.Link) -> models.Link:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConstraintViolation() from exc
        self.db.refresh(link)
        return link

    def delete(self, code: str) -> bool:
        link = self.find_by_code(code)
        if not link:
            return False
        self.db.delete(link)
        self.db.commit()
        return True


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, user: models.User) -> models.User:
        self.db.add(user)
        self._commit_unique_email(user.email)
        self.db.refresh(user)
        return user

    def find_by_id(self, user_id: int) -> models.User | None:
        return self.db.get(models.User, user_id)

    def find_by_email(self, email: str) -> models.User | None:
        return self.db.query(models.User).filter_by(email=email).first()

    def update(self, user: models.User) -> models.User:
        self._commit_unique_email(user.email)
        self.db.refresh(user)
        return user

    def delete(self, user: models.User) -> None:
        self.db.delete(user)
        self.db.commit()

    def _commit_unique_email(self, email: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateEmail(f"Email '{email}' already registered") from exc
