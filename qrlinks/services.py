import logging
from datetime import datetime, timezone

from qrlinks import models, schemas
from qrlinks.auth import create_access_token, hash_password, verify_password
from qrlinks.codes import CodeGenerator
from qrlinks.crud import LinkRepository, UserRepository
from qrlinks.errors import (
    CodeExhausted,
    DuplicateCode,
    InvalidEmail,
    InvalidLink,
    NotFound,
    Unauthenticated,
)
from qrlinks.qr_utils import QrStorage

logger = logging.getLogger("qrlinks.service")


def _normalize_email(email: str) -> str:
    email = email.strip().lower()
    if not email:
        raise InvalidEmail()
    return email


def _require_url(original_url: str | None) -> str:
    if not original_url or not original_url.strip():
        raise InvalidLink()
    return original_url


class LinkService:
    """Creates, resolves, updates and deletes links.

    The repository write is always the last step of a mutation, so a failed
    QR write never leaves a stored link behind, and a failed commit removes
    the artifact written for it.
    """

    def __init__(
        self,
        links: LinkRepository,
        qr: QrStorage,
        codes: CodeGenerator,
        base_url: str,
        max_attempts: int = 5,
    ):
        self.links = links
        self.qr = qr
        self.codes = codes
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts

    def complete_url(self, code: str) -> str:
        return f"{self.base_url}/r/{code}"

    def shorten_new_link(
        self, original_url: str, user_id: int, expires_at: datetime | None = None
    ) -> models.Link:
        original_url = _require_url(original_url)
        if not self.links.owner_exists(user_id):
            raise Unauthenticated("User no longer exists")

        for attempt in range(self.max_attempts):
            code = self.codes.generate(attempt)
            if self.links.find_by_code(code) is not None:
                logger.info("Code %s already taken (attempt %d)", code, attempt + 1)
                continue

            qr_path = self.qr.save(code, original_url)
            link = models.Link(
                original_url=original_url,
                shortened_code=code,
                complete_shortened_url=self.complete_url(code),
                qr_code_path=qr_path,
                expires_at=expires_at,
                clicks=0,
                user_id=user_id,
            )
            try:
                return self.links.insert(link)
            except DuplicateCode:
                # lost a race with a concurrent insert of the same code
                self.qr.remove(qr_path)
                logger.info("Code %s taken concurrently (attempt %d)", code, attempt + 1)
            except Exception:
                self.qr.remove(qr_path)
                raise

        logger.error("Gave up allocating a short code after %d attempts", self.max_attempts)
        raise CodeExhausted()

    def get_link(self, code: str) -> models.Link:
        link = self.links.find_by_code(code)
        if link is None:
            raise NotFound("Link not found")
        return link

    def get_links_of_user(self, user_id: int) -> list[models.Link]:
        return self.links.find_by_owner(user_id)

    def get_link_with_qr_base64(self, code: str) -> schemas.LinkDetail:
        return self.with_qr_base64(self.get_link(code))

    def with_qr_base64(self, link: models.Link) -> schemas.LinkDetail:
        out = schemas.LinkOut.model_validate(link)
        return schemas.LinkDetail(
            **out.model_dump(),
            qr_code_base64=self.qr.read_base64(link.qr_code_path, link.original_url),
        )

    def update_link(
        self, code: str, original_url: str, expires_at: datetime | None = None
    ) -> models.Link:
        """Replace the destination. The QR artifact is always regenerated."""
        link = self.get_link(code)
        original_url = _require_url(original_url)

        old_path = link.qr_code_path
        new_path = self.qr.save(code, original_url)
        link.original_url = original_url
        link.expires_at = expires_at
        link.qr_code_path = new_path
        try:
            link = self.links.update(link)
        except Exception:
            self.qr.remove(new_path)
            raise

        if old_path != new_path:
            self.qr.remove(old_path)
        return link

    def delete_link(self, code: str) -> bool:
        link = self.links.find_by_code(code)
        if link is None:
            return False
        qr_path = link.qr_code_path
        deleted = self.links.delete(code)
        if deleted:
            self.qr.remove(qr_path)
        return deleted


class UserService:
    def __init__(self, users: UserRepository, qr: QrStorage):
        self.users = users
        self.qr = qr

    def register(self, email: str, password: str) -> models.User:
        user = models.User(email=_normalize_email(email), password_hash=hash_password(password))
        return self.users.insert(user)

    def get_user(self, user_id: int) -> models.User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def update_user(self, user_id: int, email: str | None = None, password: str | None = None) -> models.User:
        user = self.get_user(user_id)
        if email is not None:
            user.email = _normalize_email(email)
        if password:
            user.password_hash = hash_password(password)
        user.updated_at = datetime.now(timezone.utc)
        return self.users.update(user)

    def delete_user(self, user_id: int) -> None:
        user = self.get_user(user_id)
        qr_paths = [link.qr_code_path for link in user.links]
        self.users.delete(user)
        for path in qr_paths:
            self.qr.remove(path)


class AuthService:
    def __init__(self, users: UserRepository):
        self.users = users

    def authenticate(self, email: str, password: str) -> str:
        user = self.users.find_by_email((email or "").strip().lower())
        if not user or not verify_password(password or "", user.password_hash):
            raise Unauthenticated("Invalid credentials")
        return create_access_token(user.user_id, user.email)
