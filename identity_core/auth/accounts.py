"""
Account storage and management.

Stores accounts in a JSON file keyed by normalized email.
The persistence engine belongs to the surrounding application; this store
only guarantees that create and link operations are atomic per store.
"""

import json
import logging
import threading
import uuid
from enum import Enum
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, List
from dataclasses import dataclass, asdict, field

from ..errors import ConflictError, ValidationError
from .password import PasswordHandler, normalize_email

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Role(str, Enum):
    """Two-tier role. Values are what the accounts file stores."""
    ORDINARY = "user"
    ADMINISTRATIVE = "admin"


class CredentialKind(str, Enum):
    """How an account can prove its identity."""
    NONE = "none"
    LOCAL = "local"
    FEDERATED = "federated"
    BOTH = "both"


@dataclass
class Account:
    """Account data model."""
    account_id: str
    email: str  # Normalized email (primary identifier)
    password_hash: Optional[str] = None  # None for Google-only accounts
    name: Optional[str] = None
    role: Role = Role.ORDINARY
    is_active: bool = True
    google_id: Optional[str] = None
    avatar: Optional[str] = None
    phone: Optional[str] = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    last_login: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        return cls(
            account_id=data.get("account_id", str(uuid.uuid4())),
            email=data["email"],
            password_hash=data.get("password_hash"),
            name=data.get("name"),
            role=Role(data.get("role", Role.ORDINARY.value)),
            is_active=data.get("is_active", True),
            google_id=data.get("google_id"),
            avatar=data.get("avatar"),
            phone=data.get("phone"),
            created_at=data.get("created_at", _now()),
            updated_at=data.get("updated_at", _now()),
            last_login=data.get("last_login")
        )

    def has_password(self) -> bool:
        """Check if account has a local password set."""
        return self.password_hash is not None

    @property
    def credential_kind(self) -> CredentialKind:
        if self.password_hash and self.google_id:
            return CredentialKind.BOTH
        if self.password_hash:
            return CredentialKind.LOCAL
        if self.google_id:
            return CredentialKind.FEDERATED
        return CredentialKind.NONE

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMINISTRATIVE


# Fields update_fields may change; is_active only changes through deactivate
UPDATABLE_FIELDS = frozenset({
    "password_hash", "name", "role", "google_id", "avatar", "phone", "last_login",
})


class AccountStore:
    """
    JSON-based account storage.

    Every read-modify-write runs under the store's lock, so handle
    uniqueness holds under concurrent registration.
    """

    def __init__(self, file_path: Path, password_handler: Optional[PasswordHandler] = None):
        """
        Initialize account store.

        Args:
            file_path: Path to the accounts JSON file
            password_handler: Hasher used for set_password/create_account
        """
        self.file_path = Path(file_path)
        self.password_handler = password_handler or PasswordHandler()
        self._lock = threading.RLock()
        self._ensure_file()

    def _ensure_file(self):
        """Ensure the storage file and directory exist."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.file_path.exists():
            self._save_all({})

    def _load_all(self) -> dict[str, dict]:
        """Load all accounts from file."""
        try:
            with open(self.file_path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, FileNotFoundError):
            return {}

    def _save_all(self, accounts: dict[str, dict]):
        """Save all accounts to file."""
        tmp_path = self.file_path.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump(accounts, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.file_path)

    def create_account(
        self,
        email: str,
        password: Optional[str] = None,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        role: Role = Role.ORDINARY,
        google_id: Optional[str] = None,
        avatar: Optional[str] = None
    ) -> Account:
        """
        Create a new account.

        Args:
            email: Email handle (will be normalized)
            password: Optional password (None for Google-only accounts)
            name: Optional display name
            phone: Optional phone number
            role: Account role (default: ordinary)
            google_id: Optional Google account id
            avatar: Optional avatar URL

        Returns:
            Created Account object

        Raises:
            ValidationError: If email is invalid
            ConflictError: If the email or Google id is already taken
        """
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError(f"Invalid email address: {email}")

        password_hash = self.password_handler.hash(password) if password else None

        with self._lock:
            accounts = self._load_all()

            if normalized in accounts:
                raise ConflictError()

            if google_id and self._find(accounts, "google_id", google_id):
                raise ConflictError("Google account already linked to another user")

            account = Account(
                account_id=str(uuid.uuid4()),
                email=normalized,
                password_hash=password_hash,
                name=name,
                role=role,
                google_id=google_id,
                avatar=avatar,
                phone=phone
            )

            accounts[normalized] = account.to_dict()
            self._save_all(accounts)

        logger.info(f"Created account: {normalized} ({account.credential_kind.value})")
        return account

    @staticmethod
    def _find(accounts: dict[str, dict], key: str, value: str) -> Optional[dict]:
        for data in accounts.values():
            if data.get(key) == value:
                return data
        return None

    def get_by_email(self, email: str) -> Optional[Account]:
        """
        Get account by email (case-insensitive, trimmed).

        Returns:
            Account if found, None otherwise
        """
        normalized = normalize_email(email)
        if not normalized:
            return None

        data = self._load_all().get(normalized)
        if data:
            return Account.from_dict(data)
        return None

    def get_by_id(self, account_id: str) -> Optional[Account]:
        """Get account by account ID."""
        data = self._find(self._load_all(), "account_id", account_id)
        return Account.from_dict(data) if data else None

    def get_by_google_id(self, google_id: str) -> Optional[Account]:
        """Get account by linked Google account id."""
        if not google_id:
            return None
        data = self._find(self._load_all(), "google_id", google_id)
        return Account.from_dict(data) if data else None

    def _apply(self, email: str, changes: dict) -> Optional[Account]:
        """Apply field changes to the stored record under the lock."""
        normalized = normalize_email(email)
        if not normalized:
            return None

        with self._lock:
            accounts = self._load_all()
            data = accounts.get(normalized)
            if data is None:
                return None

            account = Account.from_dict(data)
            for key, value in changes.items():
                setattr(account, key, value)
            account.updated_at = _now()

            accounts[normalized] = account.to_dict()
            self._save_all(accounts)

        logger.debug(f"Updated account {normalized}: {', '.join(changes)}")
        return account

    def update_fields(self, email: str, **changes) -> Account:
        """
        Change selected fields of an account.

        The record is re-read under the lock and only the named fields are
        written, so a concurrent deactivation is never overwritten.

        Raises:
            ValueError: If account doesn't exist or a field is not updatable
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        account = self._apply(email, changes)
        if account is None:
            raise ValueError(f"Account with email {email} not found")
        return account

    def set_password(self, email: str, password: str) -> Account:
        """
        Set or update an account's password.

        Raises:
            ValueError: If account doesn't exist
        """
        return self.update_fields(email, password_hash=self.password_handler.hash(password))

    def record_login(self, email: str) -> Optional[Account]:
        """
        Record a successful authentication.

        Returns:
            Updated Account object or None if not found
        """
        return self._apply(email, {"last_login": _now()})

    def link_google(self, email: str, google_id: str, avatar: Optional[str] = None) -> Account:
        """
        Link a Google account id to an existing account.

        Raises:
            ValueError: If account doesn't exist
            ConflictError: If the Google id belongs to another account
        """
        changes = {"google_id": google_id}
        if avatar:
            changes["avatar"] = avatar

        with self._lock:
            account = self.get_by_email(email)
            if not account:
                raise ValueError(f"Account with email {email} not found")

            owner = self.get_by_google_id(google_id)
            if owner and owner.account_id != account.account_id:
                raise ConflictError("Google account already linked to another user")

            account = self.update_fields(account.email, **changes)

        logger.info(f"Linked Google account to {account.email}")
        return account

    def set_role(self, email: str, role: Role) -> Account:
        """Change an account's role."""
        return self.update_fields(email, role=Role(role))

    def deactivate(self, email: str) -> bool:
        """
        Deactivate an account. Accounts are never physically deleted.

        Returns:
            True if deactivated, False if not found
        """
        normalized = normalize_email(email)
        if not normalized:
            return False

        with self._lock:
            accounts = self._load_all()
            if normalized not in accounts:
                return False

            accounts[normalized]["is_active"] = False
            accounts[normalized]["updated_at"] = _now()
            self._save_all(accounts)

        logger.info(f"Deactivated account: {normalized}")
        return True

    def list_accounts(self, active_only: bool = True) -> List[Account]:
        """List all accounts, optionally only the active ones."""
        result = [Account.from_dict(data) for data in self._load_all().values()]

        if active_only:
            result = [a for a in result if a.is_active]

        return result

    def account_exists(self, email: str) -> bool:
        """Check if an account exists for an email."""
        return self.get_by_email(email) is not None
