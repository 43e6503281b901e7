"""
Local (email + password) authentication service.

Registration and login against the account store. Token and session
issuance is left to the caller so that local and Google logins end the
same way.
"""

import logging
from typing import Optional

from ..auth import Account, AccountStore, PasswordHandler, normalize_email
from ..errors import (
    ConflictError,
    InvalidCredentialError,
    ValidationError,
    WeakCredentialError,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class LocalAuthService:
    """
    Service for email + password authentication.

    Handles:
    - Account registration
    - Login with password
    - Password change
    """

    def __init__(
        self,
        accounts: AccountStore,
        password_handler: Optional[PasswordHandler] = None,
        min_password_length: int = MIN_PASSWORD_LENGTH
    ):
        """
        Initialize local auth service.

        Args:
            accounts: Account store shared with the other authenticators
            password_handler: Hasher (defaults to the store's)
            min_password_length: Minimum accepted password length
        """
        self.accounts = accounts
        self.passwords = password_handler or accounts.password_handler
        self.min_password_length = min_password_length

    def _check_strength(self, password: str):
        if not password or len(password) < self.min_password_length:
            raise WeakCredentialError(
                f"Password must be at least {self.min_password_length} characters long"
            )

    def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None
    ) -> Account:
        """
        Register a new account with email and password.

        Args:
            email: Email handle (case-insensitive, trimmed)
            password: Plain text password
            name: Optional display name
            phone: Optional phone number
            first_name: Combined with last_name into the display name
            last_name: Combined with first_name into the display name

        Returns:
            The created Account

        Raises:
            ValidationError: Email is not a valid address
            WeakCredentialError: Password shorter than the minimum
            ConflictError: Email already registered
        """
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Please provide a valid email address")

        self._check_strength(password)

        if first_name and last_name:
            name = f"{first_name.strip()} {last_name.strip()}"
        display_name = (name or "").strip() or normalized.split("@")[0]

        # create_account re-checks under the store lock
        if self.accounts.account_exists(normalized):
            raise ConflictError()

        account = self.accounts.create_account(
            email=normalized,
            password=password,
            name=display_name,
            phone=(phone or "").strip() or None
        )

        logger.info(f"Account registered: {account.email}")
        return account

    def login(self, email: str, password: str) -> Account:
        """
        Login with email and password.

        Unknown email, deactivated account, Google-only account and wrong
        password all raise the same InvalidCredentialError.

        Returns:
            The authenticated Account with last_login updated

        Raises:
            InvalidCredentialError: Login failed, for any reason
        """
        account = self.accounts.get_by_email(email) if email else None

        if account is None or not account.has_password():
            self.passwords.dummy_verify(password)
            logger.info("Login rejected")
            raise InvalidCredentialError()

        password_ok = self.passwords.verify(password, account.password_hash)
        if not password_ok or not account.is_active:
            logger.info("Login rejected")
            raise InvalidCredentialError()

        if self.passwords.needs_rehash(account.password_hash):
            account = self.accounts.update_fields(
                account.email, password_hash=self.passwords.hash(password)
            )
            logger.info(f"Rehashed password for {account.email}")

        account = self.accounts.record_login(account.email)
        if account is None or not account.is_active:
            # Deactivated while the password was being checked
            logger.info("Login rejected")
            raise InvalidCredentialError()

        logger.info(f"Account logged in: {account.email}")
        return account

    def change_password(
        self,
        account_id: str,
        current_password: str,
        new_password: str
    ) -> Account:
        """
        Change an account's password.

        Raises:
            InvalidCredentialError: Current password is wrong, or the account
                has no password, or is unknown/inactive
            WeakCredentialError: New password too short
        """
        account = self.accounts.get_by_id(account_id)
        if (
            account is None
            or not account.is_active
            or not self.passwords.verify(current_password, account.password_hash)
        ):
            raise InvalidCredentialError("Current password is incorrect")

        self._check_strength(new_password)

        account = self.accounts.update_fields(
            account.email, password_hash=self.passwords.hash(new_password)
        )
        logger.info(f"Password changed for: {account.email}")
        return account
