"""
Account Registry — maps an external chat identity to its internal account.

Behavioral Contract:
- ensure_account is the only way an account comes into existence
- ensure_account is idempotent: it never duplicates an account or resets a balance
- Every account gets an idle ConversationSession at creation time
"""

import threading
from typing import Optional

from energy_rent.accounts.repository import InMemoryRepository, Repository
from energy_rent.core.errors import AccountNotInitialized
from energy_rent.core.log import get_logger
from energy_rent.models.account import Account
from energy_rent.models.session import ConversationSession

logger = get_logger(__name__)


class AccountRegistry:
    """Lazily creates accounts and their sessions on first initialize."""

    def __init__(
        self,
        accounts: Optional[Repository[Account]] = None,
        sessions: Optional[Repository[ConversationSession]] = None,
    ):
        self.accounts = accounts if accounts is not None else InMemoryRepository()
        self.sessions = sessions if sessions is not None else InMemoryRepository()
        self._create_lock = threading.Lock()

    def ensure_account(self, identity: str, display_name: Optional[str] = None) -> Account:
        """Return the account for identity, creating it (balance 0) if needed."""
        account_id = str(identity)
        with self._create_lock:
            existing = self.accounts.get(account_id)
            if existing is not None:
                return existing

            account = Account(account_id=account_id, display_name=display_name or "")
            self.sessions.ensure(account_id, lambda: ConversationSession(account_id=account_id))
            self.accounts.put(account_id, account)

        logger.info("Account created", extra={"account_id": account_id})
        return account

    def get_account(self, identity: str) -> Account:
        """Existing account for identity. Never creates one."""
        account = self.accounts.get(str(identity))
        if account is None:
            raise AccountNotInitialized(str(identity))
        return account

    def find_account(self, identity: str) -> Optional[Account]:
        return self.accounts.get(str(identity))

    def get_session(self, identity: str) -> ConversationSession:
        """Conversation session of an existing account."""
        account = self.get_account(identity)
        return self.sessions.ensure(
            account.account_id,
            lambda: ConversationSession(account_id=account.account_id),
        )
