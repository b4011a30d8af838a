"""
Quota Ledger
Per-user generation balances: in-memory and JSON-file implementations
"""
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Dict, Optional
import json
import logging
import os

from core import QuotaBalance
from utils.exceptions import LedgerError


logger = logging.getLogger(__name__)


class QuotaLedger(ABC):
    """
    Quota ledger contract

    ``debit`` must be atomic per user: two concurrent debits against a
    balance of one unit succeed exactly once.
    """

    @abstractmethod
    def get_balance(self, user_id: str) -> int:
        """Remaining generations"""
        pass

    @abstractmethod
    def get_quota(self, user_id: str) -> QuotaBalance:
        """Remaining generations and lifetime usage"""
        pass

    @abstractmethod
    def debit(self, user_id: str) -> bool:
        """
        Take one unit

        Returns:
            False when the balance is already zero

        Raises:
            LedgerError: the ledger could not record the debit
        """
        pass

    @abstractmethod
    def credit(self, user_id: str, n: int) -> None:
        """
        Add ``n`` units

        Raises:
            LedgerError: ``n`` is not positive or the credit could not be recorded
        """
        pass


class InMemoryQuotaLedger(QuotaLedger):
    """
    In-memory ledger with per-user locks

    Unknown users start with ``free_generations`` units.
    """

    def __init__(self, free_generations: int = 10):
        self.free_generations = max(0, int(free_generations))
        self._balances: Dict[str, QuotaBalance] = {}
        self._user_locks: Dict[str, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, user_id: str) -> Lock:
        with self._registry_lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = Lock()
                self._user_locks[user_id] = lock
            return lock

    def _entry(self, user_id: str) -> QuotaBalance:
        # caller holds the user's lock
        entry = self._balances.get(user_id)
        if entry is None:
            entry = QuotaBalance(user_id=user_id, available=self.free_generations, total_used=0)
            self._balances[user_id] = entry
        return entry

    def _after_change(self, user_id: str) -> None:
        """Hook for persistent subclasses; called with the user's lock held."""
        return None

    def get_balance(self, user_id: str) -> int:
        return self.get_quota(user_id).available

    def get_quota(self, user_id: str) -> QuotaBalance:
        with self._lock_for(user_id):
            return self._entry(user_id).model_copy()

    def debit(self, user_id: str) -> bool:
        with self._lock_for(user_id):
            entry = self._entry(user_id)
            if entry.available <= 0:
                return False
            previous = entry.model_copy()
            entry.available -= 1
            entry.total_used += 1
            try:
                self._after_change(user_id)
            except LedgerError:
                self._balances[user_id] = previous
                raise
            logger.debug("Debited %s: %d left", user_id, entry.available)
            return True

    def credit(self, user_id: str, n: int) -> None:
        if int(n) <= 0:
            raise LedgerError(f"Credit amount must be positive, got {n}", user_id=user_id)
        with self._lock_for(user_id):
            entry = self._entry(user_id)
            previous = entry.model_copy()
            entry.available += int(n)
            try:
                self._after_change(user_id)
            except LedgerError:
                self._balances[user_id] = previous
                raise
            logger.info("Credited %s with %d: %d available", user_id, n, entry.available)


class JsonFileQuotaLedger(InMemoryQuotaLedger):
    """
    Ledger persisted to a JSON file after every change

    The file is rewritten atomically (temp file + rename) and reloaded on
    construction, so balances survive restarts.
    """

    def __init__(self, path: str, free_generations: int = 10):
        super().__init__(free_generations=free_generations)
        self.path = Path(path)
        self._file_lock = Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as exc:
            raise LedgerError(f"Cannot read quota ledger {self.path}: {exc}") from exc

        for user_id, item in dict(payload.get("balances") or {}).items():
            self._balances[user_id] = QuotaBalance(
                user_id=user_id,
                available=int(item.get("available", 0)),
                total_used=int(item.get("total_used", 0)),
            )
        logger.info("Loaded %d quota balances from %s", len(self._balances), self.path)

    def _after_change(self, user_id: str) -> None:
        with self._file_lock:
            snapshot = {
                key: {"available": value.available, "total_used": value.total_used}
                for key, value in list(self._balances.items())
            }
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump({"balances": snapshot}, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except OSError as exc:
                raise LedgerError(f"Cannot write quota ledger {self.path}: {exc}", user_id=user_id) from exc


def get_quota_ledger(path: Optional[str] = None, free_generations: Optional[int] = None) -> QuotaLedger:
    """
    Ledger from ``QUOTA_*`` settings

    A JSON file ledger when a path is configured, in-memory otherwise.
    """
    from config import get_quota_settings

    settings = get_quota_settings()
    path = path or settings.ledger_path
    free = settings.free_generations if free_generations is None else free_generations

    if path:
        return JsonFileQuotaLedger(path, free_generations=free)
    return InMemoryQuotaLedger(free_generations=free)
