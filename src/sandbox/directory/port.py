"""Account directory port: merchant and customer activity lookup."""

from abc import ABC, abstractmethod


class AccountDirectory(ABC):
    @abstractmethod
    def is_active(self, account_id: str) -> bool:
        """Return True if the merchant or customer may transact."""
        ...
