"""Collaborators the swap lifecycle talks to but does not implement."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import SwapNotification, SwapRecord


class ChainClient(ABC):
    """Chain access bound to one sender account."""

    @abstractmethod
    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Return the transaction (at least ``confirmations``); raise ``TxNotFoundError`` if unknown"""
        pass

    @abstractmethod
    async def send_transaction(self, tx_request: Dict[str, Any]) -> str:
        """Sign and broadcast ``tx_request``; return its hash"""
        pass


class WalletProvider(ABC):
    """Wallet/account collaborator: addresses, signing clients, balances."""

    @abstractmethod
    async def get_swap_address(
        self,
        network: str,
        wallet_id: str,
        asset: str,
        account_id: Optional[str],
    ) -> str:
        """Address that sends the swap for ``asset``"""
        pass

    @abstractmethod
    def get_client(
        self,
        network: str,
        wallet_id: str,
        asset: str,
        account_id: Optional[str],
    ) -> ChainClient:
        """Chain client bound to the account holding ``asset``"""
        pass

    @abstractmethod
    async def update_balances(
        self,
        network: str,
        wallet_id: str,
        account_ids: List[Optional[str]],
    ) -> None:
        """Refresh cached balances for ``account_ids``"""
        pass


class Notifier(ABC):
    """Receives user-facing status notifications; never feeds back."""

    @abstractmethod
    async def notify(self, record: SwapRecord, notification: SwapNotification) -> None:
        pass


class LoggingNotifier(Notifier):
    """Default notifier: writes notifications to the log."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    async def notify(self, record: SwapRecord, notification: SwapNotification) -> None:
        self.logger.info(
            "Swap %s step %d [%s]: %s",
            record.id,
            notification.step,
            notification.label,
            notification.message,
        )
