"""
pathfortune/accounts.py - External account balances.

The ledger's view of what each address holds outside the system. Stakes are
debited from here into the held balance; prizes are credited back. Call inside
``store.transaction()``.
"""

import logging

from .amounts import checked_add, require_uint
from .errors import InsufficientBalance
from .store import LedgerStore

logger = logging.getLogger(__name__)


def debit(store: LedgerStore, address: str, amount: int) -> int:
    """Take ``amount`` from ``address``. Returns the new balance."""
    balance = store.get_balance(address)
    if amount > balance:
        raise InsufficientBalance(
            f"{address} holds {balance}, cannot cover {amount}"
        )
    store.set_balance(address, balance - amount)
    return balance - amount


def credit(store: LedgerStore, address: str, amount: int) -> int:
    """Give ``amount`` to ``address``. Returns the new balance."""
    balance = checked_add(store.get_balance(address), amount)
    store.set_balance(address, balance)
    return balance


def fund(store: LedgerStore, address: str, amount: int) -> int:
    """Mint ``amount`` into an external account (genesis allocation / dev faucet)."""
    require_uint(amount)
    balance = credit(store, address, amount)
    logger.info(f"Funded {address} with {amount} (balance {balance})")
    return balance
