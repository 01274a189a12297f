"""
ERC20Token - Fungible token collaborator for the bid queue.

Implements the subset of ERC-20 the queue relies on:
- balance_of / allowance / approve
- transfer / transfer_from (exact amounts, fail on insufficient balance
  or allowance)

Transfers report failure as (False, reason) instead of raising, so the
caller decides how to abort. `set_balance` mirrors the test token used
against the deployed contract.
"""

from typing import Dict, Optional, Tuple

from gaq.core.chain import Chain, Contract
from gaq.crypto import short_hex
from gaq.utils.logger import get_logger
from gaq.utils.validation import MAX_AMOUNT, require, validate_address, validate_amount

logger = get_logger("token")


class ERC20Token(Contract):
    """
    In-memory fungible token.

    Attributes:
        name: Token name
        symbol: Ticker symbol
        balances: Address -> balance
        allowances: (owner, spender) -> remaining allowance
        total_supply: Sum of all balances
    """

    def __init__(
        self,
        chain: Chain,
        name: str = "Test Token",
        symbol: str = "TEST",
        address: Optional[bytes] = None,
    ):
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol

        self.balances: Dict[bytes, int] = {}
        self.allowances: Dict[Tuple[bytes, bytes], int] = {}
        self.total_supply: int = 0

    # =========================================================================
    # Views
    # =========================================================================

    def balance_of(self, account: bytes) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self.allowances.get((owner, spender), 0)

    # =========================================================================
    # Supply
    # =========================================================================

    def mint(self, to: bytes, amount: int) -> None:
        """Create `amount` new tokens for `to`."""
        require(validate_address(to, "to"))
        require(validate_amount(amount))
        if self.total_supply + amount > MAX_AMOUNT:
            raise ValueError("Total supply overflow")

        with self.chain.execute():
            self._journal_key(self.balances, to)
            self._journal_attr("total_supply")
            self.balances[to] = self.balance_of(to) + amount
            self.total_supply += amount

        logger.debug(f"Minted {amount} {self.symbol} to {short_hex(to)}")

    def set_balance(self, account: bytes, amount: int) -> None:
        """Force an account balance, adjusting total supply to match."""
        require(validate_address(account, "account"))
        require(validate_amount(amount))

        with self.chain.execute():
            self._journal_key(self.balances, account)
            self._journal_attr("total_supply")
            self.total_supply += amount - self.balance_of(account)
            self.balances[account] = amount

    # =========================================================================
    # Transfers
    # =========================================================================

    def approve(self, owner: bytes, spender: bytes, amount: int) -> bool:
        """Set `spender`'s allowance over `owner`'s tokens."""
        require(validate_address(owner, "owner"))
        require(validate_address(spender, "spender"))
        require(validate_amount(amount))

        with self.chain.execute():
            self._journal_key(self.allowances, (owner, spender))
            self.allowances[(owner, spender)] = amount

        logger.debug(f"{short_hex(owner)} approved {short_hex(spender)} for {amount}")
        return True

    def transfer(self, sender: bytes, to: bytes, amount: int) -> Tuple[bool, str]:
        """
        Move `amount` from `sender` to `to`.

        Returns:
            (success, error_message)
        """
        with self.chain.execute():
            return self._move(sender, to, amount)

    def transfer_from(
        self,
        spender: bytes,
        owner: bytes,
        to: bytes,
        amount: int,
    ) -> Tuple[bool, str]:
        """
        Move `amount` from `owner` to `to` using `spender`'s allowance.

        Returns:
            (success, error_message)
        """
        with self.chain.execute():
            allowed = self.allowance(owner, spender)
            if allowed < amount:
                return False, f"Insufficient allowance: {allowed} < {amount}"

            success, err = self._move(owner, to, amount)
            if not success:
                return False, err

            self._journal_key(self.allowances, (owner, spender))
            self.allowances[(owner, spender)] = allowed - amount
            return True, ""

    def _move(self, sender: bytes, to: bytes, amount: int) -> Tuple[bool, str]:
        valid, err = validate_amount(amount)
        if not valid:
            return False, err
        valid, err = validate_address(to, "recipient")
        if not valid:
            return False, err

        balance = self.balance_of(sender)
        if balance < amount:
            return False, f"Insufficient balance: {balance} < {amount}"

        self._journal_key(self.balances, sender)
        self._journal_key(self.balances, to)
        self.balances[sender] = balance - amount
        self.balances[to] = self.balance_of(to) + amount

        logger.debug(f"Transfer {amount} {self.symbol}: {short_hex(sender)} -> {short_hex(to)}")
        return True, ""

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> dict:
        holders = sum(1 for b in self.balances.values() if b > 0)
        return {
            "name": self.name,
            "symbol": self.symbol,
            "total_supply": self.total_supply,
            "holders": holders,
        }
