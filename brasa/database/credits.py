"""
Credit Service

Gateway to the credit ledger. Balance checks and debits are delegated to
database functions (get_credits, spend_credits) that run atomically on the
server; this class only shapes their inputs and outputs.
"""

from dataclasses import dataclass
from typing import Optional

from supabase import Client

from brasa.errors import ErrorKind, JobError
from brasa.utils.logging import credit_logger as logger

from .client import get_supabase_admin_client


class InsufficientCreditsError(JobError):
    """Raised when user doesn't have enough credits."""
    kind = ErrorKind.INSUFFICIENT_CREDITS


class CreditLedgerError(JobError):
    """Raised when the ledger functions cannot be called."""
    kind = ErrorKind.TRANSIENT


@dataclass
class CreditBalance:
    total: float
    used: float
    available: float
    plan: Optional[str]


@dataclass
class SpendResult:
    success: bool
    remaining: float


class CreditService:
    """
    Service class for credit operations.

    Every debit is recorded by spend_credits in the ledger's own
    transactions table.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    async def get_balance(self, user_id: str) -> CreditBalance:
        """Get user's current credit balance."""
        try:
            result = self.client.rpc("get_credits", {"p_user_id": user_id}).execute()
        except Exception as e:
            raise CreditLedgerError(f"Failed to fetch credits: {e}") from e

        payload = result.data or {}
        return CreditBalance(
            total=payload.get("total") or 0,
            used=payload.get("used") or 0,
            available=payload.get("available") or 0,
            plan=payload.get("plan"),
        )

    async def has_credits(self, user_id: str, amount: float) -> bool:
        """Check if user has sufficient credits."""
        balance = await self.get_balance(user_id)
        return balance.available >= amount

    async def spend(
        self,
        user_id: str,
        amount: int,
        reason: str,
        reference_id: Optional[str] = None,
    ) -> SpendResult:
        """
        Debit credits from the user's balance.

        Args:
            user_id: User ID
            amount: Whole credits to debit
            reason: Job kind that consumed the credits
            reference_id: Related entity (site id, section, storage path)

        Returns:
            SpendResult with the remaining balance

        Raises:
            InsufficientCreditsError: If the ledger refused the debit
            CreditLedgerError: If the ledger could not be reached
        """
        try:
            result = self.client.rpc(
                "spend_credits",
                {
                    "p_user_id": user_id,
                    "p_amount": amount,
                    "p_reason": reason,
                    "p_reference_id": reference_id,
                }
            ).execute()
        except Exception as e:
            raise CreditLedgerError(f"Failed to spend credits: {e}") from e

        spent = result.data or {}
        if not spent.get("success"):
            logger.warning(
                "Credit debit refused",
                user_id=user_id,
                amount=amount,
                reason=reason,
                reference_id=reference_id,
            )
            raise InsufficientCreditsError("Insufficient credits")

        logger.info("Credits spent", user_id=user_id, amount=amount, reason=reason)
        return SpendResult(success=True, remaining=spent.get("remaining") or 0)
