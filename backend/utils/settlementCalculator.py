import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models.settlement import Balance, IgnoredExpense, SettlementResult, Transaction
from utils.expenseCalculator import ExpenseCalculator, expenseField, validMembers

# Configure module logger
logger = logging.getLogger(__name__)

# Running balances closer to zero than this count as settled
SETTLE_TOLERANCE = 0.01


def roundCents(amount: float) -> float:
    """Round half up at the second decimal (x * 100, nearest integer, / 100)"""
    return math.floor(amount * 100 + 0.5) / 100


class SettlementValidationError(ValueError):
    """Raised in strict mode when some expenses could not be taken into account"""

    def __init__(self, ignored: List[IgnoredExpense]):
        self.ignored = ignored
        details = ", ".join(f"#{item.index} {item.reason}" for item in ignored)
        super().__init__(f"{len(ignored)} expense(s) ignored: {details}")


class SettlementCalculator:
    """
    Compute who owes whom inside a group

    Every valid member owes an equal share of the group's spending. Members
    who paid more than their share are creditors, the others are debtors,
    and the largest creditor is repeatedly paired with the largest debtor
    until one side runs out. This keeps the number of payments small
    without searching for the true minimum.

    The computation is pure: inputs are never mutated and malformed
    expenses are skipped rather than reported, unless strict mode is on.
    """

    def __init__(self, strict: bool = False):
        """
        Initialize the SettlementCalculator

        Args:
            strict: Raise SettlementValidationError instead of skipping
                expenses that cannot be attributed to a member
        """
        self.strict = strict
        logger.debug(f"SettlementCalculator initialized (strict={strict})")

    def computeSettlement(self, expenses: Optional[Sequence[Any]], members: Optional[Sequence[Any]]) -> List[Transaction]:
        """
        Calculate the payments that settle a group

        Args:
            expenses: Expense models or mappings with payer and amount
            members: Member names of the group, in display order

        Returns:
            List of Transaction objects, in the order they were generated
        """
        return self.computeSettlementDetails(expenses, members).transactions

    def computeSettlementDetails(self, expenses: Optional[Sequence[Any]], members: Optional[Sequence[Any]]) -> SettlementResult:
        """
        Calculate the settlement along with the figures it was derived from

        Args:
            expenses: Expense models or mappings with payer and amount
            members: Member names of the group, in display order

        Returns:
            SettlementResult with transactions, per-member balances, totals
            and the expenses that were left out

        Raises:
            SettlementValidationError: In strict mode, if any expense was left out
        """
        expenses = list(expenses or [])
        if not expenses or not members:
            return SettlementResult()

        names = validMembers(members)
        totalSpent, ignored = self._totalSpentByMember(expenses, names)

        # No group to settle, so nothing counts as rejected even in strict mode
        if not names:
            return SettlementResult(ignoredExpenses=ignored)

        if ignored:
            if self.strict:
                logger.error(f"Rejecting settlement, {len(ignored)} expense(s) could not be attributed")
                raise SettlementValidationError(ignored)
            logger.info(f"Ignored {len(ignored)} of {len(expenses)} expense(s)")

        totalExpenses = sum(totalSpent.values())
        fairShare = totalExpenses / len(names)
        balances = [
            Balance(member=name, netAmount=totalSpent[name] - fairShare)
            for name in names
        ]

        transactions = self._settle(balances)
        logger.info(
            f"Settled {len(names)} members: total {totalExpenses:.2f}, "
            f"fair share {fairShare:.2f}, {len(transactions)} transaction(s)"
        )

        return SettlementResult(
            transactions=transactions,
            balances=balances,
            ignoredExpenses=ignored,
            totalExpenses=totalExpenses,
            fairShare=fairShare,
        )

    @staticmethod
    def _totalSpentByMember(expenses: Sequence[Any], names: List[str]) -> Tuple[Dict[str, float], List[IgnoredExpense]]:
        totalSpent: Dict[str, float] = {name: 0.0 for name in names}
        ignored: List[IgnoredExpense] = []

        for index, expense in enumerate(expenses):
            payer = expenseField(expense, "payer")
            amount = ExpenseCalculator.parseAmount(expenseField(expense, "amount"))

            if not payer:
                reason = "missing payer"
            elif not isinstance(payer, str) or payer not in totalSpent:
                reason = "payer not a member"
            elif not amount:
                reason = "invalid amount"
            else:
                totalSpent[payer] += amount
                continue

            expenseId = expenseField(expense, "id")
            ignored.append(IgnoredExpense(
                index=index,
                id=str(expenseId) if expenseId is not None else None,
                reason=reason,
            ))
            logger.debug(f"Ignoring expense #{index} ({expenseId}): {reason}")

        return totalSpent, ignored

    @staticmethod
    def _settle(balances: List[Balance]) -> List[Transaction]:
        # Lists are built in member order and sorted stably, so equal
        # balances keep the member-list order
        creditors = [{"name": b.member, "balance": b.netAmount} for b in balances if b.netAmount > 0]
        debtors = [{"name": b.member, "balance": b.netAmount} for b in balances if b.netAmount < 0]

        creditors.sort(key=lambda c: c["balance"], reverse=True)
        debtors.sort(key=lambda d: d["balance"])

        transactions = []
        while creditors and debtors:
            creditor = creditors[0]
            debtor = debtors[0]

            amount = roundCents(min(creditor["balance"], -debtor["balance"]))
            if amount > 0:
                transactions.append(Transaction(
                    from_=debtor["name"],
                    to=creditor["name"],
                    amount=f"{amount:.2f}",
                ))

            creditor["balance"] -= amount
            debtor["balance"] += amount

            if abs(creditor["balance"]) < SETTLE_TOLERANCE:
                creditors.pop(0)
            if abs(debtor["balance"]) < SETTLE_TOLERANCE:
                debtors.pop(0)

        return transactions
