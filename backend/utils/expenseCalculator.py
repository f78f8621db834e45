import logging
import math
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence

# Configure module logger
logger = logging.getLogger(__name__)


def expenseField(expense: Any, name: str) -> Any:
    """Read a field from an Expense model or a plain mapping"""
    if isinstance(expense, Mapping):
        return expense.get(name)
    return getattr(expense, name, None)


def validMembers(members: Optional[Sequence[Any]]) -> List[str]:
    """
    Filter a member list down to usable names

    Non-string, empty and whitespace-only names are dropped. Names are the
    member identity, so duplicates collapse onto their first occurrence.
    """
    if not members:
        return []
    names = [m for m in members if isinstance(m, str) and m.strip() != ""]
    return list(dict.fromkeys(names))


class ExpenseCalculator:
    """
    Helpers for expense totals and equal splits within a group

    Used for the figures shown next to a group's expense list. The
    settlement itself lives in SettlementCalculator.
    """

    def __init__(self):
        """Initialize the ExpenseCalculator"""
        logger.debug("ExpenseCalculator initialized")

    @staticmethod
    def parseAmount(value: Any) -> Optional[float]:
        """
        Convert a recorded amount to a float

        Args:
            value: Raw amount (number, numeric string or None)

        Returns:
            float: The amount if it is a finite number
            None: If the amount is missing, boolean, non-numeric or not finite
        """
        if value is None or isinstance(value, bool):
            return None
        try:
            amount = float(value)
        except (TypeError, ValueError, OverflowError):
            return None
        if not math.isfinite(amount):
            return None
        return amount

    def calculateTotalExpense(self, expenses: Optional[Sequence[Any]]) -> float:
        """
        Calculate the total sum of all expenses

        Args:
            expenses: Expense records with an amount field

        Returns:
            float: Total of all amounts, invalid amounts counting as zero
        """
        if not expenses or not isinstance(expenses, (list, tuple)):
            return 0.0

        total = 0.0
        for expense in expenses:
            total += self.parseAmount(expenseField(expense, "amount")) or 0.0
        return total

    @staticmethod
    def calculateSplitAmount(totalAmount: float, numberOfPeople: int) -> float:
        """
        Calculate the amount each person should pay when splitting equally

        Args:
            totalAmount: The total amount to be split
            numberOfPeople: Number of people to split between

        Returns:
            float: Amount per person

        Raises:
            ValueError: If numberOfPeople is not a positive number
        """
        if not numberOfPeople or numberOfPeople <= 0:
            raise ValueError("Number of people must be greater than zero")
        return totalAmount / numberOfPeople

    @staticmethod
    def roundCurrency(amount: float) -> float:
        """
        Round a currency amount to 2 decimal places

        Args:
            amount: The amount to round

        Returns:
            float: The rounded amount
        """
        # Use Decimal for accurate financial rounding
        decimal_amount = Decimal(str(amount))
        rounded = decimal_amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        return float(rounded)

    @staticmethod
    def sortExpensesByDate(expenses: Optional[Sequence[Any]]) -> List[Any]:
        """
        Order expenses newest first

        Expenses without a usable createdAt go last, keeping their relative
        order. The input sequence is left untouched.
        """
        def sortKey(expense):
            createdAt = expenseField(expense, "createdAt")
            if isinstance(createdAt, str):
                try:
                    createdAt = datetime.fromisoformat(createdAt.replace("Z", "+00:00"))
                except ValueError:
                    createdAt = None
            if isinstance(createdAt, datetime):
                return (1, createdAt.timestamp())
            return (0, 0.0)

        return sorted(expenses or [], key=sortKey, reverse=True)

    def summarizeExpenses(self, expenses: Optional[Sequence[Any]], members: Optional[Sequence[Any]]) -> Dict[str, Any]:
        """
        Summarize group spending for display

        Args:
            expenses: Expense records of the group
            members: Member names of the group

        Returns:
            Dict with totalExpense, memberCount and perPerson (0 without members)
        """
        total = self.calculateTotalExpense(expenses)
        names = validMembers(members)

        perPerson = 0.0
        if names:
            perPerson = self.roundCurrency(self.calculateSplitAmount(total, len(names)))

        logger.info(f"Summarized {len(expenses or [])} expenses: total {total}, {len(names)} members, {perPerson} each")
        return {
            "totalExpense": self.roundCurrency(total),
            "memberCount": len(names),
            "perPerson": perPerson,
        }
