from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Balance(BaseModel):
    """Net position of a member: positive is owed money, negative owes money"""
    member: str
    netAmount: float


class Transaction(BaseModel):
    """A single payment from a debtor to a creditor"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_: str = Field(alias="from", description="Member who owes")
    to: str = Field(description="Member who is owed")
    amount: str = Field(description="Amount with exactly two decimals")


class IgnoredExpense(BaseModel):
    index: int = Field(description="Position of the expense in the input")
    id: Optional[str] = None
    reason: str


class SettlementResult(BaseModel):
    transactions: List[Transaction] = Field(default_factory=list)
    balances: List[Balance] = Field(default_factory=list)
    ignoredExpenses: List[IgnoredExpense] = Field(default_factory=list)
    totalExpenses: float = 0.0
    fairShare: float = 0.0
