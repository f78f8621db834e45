import logging
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Expense(BaseModel):
    """A recorded group expense, as fetched from the expense store"""
    id: Optional[str] = Field(None, description="Opaque expense identifier")
    groupId: Optional[str] = Field(None, description="Identifier of the owning group")
    description: Optional[str] = Field(None, description="Free text shown to users")
    amount: Optional[float] = Field(None, description="Amount paid, in the group currency")
    payer: Optional[str] = Field(None, description="Name of the member who paid")
    createdAt: Optional[datetime] = Field(None, description="When the expense was recorded")

    @field_validator("amount", mode="before")
    @classmethod
    def normalizeAmount(cls, value: Any) -> Any:
        # Unparsable amounts are kept as None so the expense is ignored downstream
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                logger.warning(f"Dropping unparsable expense amount: {value!r}")
                return None
        return value


class SettlementRequest(BaseModel):
    expenses: Optional[List[Expense]] = None
    members: Optional[List[Optional[str]]] = None
    strict: bool = Field(False, description="Reject the request if any expense had to be ignored")


class ExpenseSummaryRequest(BaseModel):
    expenses: Optional[List[Expense]] = None
    members: Optional[List[Optional[str]]] = None
