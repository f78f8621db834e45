import logging
import os
from datetime import datetime

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.gzip import GZipMiddleware
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from models.expenseRequest import ExpenseSummaryRequest, SettlementRequest
from utils.expenseCalculator import ExpenseCalculator
from utils.settlementCalculator import SettlementCalculator, SettlementValidationError
from utils.splitwiseManager import SplitwiseManager

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Create FastAPI app with proper metadata
app = FastAPI(
    title="GroupSplit API",
    description="API for computing who owes whom within an expense-sharing group",
    version="1.0.0",
)

# Add gzip compression for faster responses
app.add_middleware(GZipMiddleware, minimum_size=1000)


def get_splitwise_manager():
    """Create a new SplitwiseManager instance"""
    try:
        return SplitwiseManager()
    except ValueError as e:
        raise HTTPException(
            status_code=503,
            detail={"status": "error", "message": str(e)}
        )


def settle(calculator: SettlementCalculator, expenses, members) -> dict:
    """Run a settlement and shape it for a JSON response"""
    try:
        result = calculator.computeSettlementDetails(expenses, members)
    except SettlementValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "status": "error",
                "message": str(e),
                "ignoredExpenses": [item.model_dump() for item in e.ignored],
            }
        )
    return {"status": "success", **result.model_dump(by_alias=True)}


@app.get("/")
async def root():
    """Root endpoint to verify API is running"""
    return {"message": "Welcome to the GroupSplit API", "status": "operational"}


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.post("/settlements")
async def create_settlement(request: SettlementRequest):
    """
    Compute the payments that settle a group

    Args:
        request: Already-fetched expenses, the group's member names and
            whether ignored expenses should be rejected

    Returns:
        JSON with transactions, balances, totals and ignored expenses
    """
    logger.info(
        f"Computing settlement for {len(request.expenses or [])} expenses "
        f"and {len(request.members or [])} members"
    )
    return settle(SettlementCalculator(strict=request.strict), request.expenses, request.members)


@app.post("/expenses/summary")
async def summarize_expenses(request: ExpenseSummaryRequest):
    """
    Total a group's expenses and the equal share per member

    Returns:
        JSON with totalExpense, memberCount and perPerson
    """
    expense_calculator = ExpenseCalculator()
    summary = expense_calculator.summarizeExpenses(request.expenses, request.members)
    return {"status": "success", **summary}


@app.get("/groups")
async def get_groups(splitwise_manager: SplitwiseManager = Depends(get_splitwise_manager)):
    """
    Get all Splitwise groups for the current user

    Returns:
        JSON with all user's Splitwise groups
    """
    logger.info("Fetching Splitwise groups")

    try:
        # Fetch groups using thread pool (since it's I/O bound)
        groups = await run_in_threadpool(splitwise_manager.getGroups)
    except Exception as e:
        logger.error(f"Error fetching Splitwise groups: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=502,
            detail={"status": "error", "message": f"Failed to retrieve groups: {str(e)}"}
        )

    logger.info(f"Successfully retrieved {len(groups)} Splitwise groups")
    return {"status": "success", "groups": groups}


@app.get("/groups/{groupId}/settlements")
async def get_group_settlement(
    groupId: int,
    splitwise_manager: SplitwiseManager = Depends(get_splitwise_manager)
):
    """
    Settle a Splitwise group from its current members and expenses

    Args:
        groupId: ID of the Splitwise group

    Returns:
        JSON with the settlement result and the expenses it was computed from
    """
    logger.info(f"Computing settlement for Splitwise group {groupId}")

    try:
        members = await run_in_threadpool(splitwise_manager.getGroupMembers, id=groupId)
        expenses = await run_in_threadpool(splitwise_manager.getGroupExpenses, id=groupId)
    except ValidationError as e:
        logger.error(f"Unusable expense data in Splitwise group {groupId}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=502,
            detail={"status": "error", "message": f"Unusable group data from Splitwise: {str(e)}"}
        )
    except ValueError as e:
        raise HTTPException(
            status_code=404,
            detail={"status": "error", "message": str(e)}
        )
    except Exception as e:
        logger.error(f"Error fetching group {groupId} from Splitwise: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=502,
            detail={"status": "error", "message": f"Failed to retrieve group data: {str(e)}"}
        )

    response = settle(SettlementCalculator(), expenses, members)
    response.update({
        "groupId": groupId,
        "members": members,
        "expenses": [expense.model_dump(mode="json") for expense in expenses],
    })
    return response


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
