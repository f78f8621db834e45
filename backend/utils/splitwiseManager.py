import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Splitwise Imports
from splitwise import Splitwise

from models.expenseRequest import Expense
from utils.expenseCalculator import ExpenseCalculator

# Configure module logger
logger = logging.getLogger(__name__)

class SplitwiseManager:
    """
    Read-only access to groups, members and expenses stored in Splitwise

    Splitwise acts as the group and expense store: this class fetches a
    group's member names and its expense records and maps them onto the
    Expense model consumed by SettlementCalculator. It never writes.
    """

    def __init__(self):
        """
        Initialize the SplitwiseManager with API credentials from environment variables

        Raises:
            ValueError: If required environment variables are missing
        """
        logger.debug("Initializing SplitwiseManager")
        # Load environment variables from the .env file
        load_dotenv()

        # Initialize Splitwise client
        self.splitwise = self._get_splitwise_client()

    def _get_splitwise_client(self) -> Splitwise:
        """
        Create a Splitwise client using environment variables

        Returns:
            Configured Splitwise client

        Raises:
            ValueError: If required environment variables are missing
        """
        consumer_key = os.getenv("CONSUMER_KEY")
        consumer_secret = os.getenv("CONSUMER_SECRET")
        api_key = os.getenv("API_KEY")

        if not all([consumer_key, consumer_secret, api_key]):
            logger.error("Missing required Splitwise API credentials in environment variables")
            raise ValueError("Missing required Splitwise API credentials. Check CONSUMER_KEY, CONSUMER_SECRET, and API_KEY.")

        try:
            client = Splitwise(consumer_key, consumer_secret, api_key=api_key)
            logger.info("Splitwise client initialized successfully")
            return client
        except Exception as e:
            logger.error(f"Failed to initialize Splitwise client: {str(e)}", exc_info=True)
            raise

    def _get_group(self, id: int):
        """Get a group by ID"""
        return self.splitwise.getGroup(id=id)

    @staticmethod
    def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unrecognized Splitwise timestamp: {value}")
            return None

    def getUsersfromGroup(self, id: Optional[int] = None) -> Dict[str, int]:
        """
        Get users from a particular Splitwise group

        Args:
            id: The Splitwise group ID to fetch members from

        Returns:
            Dict mapping user first names to their Splitwise IDs

        Raises:
            ValueError: If group ID is not provided or invalid
            Exception: For API errors or connection issues
        """
        if not id:
            logger.error("No group ID provided")
            raise ValueError("Group ID is required")

        logger.info(f"Fetching users from group ID: {id}")

        try:
            group = self._get_group(id)
            if not group:
                logger.error(f"Group not found: {id}")
                raise ValueError(f"Group not found with ID: {id}")

            result = {}
            for member in group.getMembers():
                result[member.getFirstName()] = member.getId()

            logger.info(f"Retrieved {len(result)} users from group {id}")
            return result

        except Exception as e:
            logger.error(f"Error retrieving users from group {id}: {str(e)}", exc_info=True)
            raise

    def getGroupMembers(self, id: Optional[int] = None) -> List[str]:
        """
        Get the member names of a group, in the order Splitwise lists them

        Raises:
            ValueError: If group ID is not provided or invalid
        """
        return list(self.getUsersfromGroup(id=id))

    def getGroupExpenses(self, id: Optional[int] = None) -> List[Expense]:
        """
        Get the expenses recorded in a Splitwise group, newest first

        Deleted expenses and settle-up payments are skipped. An expense
        paid by several users yields one record per payer, holding that
        payer's paid share.

        Args:
            id: The Splitwise group ID

        Returns:
            List of Expense records

        Raises:
            ValueError: If group ID is not provided
            Exception: For API errors or connection issues
        """
        if not id:
            logger.error("No group ID provided")
            raise ValueError("Group ID is required")

        logger.info(f"Fetching expenses from group ID: {id}")

        try:
            result = []
            for exp in self.splitwise.getExpenses(group_id=id, limit=0):
                if exp.getDeletedAt() or exp.getPayment():
                    continue

                payers = [
                    user for user in (exp.getUsers() or [])
                    if (ExpenseCalculator.parseAmount(user.getPaidShare()) or 0) > 0
                ]
                if not payers:
                    logger.warning(f"Expense {exp.getId()} has no payer, skipping")
                    continue

                for user in payers:
                    expense_id = str(exp.getId())
                    if len(payers) > 1:
                        expense_id = f"{expense_id}:{user.getId()}"
                    result.append(Expense(
                        id=expense_id,
                        groupId=str(id),
                        description=exp.getDescription(),
                        amount=ExpenseCalculator.parseAmount(user.getPaidShare()),
                        payer=user.getFirstName(),
                        createdAt=self._parse_timestamp(exp.getCreatedAt()),
                    ))

            logger.info(f"Retrieved {len(result)} expense records from group {id}")
            return ExpenseCalculator.sortExpensesByDate(result)

        except Exception as e:
            logger.error(f"Error retrieving expenses from group {id}: {str(e)}", exc_info=True)
            raise

    def getGroups(self) -> Dict[str, Dict[str, Any]]:
        """
        Get all groups the user is a member of

        Returns:
            Dict mapping group IDs to group id and name

        Raises:
            Exception: For API errors or connection issues
        """
        logger.info("Fetching groups from Splitwise API")

        try:
            groups_list = self.splitwise.getGroups()

            result = {}
            for group in groups_list:
                group_id = group.getId()
                result[str(group_id)] = {
                    "id": group_id,
                    "name": group.getName(),
                }

            logger.info(f"Retrieved {len(result)} groups from Splitwise")
            return result

        except Exception as e:
            logger.error(f"Error retrieving groups: {str(e)}", exc_info=True)
            raise
