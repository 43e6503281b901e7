"""
Administrative endpoints.

Account listing and deactivation. Administrative role required.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ..deps import AdminAccount, ContextDep
from .auth import AccountResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/accounts", response_model=List[AccountResponse])
async def list_accounts(admin: AdminAccount, context: ContextDep, active_only: bool = False):
    """List accounts."""
    accounts = context.accounts.list_accounts(active_only=active_only)
    return [AccountResponse.from_account(a) for a in accounts]


@router.post("/accounts/{account_id}/deactivate", response_model=AccountResponse)
async def deactivate_account(account_id: str, admin: AdminAccount, context: ContextDep):
    """
    Deactivate an account.

    The record is kept; the account can no longer log in and its sessions
    are destroyed.
    """
    account = context.accounts.get_by_id(account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )

    context.deactivate(account)
    logger.info(f"Account {account.email} deactivated by {admin.email}")
    return AccountResponse.from_account(context.accounts.get_by_id(account_id))
