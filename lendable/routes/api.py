#!/usr/bin/env python

"""
    API routes for Lendable,
    lendings, approvals, blacklist, policy and item history.

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from functools import wraps
from typing import List, Optional
from fastapi import (
    APIRouter,
    Cookie,
    Depends,
    HTTPException,
    Request,
    Response,
    status,
)
from sqlalchemy.orm import Session
from lendable.core import auth
from lendable.core.api import LendableAPI
from lendable.core.approvals import Submission
from lendable.core.db import get_db
from lendable.core.policy import Policy
from lendable.core.tenancy import Principal
from lendable.core.exceptions import LendableError, BorrowerBlacklisted
from lendable.schemas.lending import (
    Lending,
    CheckoutRequest,
    ReturnRequest,
    RenewRequest,
    PenaltyOverrideRequest,
)
from lendable.schemas.approval import (
    Approval,
    ApprovalSubmitRequest,
    DecisionRequest,
    SubmissionResult,
)
from lendable.schemas.blacklist import BlacklistEntry, BlacklistRequest, BlacklistStatus
from lendable.schemas.history import HistoryEntry
from lendable.schemas.penalty import Penalty

logger = logging.getLogger(__name__)

router = APIRouter()


def current_principal(request: Request, session: Optional[str] = Cookie(None)) -> Principal:
    """Reads the signed principal from a Bearer token, else the session cookie."""
    token = session
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ")[1]
    if principal := auth.verify_token(token):
        return principal
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def raises_http(func):
    """Translates domain errors raised by `func` into HTTP errors."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BorrowerBlacklisted as e:
            raise HTTPException(status_code=e.status_code, detail={
                "error": str(e),
                "blocked_until": e.blocked_until.isoformat() if e.blocked_until else None,
            })
        except LendableError as e:
            if e.status_code >= 500:
                logger.error(f"{func.__name__} failed: {e}")
            raise HTTPException(status_code=e.status_code, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return wrapper


def _submission(result: Submission, response: Response) -> SubmissionResult:
    response.status_code = (
        status.HTTP_202_ACCEPTED if result.is_pending else status.HTTP_201_CREATED)
    return SubmissionResult(
        lending=Lending.model_validate(result.lending) if result.lending else None,
        approval=Approval.model_validate(result.approval) if result.approval else None,
    )


@router.post("/lendings", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
@raises_http
def checkout(body: CheckoutRequest, response: Response,
             principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    return _submission(LendableAPI.checkout(
        principal, body.item_id, borrower_id=body.borrower_id, due_date=body.due_date,
        notes=body.notes, quantity=body.quantity, db=db), response)


@router.get("/lendings/{lending_id}", response_model=Lending)
@raises_http
def get_lending(lending_id: str, principal: Principal = Depends(current_principal),
                db: Session = Depends(get_db)):
    return Lending.model_validate(LendableAPI.get_lending(principal, lending_id, db=db))


@router.post("/lendings/{lending_id}/return", response_model=Lending)
@raises_http
def return_item(lending_id: str, body: Optional[ReturnRequest] = None,
                principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    body = body or ReturnRequest()
    return Lending.model_validate(LendableAPI.return_item(
        principal, lending_id, condition=body.condition, notes=body.notes, db=db))


@router.get("/lendings/{lending_id}/penalty", response_model=Penalty)
@raises_http
def calculate_penalty(lending_id: str, condition: Optional[str] = None,
                      principal: Principal = Depends(current_principal),
                      db: Session = Depends(get_db)):
    return Penalty.model_validate(LendableAPI.calculate_penalty(
        principal, lending_id, condition=condition, db=db))


@router.post("/lendings/{lending_id}/penalty/override", response_model=Lending)
@raises_http
def override_penalty(lending_id: str, body: PenaltyOverrideRequest,
                     principal: Principal = Depends(current_principal),
                     db: Session = Depends(get_db)):
    return Lending.model_validate(LendableAPI.override_penalty(
        principal, lending_id, body.amount, body.reason, db=db))


@router.post("/lendings/{lending_id}/renew", response_model=SubmissionResult)
@raises_http
def renew(lending_id: str, response: Response, body: Optional[RenewRequest] = None,
          principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    body = body or RenewRequest()
    result = LendableAPI.renew(principal, lending_id, due_date=body.due_date, db=db)
    submission = _submission(result, response)
    if not result.is_pending:
        response.status_code = status.HTTP_200_OK
    return submission


@router.post("/approvals", response_model=SubmissionResult, status_code=status.HTTP_202_ACCEPTED)
@raises_http
def submit_approval(body: ApprovalSubmitRequest, response: Response,
                    principal: Principal = Depends(current_principal),
                    db: Session = Depends(get_db)):
    return _submission(LendableAPI.submit_approval(
        principal, body.item_id, due_date=body.due_date, notes=body.notes,
        type=body.type, quantity=body.quantity, lending_id=body.lending_id,
        requester_id=body.requester_id, db=db), response)


@router.get("/approvals/{request_id}", response_model=Approval)
@raises_http
def get_approval(request_id: str, principal: Principal = Depends(current_principal),
                 db: Session = Depends(get_db)):
    return Approval.model_validate(LendableAPI.get_approval(principal, request_id, db=db))


@router.put("/approvals/{request_id}/decision", response_model=Approval)
@raises_http
def decide_approval(request_id: str, body: DecisionRequest,
                    principal: Principal = Depends(current_principal),
                    db: Session = Depends(get_db)):
    return Approval.model_validate(LendableAPI.decide_approval(
        principal, request_id, body.decision, notes=body.notes, db=db))


@router.put("/approvals/{request_id}/cancel", response_model=Approval)
@raises_http
def cancel_approval(request_id: str, principal: Principal = Depends(current_principal),
                    db: Session = Depends(get_db)):
    return Approval.model_validate(LendableAPI.cancel_approval(principal, request_id, db=db))


@router.post("/blacklist", response_model=BlacklistEntry, status_code=status.HTTP_201_CREATED)
@raises_http
def blacklist_add(body: BlacklistRequest, principal: Principal = Depends(current_principal),
                  db: Session = Depends(get_db)):
    return BlacklistEntry.model_validate(LendableAPI.blacklist_add(
        principal, body.user_id, body.reason, body.days, db=db))


@router.delete("/blacklist/{entry_id}", response_model=BlacklistEntry)
@raises_http
def blacklist_remove(entry_id: str, principal: Principal = Depends(current_principal),
                     db: Session = Depends(get_db)):
    return BlacklistEntry.model_validate(LendableAPI.blacklist_remove(principal, entry_id, db=db))


@router.get("/users/{user_id}/blacklist", response_model=BlacklistStatus)
@raises_http
def blacklist_status(user_id: str, principal: Principal = Depends(current_principal),
                     db: Session = Depends(get_db)):
    entry = LendableAPI.blacklist_status(principal, user_id, db=db)
    return BlacklistStatus(
        user_id=user_id,
        blacklisted=entry is not None,
        entry=BlacklistEntry.model_validate(entry) if entry else None,
    )


@router.get("/policy", response_model=Policy)
@raises_http
def get_policy(principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    return LendableAPI.get_policy(principal, db=db)


@router.get("/items/{item_id}/history", response_model=List[HistoryEntry])
@raises_http
def item_history(item_id: str, limit: Optional[int] = None,
                 principal: Principal = Depends(current_principal),
                 db: Session = Depends(get_db)):
    return [HistoryEntry.model_validate(row) for row in LendableAPI.item_history(
        principal, item_id, limit=limit, db=db)]
