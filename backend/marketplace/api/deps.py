"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header

from marketplace.core.config import get_settings
from marketplace.core.context import ExecutionContext
from marketplace.core.exceptions import AuthenticationError
from marketplace.interfaces.auth_provider import IAuthProvider, User
from marketplace.interfaces.milestone_repository import IMilestoneRepository
from marketplace.interfaces.payment_gateway import IPaymentGateway
from marketplace.interfaces.proposal_repository import IMilestonePlanRepository, IProposalRepository
from marketplace.interfaces.record_store import IRecordStore
from marketplace.interfaces.usage_gate import IUsageGate
from marketplace.models.enums import SubscriptionTier
from marketplace.services.milestone_plan_service import MilestonePlanService
from marketplace.services.milestone_service import MilestoneService


# ===========================================
# Record Store
# ===========================================


@lru_cache()
def get_record_store() -> IRecordStore:
    """Get record store instance."""
    settings = get_settings()
    if settings.RECORD_STORE == "memory":
        from marketplace.infrastructure.local.memory_record_store import InMemoryRecordStore

        return InMemoryRecordStore()

    from marketplace.infrastructure.local.record_store import SqliteRecordStore

    return SqliteRecordStore()


@lru_cache()
def get_execution_context() -> ExecutionContext:
    """Get the execution context (live or dev mode)."""
    return ExecutionContext.from_settings(get_settings())


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_milestone_repository() -> IMilestoneRepository:
    """Get milestone repository instance."""
    from marketplace.infrastructure.local.milestone_repository import KeyValueMilestoneRepository

    return KeyValueMilestoneRepository(get_record_store())


@lru_cache()
def get_proposal_repository() -> IProposalRepository:
    """Get proposal repository instance."""
    from marketplace.infrastructure.local.proposal_repository import KeyValueProposalRepository

    return KeyValueProposalRepository(get_record_store())


@lru_cache()
def get_milestone_plan_repository() -> IMilestonePlanRepository:
    """Get milestone plan repository instance."""
    from marketplace.infrastructure.local.proposal_repository import KeyValueMilestonePlanRepository

    return KeyValueMilestonePlanRepository(get_record_store())


# ===========================================
# Provider Dependencies
# ===========================================


@lru_cache()
def get_payment_gateway() -> IPaymentGateway:
    """Get payment gateway instance."""
    settings = get_settings()
    if settings.PAYMENT_PROVIDER == "http":
        from marketplace.infrastructure.payments.http_payment_gateway import HttpPaymentGateway

        return HttpPaymentGateway(
            base_url=settings.PAYMENT_API_BASE,
            api_key=settings.PAYMENT_API_KEY,
            timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        )

    from marketplace.infrastructure.local.ledger_payment_gateway import LedgerPaymentGateway

    return LedgerPaymentGateway(get_record_store(), clock=get_execution_context().clock)


@lru_cache()
def get_usage_gate() -> IUsageGate:
    """Get subscription usage gate instance."""
    from marketplace.infrastructure.local.subscription_usage_gate import SubscriptionUsageGate

    settings = get_settings()

    return SubscriptionUsageGate(
        get_record_store(),
        limits={tier: settings.milestone_limit_for(tier.value) for tier in SubscriptionTier},
        clock=get_execution_context().clock,
    )


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    settings = get_settings()
    if settings.AUTH_PROVIDER == "local":
        from marketplace.infrastructure.auth.local_auth import LocalAuthProvider

        return LocalAuthProvider(settings)

    from marketplace.infrastructure.local.mock_auth import MockAuthProvider

    return MockAuthProvider(enabled=True)


# ===========================================
# Service Dependencies
# ===========================================


def get_milestone_service(
    milestone_repo: IMilestoneRepository = Depends(get_milestone_repository),
    proposal_repo: IProposalRepository = Depends(get_proposal_repository),
    plan_repo: IMilestonePlanRepository = Depends(get_milestone_plan_repository),
    usage_gate: IUsageGate = Depends(get_usage_gate),
    payment_gateway: IPaymentGateway = Depends(get_payment_gateway),
    context: ExecutionContext = Depends(get_execution_context),
) -> MilestoneService:
    return MilestoneService(
        milestone_repo=milestone_repo,
        proposal_repo=proposal_repo,
        plan_repo=plan_repo,
        usage_gate=usage_gate,
        payment_gateway=payment_gateway,
        context=context,
    )


def get_milestone_plan_service(
    milestone_repo: IMilestoneRepository = Depends(get_milestone_repository),
    proposal_repo: IProposalRepository = Depends(get_proposal_repository),
    plan_repo: IMilestonePlanRepository = Depends(get_milestone_plan_repository),
    payment_gateway: IPaymentGateway = Depends(get_payment_gateway),
    context: ExecutionContext = Depends(get_execution_context),
) -> MilestonePlanService:
    return MilestonePlanService(
        milestone_repo=milestone_repo,
        proposal_repo=proposal_repo,
        plan_repo=plan_repo,
        payment_gateway=payment_gateway,
        context=context,
    )


# ===========================================
# Authentication
# ===========================================


def _bearer_token(authorization: str) -> str:
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError as exc:
        raise AuthenticationError("Invalid authorization header format") from exc
    return token


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    x_dev_token: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
    context: ExecutionContext = Depends(get_execution_context),
) -> User:
    """
    Get current authenticated user.

    In dev mode, ``dev-user-*`` tokens are accepted from either the bearer
    header or ``X-Dev-Token`` without asking the auth provider.
    """
    from marketplace.infrastructure.local.mock_auth import parse_dev_token

    if not auth_provider.is_enabled():
        return User(id="dev_user", email="dev@example.com", display_name="Developer")

    token = _bearer_token(authorization) if authorization else None

    if context.is_dev:
        for candidate in (x_dev_token, token):
            dev_user = parse_dev_token(candidate) if candidate else None
            if dev_user:
                return dev_user

    if not token:
        raise AuthenticationError("Authorization header required")
    if parse_dev_token(token):
        raise AuthenticationError("Dev tokens are only accepted in dev mode")
    return await auth_provider.verify_token(token)


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

MilestoneSvc = Annotated[MilestoneService, Depends(get_milestone_service)]
PlanSvc = Annotated[MilestonePlanService, Depends(get_milestone_plan_service)]
CurrentUser = Annotated[User, Depends(get_current_user)]
