from __future__ import annotations

from fastapi import APIRouter

from tripspend.modules.budgets.api import router as budgets_router
from tripspend.modules.expenses.api import router as expenses_router
from tripspend.modules.fx.api import router as fx_router
from tripspend.modules.identity.api import router as identity_router
from tripspend.modules.org.api import router as org_router
from tripspend.modules.policy.api import router as policy_router
from tripspend.modules.tenants.api import router as tenants_router
from tripspend.modules.trips.api import router as trips_router

router = APIRouter()

router.include_router(identity_router, prefix="/api")
router.include_router(tenants_router, prefix="/api")
router.include_router(org_router, prefix="/api")
router.include_router(policy_router, prefix="/api")
router.include_router(fx_router, prefix="/api")
router.include_router(expenses_router, prefix="/api")
router.include_router(trips_router, prefix="/api")
router.include_router(budgets_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
