"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

# Tenant first - every scoped table references it
from tripspend.modules.tenants.models import Tenant  # noqa: F401

from tripspend.modules.budgets.models import Budget  # noqa: F401
from tripspend.modules.expenses.models import Expense, ExpenseFile  # noqa: F401
from tripspend.modules.fx.models import FxRate  # noqa: F401
from tripspend.modules.identity.models import ManagerCostCenter, User  # noqa: F401
from tripspend.modules.org.models import CostCenter, Project  # noqa: F401
from tripspend.modules.policy.models import Policy  # noqa: F401
from tripspend.modules.trips.models import Trip  # noqa: F401
from tripspend.modules.workflow.models import ExpenseNote, TripNote  # noqa: F401
