# backend/finsuite/__init__.py
"""
Import ORM models from each app so that Alembic and
Base.metadata.create_all() see every table.

The model classes live in finsuite/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # users / login history
from .apps.audit import models as audit_models                # activity trail
from .apps.settings import models as settings_models          # key/value settings
from .apps.branches import models as branches_models
from .apps.banks import models as banks_models                # accounts + transactions
from .apps.receivables import models as receivables_models    # customers + receivables
from .apps.sales import models as sales_models
from .apps.purchases import models as purchases_models        # suppliers + payables
from .apps.payments import models as payments_models
from .apps.staff import models as staff_models                # staff + salary records
from .apps.inventory import models as inventory_models
from .apps.expenses import models as expenses_models
from .apps.rent_bills import models as rent_bills_models
from .apps.cash import models as cash_models
from .apps.attachments import models as attachments_models    # sale / expense / bill uploads

__all__ = [
    "accounts_models",
    "audit_models",
    "settings_models",
    "branches_models",
    "banks_models",
    "receivables_models",
    "sales_models",
    "purchases_models",
    "payments_models",
    "staff_models",
    "inventory_models",
    "expenses_models",
    "rent_bills_models",
    "cash_models",
    "attachments_models",
]
