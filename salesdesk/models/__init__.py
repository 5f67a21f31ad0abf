# Models package — import all models here so Alembic can discover them.

from salesdesk.models.sales_person import SalesPerson  # noqa: F401
from salesdesk.models.lead import Lead  # noqa: F401
from salesdesk.models.task import Task  # noqa: F401
from salesdesk.models.activity import Activity  # noqa: F401
from salesdesk.models.revenue import RevenueTransaction, SalesTarget  # noqa: F401
