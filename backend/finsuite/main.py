# backend/finsuite/main.py
import os
from datetime import datetime, timezone
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .apps.accounts.router_public import router as accounts_public_router
from .apps.accounts.router_admin import router as accounts_admin_router
from .apps.settings.router import router as settings_router
from .apps.branches.router import router as branches_router
from .apps.sales.router import router as sales_router
from .apps.receivables.router import router as receivables_router
from .apps.purchases.router import router as purchases_router
from .apps.banks.router import router as banks_router
from .apps.cash.router import router as cash_router
from .apps.payments.router import router as payments_router
from .apps.staff.router import router as staff_router
from .apps.inventory.router import router as inventory_router
from .apps.expenses.router import router as expenses_router
from .apps.rent_bills.router import router as rent_bills_router
from .apps.reports.router_pl import router as pl_router
from .apps.reports.router_dashboard import router as dashboard_router
from .apps.attachments import router as attachment_routers
from .apps.attachments.storage import URL_PREFIX, uploads_dir


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to the local Vite ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:4173",
    ]


app = FastAPI(title="Finance Suite API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Finance Suite backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


@app.get("/api/health", tags=["health"])
def api_health():
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


app.include_router(accounts_public_router)
app.include_router(accounts_admin_router)
app.include_router(settings_router)
app.include_router(branches_router)
app.include_router(sales_router)
app.include_router(receivables_router)
app.include_router(purchases_router)
app.include_router(banks_router)
app.include_router(cash_router)
app.include_router(payments_router)
app.include_router(staff_router)
app.include_router(inventory_router)
app.include_router(expenses_router)
app.include_router(rent_bills_router)
app.include_router(pl_router)
app.include_router(dashboard_router)
app.include_router(attachment_routers.sales_router)
app.include_router(attachment_routers.expenses_router)
app.include_router(attachment_routers.rent_bills_router)

uploads_dir().mkdir(parents=True, exist_ok=True)
app.mount(URL_PREFIX, StaticFiles(directory=str(uploads_dir())), name="uploads")
