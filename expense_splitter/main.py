import logging
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from .config import LOG_LEVEL, SECRET_KEY
from .db import init_db
from .routes.group import router as group_router
from .routes.expense import router as expense_router
from .routes.balance import router as balance_router
from .routes.payment import router as payment_router

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO),
                    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

app = FastAPI(title="Expense Splitter")

# Session middleware; require_user reads request.session["user"]
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY)

# include routers
app.include_router(group_router)
app.include_router(expense_router)
app.include_router(balance_router)
app.include_router(payment_router)


@app.get("/ping")
def ping():
    return {"status": "healthy", "message": "Expense Splitter API is running"}


@app.on_event("startup")
def on_startup():
    init_db()
