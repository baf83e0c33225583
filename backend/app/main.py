from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.account_routes import router as account_router
from app.api.category_routes import router as category_router
from app.api.dashboard_routes import router as dashboard_router
from app.api.exchange_routes import router as exchange_router
from app.api.household_routes import router as household_router
from app.api.routes import router as api_router
from app.api.transaction_routes import router as transaction_router
from app.core import config
from app.core.logging import setup_logging

setup_logging()

app = FastAPI(title="FinTrack API", version="0.1.0")

LOCALHOST_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:5174",
]

CORS_ORIGINS = {
    "development": LOCALHOST_ORIGINS,
    "production": [
        config.FRONTEND_URL,
        *LOCALHOST_ORIGINS,  # Allow local dev against the deployed API
    ],
}

origins = CORS_ORIGINS.get(config.ENVIRONMENT, CORS_ORIGINS["development"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
app.include_router(household_router)
app.include_router(category_router)
app.include_router(account_router)
app.include_router(transaction_router)
app.include_router(exchange_router)
app.include_router(dashboard_router)
