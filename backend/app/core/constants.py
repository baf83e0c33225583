"""Static reference data: supported currencies, account types, category presets."""

from __future__ import annotations

CURRENCIES: list[dict[str, str]] = [
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "EUR", "name": "Euro", "symbol": "€"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
    {"code": "ARS", "name": "Argentine Peso", "symbol": "$"},
    {"code": "BRL", "name": "Brazilian Real", "symbol": "R$"},
    {"code": "MXN", "name": "Mexican Peso", "symbol": "$"},
    {"code": "COP", "name": "Colombian Peso", "symbol": "$"},
    {"code": "BTC", "name": "Bitcoin", "symbol": "₿"},
    {"code": "ETH", "name": "Ethereum", "symbol": "Ξ"},
]

CURRENCY_CODES: frozenset[str] = frozenset(c["code"] for c in CURRENCIES)
CURRENCY_SYMBOLS: dict[str, str] = {c["code"]: c["symbol"] for c in CURRENCIES}
CRYPTO_CURRENCIES: frozenset[str] = frozenset({"BTC", "ETH"})

ACCOUNT_TYPES: list[dict[str, str]] = [
    {"value": "cash", "label": "Cash", "icon": "wallet"},
    {"value": "bank", "label": "Bank Account", "icon": "building-2"},
    {"value": "credit_card", "label": "Credit Card", "icon": "credit-card"},
    {"value": "crypto", "label": "Crypto Wallet", "icon": "bitcoin"},
]

CATEGORY_ICONS: list[str] = [
    "shopping-cart",
    "shopping-bag",
    "utensils",
    "car",
    "home",
    "heart-pulse",
    "plane",
    "dumbbell",
    "graduation-cap",
    "wallet",
    "briefcase",
    "laptop",
    "film",
    "receipt",
    "gift",
    "zap",
]

DEFAULT_CATEGORY_ICON = "wallet"
DEFAULT_CATEGORY_COLOR = "#7c3aed"

DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {"name": "Salary", "type": "income", "icon": "briefcase", "color": "#14b8a6"},
    {"name": "Freelance", "type": "income", "icon": "laptop", "color": "#10b981"},
    {"name": "Groceries", "type": "expense", "icon": "shopping-cart", "color": "#f43f5e"},
    {"name": "Transportation", "type": "expense", "icon": "car", "color": "#f59e0b"},
    {"name": "Restaurants", "type": "expense", "icon": "utensils", "color": "#ec4899"},
    {"name": "Shopping", "type": "expense", "icon": "shopping-bag", "color": "#8b5cf6"},
    {"name": "Entertainment", "type": "expense", "icon": "film", "color": "#6366f1"},
    {"name": "Bills", "type": "expense", "icon": "receipt", "color": "#ef4444"},
]

MAX_INSTALLMENTS = 48
