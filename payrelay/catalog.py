from .errors import InvalidSelection

# prices in major units (INR)
COIN_PACKAGES = {
    "small": {"coins": 30, "price": 29, "original_price": 49, "id": "coins_30"},
    "medium": {"coins": 100, "price": 99, "original_price": 149, "id": "coins_100"},
    "large": {"coins": 350, "price": 299, "original_price": 499, "id": "coins_350"},
}

PREMIUM_PLANS = {
    "day": {"duration": "1 Day", "price": 29, "original_price": 49, "id": "premium_1d"},
    "week": {"duration": "1 Week", "price": 199, "original_price": 299, "id": "premium_7d"},
    "month": {"duration": "1 Month", "price": 299, "original_price": 499, "id": "premium_30d"},
    "lifetime": {"duration": "Lifetime", "price": 899, "original_price": 1999, "id": "premium_lifetime"},
}

UNLIMITED_CALLS_PLAN = {"price": 19, "duration": "24 hours", "id": "unlimited_calls_24h"}


def coin_package(package_id: str) -> dict:
    try:
        return COIN_PACKAGES[package_id]
    except (KeyError, TypeError):
        raise InvalidSelection("Invalid coin package selected")


def premium_plan(plan_id: str) -> dict:
    try:
        return PREMIUM_PLANS[plan_id]
    except (KeyError, TypeError):
        raise InvalidSelection("Invalid premium plan selected")
