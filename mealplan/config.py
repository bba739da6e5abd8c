import os
import secrets
import sys

# Flask secret key: used for session signing and CSRF token generation.
# Set SECRET_KEY in the environment for production; a random key is
# generated on startup as a fallback (sessions won't survive restarts).
SECRET_KEY = os.environ.get("SECRET_KEY", secrets.token_hex(32))


# Check if we're running in a test environment
def _is_testing():
    """Check if code is running under pytest."""
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING" if _is_testing() else "INFO")

# JSON data files. Each one is read and rewritten whole on every change.
RECIPES_FILE = os.environ.get("RECIPES_FILE", "data/recipes.json")
MEAL_PLANS_FILE = os.environ.get("MEAL_PLANS_FILE", "data/meal_plans.json")
SHOPPING_LISTS_FILE = os.environ.get("SHOPPING_LISTS_FILE", "data/shopping_lists.json")

# flask-limiter rule applied to the shopping-list generation endpoints.
GENERATE_RATE_LIMIT = os.environ.get("GENERATE_RATE_LIMIT", "10 per minute")

SHOPPING_LIST_NAME_MAX_LENGTH = 200
