import os
import sys

from dotenv import load_dotenv

from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(os.environ.get("RUNTIME_ENVIRONMENT", "PROD"))
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

# Remote commerce service
API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:3000/api").rstrip("/")
API_TIMEOUT_SECONDS = float(os.environ.get("API_TIMEOUT_SECONDS", "10"))

# Local fallback store (profile completion markers)
DB_NAME = os.environ.get("DB_NAME", "client.db")

# Cart mirror freshness
try:
    CART_STALE_SECONDS = int(os.environ.get("CART_STALE_SECONDS", "30"))
    CART_DISCARD_SECONDS = int(os.environ.get("CART_DISCARD_SECONDS", "120"))
    if CART_STALE_SECONDS < 0 or CART_DISCARD_SECONDS < CART_STALE_SECONDS:
        raise ValueError(
            f"expected 0 <= CART_STALE_SECONDS <= CART_DISCARD_SECONDS "
            f"(got: {CART_STALE_SECONDS}, {CART_DISCARD_SECONDS})"
        )
except ValueError as e:
    print(f"\n ERROR: Invalid cart freshness configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Expected: CART_STALE_SECONDS=30, CART_DISCARD_SECONDS=120\n", file=sys.stderr)
    sys.exit(1)

CART_TAX_RATE = float(os.environ.get("CART_TAX_RATE", "0.1"))  # Default: 10%

# Degraded-mode completion markers older than this are ignored (0 = never expire)
COMPLETION_FALLBACK_TTL_SECONDS = int(os.environ.get("COMPLETION_FALLBACK_TTL_SECONDS", "0"))

# Redirect targets used by the session guards
SIGNIN_PATH = os.environ.get("SIGNIN_PATH", "/signin")
COMPLETE_PROFILE_PATH = os.environ.get("COMPLETE_PROFILE_PATH", "/complete-profile")
COMPLETE_SELLER_PROFILE_PATH = os.environ.get("COMPLETE_SELLER_PROFILE_PATH", "/complete-seller-profile")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask tokens and e-mails in logs

if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))
