"""One-off helper to obtain the Google refresh token the booking API runs on.

Usage: python -m app.setup_google_auth
"""

import asyncio
import logging
import sys

from app.core.config import _ENV_FILE, settings
from app.services.google_auth_service import exchange_code_for_tokens, get_google_authorization_url

logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    if not settings.google_client_id or not settings.google_client_secret:
        logger.error(
            "Missing Google OAuth credentials. Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and "
            "GOOGLE_REDIRECT_URI in %s (see https://console.cloud.google.com/apis/credentials)",
            _ENV_FILE,
        )
        return 1

    print("1. Open this URL, sign in with the calendar owner's account and grant Calendar access:\n")
    print(get_google_authorization_url())
    print(f"\n2. You'll be redirected to {settings.google_redirect_uri}?code=...")
    code = input("3. Paste the value of the 'code' parameter here: ").strip()
    if not code:
        logger.error("No authorization code given")
        return 1

    tokens = asyncio.run(exchange_code_for_tokens(code))
    if not tokens:
        logger.error("Token exchange failed, see the warning above")
        return 1
    refresh_token = tokens.get("refresh_token")
    if not refresh_token:
        logger.error("Google did not return a refresh token. Revoke the app's access and run again.")
        return 1
    print(f"\nAdd this to {_ENV_FILE}:\n\nGOOGLE_REFRESH_TOKEN={refresh_token}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
