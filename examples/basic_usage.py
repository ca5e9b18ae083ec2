"""Basic usage example for fantasylink."""

import os

from fantasylink import FantasyClient, FantasyResources, TokenFlow
from fantasylink.exceptions import AuthenticationError, RateLimitExceeded
from fantasylink.logging import setup_logging


def main():
    """Authorize with the PIN flow and read a few resources."""
    setup_logging("INFO")

    client = FantasyClient(
        consumer_key=os.environ["YAHOO_CONSUMER_KEY"],
        consumer_secret=os.environ["YAHOO_CONSUMER_SECRET"],
    )

    try:
        flow = TokenFlow(client)
        request_token = flow.get_request_token()
        print(f"Authorize this app at: {flow.authorization_url(request_token)}")
        verifier = input("Enter the verification code: ").strip()
        flow.get_access_token(request_token, verifier)

        resources = FantasyResources(client)

        print("Fetching games...")
        games = resources.games.get_games()
        print(games)

        # Served from the cache; no request is sent
        resources.games.get_games()

        stats = client.get_stats()
        print("\nStatistics:")
        print(f"  Total requests: {stats.total_requests}")
        print(f"  Successful: {stats.successful_requests}")
        print(f"  Cache hits: {stats.cache_hits}")

    except RateLimitExceeded as e:
        print(f"Rate limited, retry in {e.retry_after}s")

    except AuthenticationError as e:
        print(f"Authentication failed: {e.context.to_json()}")

    finally:
        client.close()


if __name__ == "__main__":
    main()
