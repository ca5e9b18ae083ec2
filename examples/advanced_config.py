"""Advanced configuration example for fantasylink."""

import os

from fantasylink import FantasyClient, FantasyResources
from fantasylink.cache import CacheJanitor
from fantasylink.logging import LogConfig, MaskStyle, setup_logging
from fantasylink.models import CacheConfig, RateLimitConfig
from fantasylink.retry import RetryConfig, call_with_retry


def main():
    """Demonstrate advanced fantasylink configuration."""
    setup_logging("DEBUG")

    client = FantasyClient(
        consumer_key=os.environ["YAHOO_CONSUMER_KEY"],
        consumer_secret=os.environ["YAHOO_CONSUMER_SECRET"],
        access_token=os.environ["YAHOO_ACCESS_TOKEN"],
        access_token_secret=os.environ["YAHOO_ACCESS_TOKEN_SECRET"],

        # Connection settings
        timeout=30.0,
        connect_timeout=5.0,
        verify_ssl=True,

        # Fail fast instead of waiting more than two seconds for a token
        max_rate_limit_wait=2.0,

        # Buckets are matched by URL path prefix, first match wins
        rate_limits=[
            RateLimitConfig.per_hour("fantasy", 100, prefix="/fantasy/"),
            RateLimitConfig.per_window("oauth", 10, 300.0, prefix="/oauth/"),
            RateLimitConfig.per_hour("metadata", 50),
        ],

        # Longer-lived cache for rarely changing league data
        cache_config=CacheConfig.user_data(),

        # Logging with redaction
        log_config=LogConfig(
            log_request_headers=True,
            log_response_headers=False,
            log_timing=True,
            mask_style=MaskStyle.HASH,
        ),
        user_agent="MyLeagueBot/1.0 fantasylink/1.0",
    )

    resources = FantasyResources(client)
    retry_config = RetryConfig(max_attempts=5, initial_delay=1.0, max_delay=60.0)

    try:
        with CacheJanitor(client.cache, interval=60.0):
            print("Fetching standings with retries...")
            standings = call_with_retry(
                resources.leagues.get_standings, "423.l.12345", config=retry_config
            )
            print(standings)

            print("\nFetching again (should hit cache)...")
            resources.leagues.get_standings("423.l.12345")

            cache_stats = client.cache_stats()
            print("\nCache Statistics:")
            print(f"  Entries: {cache_stats.total_entries}")
            print(f"  Hits: {cache_stats.hits}")
            print(f"  Misses: {cache_stats.misses}")
            print(f"  Hit Rate: {cache_stats.hit_rate:.1%}")

            stats = client.get_stats()
            print("\nClient Statistics:")
            print(f"  Total Requests: {stats.total_requests}")
            print(f"  Successful: {stats.successful_requests}")
            print(f"  Failed: {stats.failed_requests}")
            print(f"  Rate Limit Waits: {stats.rate_limit_waits}")
            print(f"  Rate Limit Rejections: {stats.rate_limit_rejections}")

    finally:
        client.close()


if __name__ == "__main__":
    main()
