"""Provider and sync settings read from the environment."""

import os


class SyncConfig:
    """Centralized sync configuration."""

    PROVIDER_NAME = os.environ.get("PROVIDER_NAME", "bing")
    PROVIDER_API_BASE_URL = os.environ.get("PROVIDER_API_BASE_URL", "https://api.bingplaces.com/v1")
    PROVIDER_USER_AGENT = os.environ.get("PROVIDER_USER_AGENT", "ListingSync/1.0")
    PROVIDER_HTTP_TIMEOUT_SECONDS = float(os.environ.get("PROVIDER_HTTP_TIMEOUT_SECONDS", "10"))

    # Upper bound for one publish attempt, including connection setup
    PUBLISH_TIMEOUT_SECONDS = float(os.environ.get("PUBLISH_TIMEOUT_SECONDS", "30"))

    SWEEP_CONCURRENCY = int(os.environ.get("SWEEP_CONCURRENCY", "8"))
    BATCH_PUBLISH_CONCURRENCY = int(os.environ.get("BATCH_PUBLISH_CONCURRENCY", "4"))
