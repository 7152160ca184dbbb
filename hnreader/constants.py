"""
Constants and configuration defaults for the HN reader.
"""

# Site
HN_BASE_URL = "https://news.ycombinator.com"
HN_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
STORIES_PER_PAGE = 30  # Listing page size, also the stride of newest?n=

# Comment markup
INDENT_UNIT = 40  # Spacer image width (px) per nesting level

# Cache TTLs (seconds)
LISTING_CACHE_TTL = 300.0  # 5 minutes
COMMENTS_CACHE_TTL = 300.0  # 5 minutes
CACHE_FILE = ".cache/hn_reader/cache.json"

# HTTP
REQUEST_TIMEOUT = 15.0
REQUEST_CONNECT_TIMEOUT = 10.0

# Concurrency
EXTERNAL_REQUEST_SEMAPHORE = 10  # Max concurrent requests to the site

# Listing collector
MAX_LISTING_PAGES = 10
