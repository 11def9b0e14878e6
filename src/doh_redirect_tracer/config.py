"""Configuration module for doh-redirect-tracer."""
import os
import logging

# --- Configuration ---
LISTEN_PORT = int(os.getenv('LISTEN_PORT', 8080))
LISTEN_HOST = os.getenv('LISTEN_HOST', '127.0.0.1')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# DoH endpoint used when a redirect moves to a new hostname.
# An empty value reuses the endpoint supplied by the caller.
REDIRECT_DOH = os.getenv('REDIRECT_DOH', 'https://dns.google/resolve').strip() or None

MAX_HOPS = int(os.getenv('MAX_HOPS', 10))
DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/113.0.0.0 Safari/537.36'
)
USER_AGENT = os.getenv('USER_AGENT', DEFAULT_USER_AGENT)
REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', 5.0))
TRACE_TIMEOUT = float(os.getenv('TRACE_TIMEOUT', 60.0)) or None

# Plain DNS server used to find the DoH endpoint itself; empty means system resolver
BOOTSTRAP_DNS = os.getenv('BOOTSTRAP_DNS', '').strip() or None

STATS_INTERVAL = int(os.getenv('STATS_INTERVAL', 300))

# --- Logging Setup ---
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger("doh-trace")
