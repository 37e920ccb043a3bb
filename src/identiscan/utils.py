"""Identifier generation and query classification helpers."""

import ipaddress
import re
import secrets
import string
import time

_ALPHABET = string.ascii_lowercase + string.digits

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$", re.I)

# Characters accepted in a query token
QUERY_RE = re.compile(r"^[a-zA-Z0-9_.\-@]+$")


def now_millis() -> int:
    return int(time.time() * 1000)


def random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_id(prefix: str) -> str:
    """Build an id of the form ``<prefix>-<millis>-<random>``."""
    return f"{prefix}-{now_millis()}-{random_suffix()}"


def classify_query(query: str) -> str:
    """
    Guess what kind of token a query is.

    Returns:
        One of "ip", "email", "domain" or "username"
    """
    query = query.strip()
    try:
        ipaddress.ip_address(query)
        return "ip"
    except ValueError:
        pass

    if _EMAIL_RE.match(query):
        return "email"
    if _DOMAIN_RE.match(query):
        return "domain"
    return "username"


def is_valid_query(query: str) -> bool:
    return bool(query) and bool(QUERY_RE.match(query))
