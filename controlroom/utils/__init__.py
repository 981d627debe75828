# Control Room Utils
from controlroom.utils.crypto import (
    hash_password,
    verify_password,
    is_acceptable_password,
)
from controlroom.utils.pagination import Page, normalize_page

__all__ = [
    "hash_password",
    "verify_password",
    "is_acceptable_password",
    "Page",
    "normalize_page",
]
