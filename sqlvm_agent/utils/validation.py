#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Validation helpers for procedure parameters.
"""
import re
from typing import Any


def validate_name(entity: str, name: str) -> None:
    """Validate a resource name (alnum and dashes only). Raise ValueError on error."""
    if not isinstance(name, str) or not re.match(r"^[A-Za-z0-9-]+$", name):
        raise ValueError(f"Invalid {entity} name '{name}'. Only A-Z, a-z, 0-9 and '-' allowed")


def require_positive_int(label: str, value: Any) -> int:
    """Accept an int or a decimal string; reject bools, floats and values below 1."""
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{label} must be a positive integer, got {value!r}")
    return value
