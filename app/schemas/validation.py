"""Input validation helpers with XSS protection"""

import re
from typing import Optional

import bleach


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""
    
    @staticmethod
    def sanitize_html(value: Optional[str]) -> Optional[str]:
        """Remove all HTML tags, store names and addresses are plain text"""
        if not value:
            return value
        return bleach.clean(value, tags=[], strip=True).strip()
    
    @staticmethod
    def validate_no_script(value: Optional[str]) -> Optional[str]:
        """Block common XSS patterns"""
        if not value:
            return value
        
        dangerous_patterns = [
            r'<script[^>]*>',
            r'javascript:',
            r'on\w+\s*=',
            r'<iframe',
        ]
        
        for pattern in dangerous_patterns:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")
        
        return value

    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        return cls.sanitize_html(cls.validate_no_script(value))


def validate_sort_field(field: str, allowed_fields: list[str]) -> str:
    """Validate sort field against whitelist"""
    if field not in allowed_fields:
        raise ValueError(f"Invalid sort field. Allowed: {', '.join(allowed_fields)}")
    return field


def validate_sort_order(order: str) -> str:
    order = order.lower()
    if order not in ("asc", "desc"):
        raise ValueError("Sort order must be 'asc' or 'desc'")
    return order
