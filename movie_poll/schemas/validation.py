"""Input validation helpers with XSS protection"""

import re
import bleach

DANGEROUS_PATTERNS = [
    r'<script[^>]*>',
    r'javascript:',
    r'on\w+\s*=',
    r'<iframe',
]


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""

    @staticmethod
    def strip_html(value: str) -> str:
        """Remove every tag, keep the text"""
        if not value:
            return value
        return bleach.clean(value, tags=[], strip=True)

    @staticmethod
    def validate_no_script(value: str) -> str:
        """Block common XSS patterns"""
        if not value:
            return value

        for pattern in DANGEROUS_PATTERNS:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")

        return value


def clean_display_name(value: str) -> str:
    """
    Normalize a voter display name: reject script patterns, strip markup,
    collapse inner whitespace. Raises ValueError when nothing is left.
    """
    value = SafeStringMixin.validate_no_script(value)
    value = SafeStringMixin.strip_html(value)
    value = " ".join(value.split())
    if not value:
        raise ValueError("Name must not be empty")
    return value
