import html

import bleach
from rest_framework import serializers


def clean_text(v):
    """Drop every tag; entities come back as plain characters."""
    return html.unescape(bleach.clean((v or '').strip(), tags=set(), strip=True)).strip()


def parse_id(value, field: str='id') -> int:
    """Path ids arrive as strings; anything but a positive integer is a 400."""
    try:
        return serializers.IntegerField(min_value=1).run_validation(value)
    except serializers.ValidationError as e:
        raise serializers.ValidationError({field: e.detail})
