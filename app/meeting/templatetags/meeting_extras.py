from django import template
from django.utils.safestring import mark_safe
import bleach

from meeting.models import Comment

register = template.Library()

# Allowed tags and attributes for meeting notes and other rich text display
ALLOWED_TAGS = ['p', 'br', 'strong', 'b', 'em', 'i', 'u', 's', 'ul', 'ol', 'li', 'a', 'span', 'div', 'blockquote', 'code']
ALLOWED_ATTRS = {'a': ['href', 'title'], 'span': ['class'], 'div': ['class']}


@register.filter
def sanitize_richtext(value):
    """Sanitize HTML from rich text fields for safe display."""
    if not value:
        return ''
    cleaned = bleach.clean(value, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRS, strip=True)
    return mark_safe(cleaned)


@register.simple_tag
def comment_count(item):
    return Comment.objects.for_item(item).count()


@register.filter
def minutes(value):
    """Render a duration in minutes as e.g. ``1h 15m``"""
    if value in (None, ''):
        return ''
    hours, rest = divmod(int(value), 60)
    if hours and rest:
        return f"{hours}h {rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"
