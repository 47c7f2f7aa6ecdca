"""Notification email rendering.

Presentation only: subject line, plain-text body and an HTML body that
summarise one submission. All user supplied text is HTML-escaped.
"""
from __future__ import annotations

from html import escape
from typing import Any
from urllib.parse import quote

from .schemas import Submission

ACCENT = "#a855f7"
FIELD_COLORS = {"name": "#a855f7", "email": "#3b82f6", "service": "#22c55e"}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def first_name(name: Any) -> str:
    parts = _text(name).split()
    return parts[0] if parts else ""


def render_subject(record: Submission) -> str:
    return f"New Contact: {_text(record.name)} - {_text(record.service)}"


def _display_time(record: Submission, fmt: str) -> str:
    try:
        return record.received_at.strftime(fmt)
    except ValueError:
        return record.timestamp


def render_text(record: Submission) -> str:
    when = _display_time(record, "%Y-%m-%d %H:%M:%S UTC")
    return (
        "New Contact Form Submission\n"
        "\n"
        f"Name: {_text(record.name)}\n"
        f"Email: {_text(record.email)}\n"
        f"Service: {_text(record.service)}\n"
        f"Time: {when}\n"
        "\n"
        "Message:\n"
        f"{_text(record.message)}\n"
        "\n"
        "---\n"
        f"Reply to: {_text(record.email)}\n"
        f"Submission ID: {record.id}\n"
    )


def _field_row(label: str, value_html: str, color: str) -> str:
    return (
        f'<tr><td style="padding: 16px; background-color: #f9fafb; border-left: 3px solid {color};">'
        f'<p style="margin: 0 0 4px; font-size: 11px; font-weight: 600; text-transform: uppercase; '
        f'letter-spacing: 0.5px; color: #6b7280;">{label}</p>'
        f'<p style="margin: 0; font-size: 16px; font-weight: 600; color: #111827;">{value_html}</p>'
        "</td></tr>"
        '<tr><td style="height: 12px;"></td></tr>'
    )


def render_html(record: Submission, *, brand: str) -> str:
    name = escape(_text(record.name))
    email = escape(_text(record.email))
    service = escape(_text(record.service))
    message = escape(_text(record.message))
    mailto = escape(quote(_text(record.email), safe="@.+-_"), quote=True)
    reply_subject = quote(f"Re: Your inquiry about {_text(record.service)}")
    reply_label = escape(first_name(record.name).upper())
    when = escape(_display_time(record, "%a, %b %d, %Y, %H:%M UTC"))

    rows = "".join(
        [
            _field_row("Name", name, FIELD_COLORS["name"]),
            _field_row(
                "Email",
                f'<a href="mailto:{mailto}" style="color: #3b82f6; text-decoration: none;">{email}</a>',
                FIELD_COLORS["email"],
            ),
            _field_row(
                "Service Interest",
                f'<span style="display: inline-block; padding: 6px 14px; background-color: #d1fae5; '
                f'color: #065f46; font-size: 14px; border-radius: 6px;">{service}</span>',
                FIELD_COLORS["service"],
            ),
        ]
    )

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="margin: 0; padding: 0; font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f5f5f5;">
<table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f5f5f5; padding: 40px 20px;">
<tr><td align="center">
<table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 8px; overflow: hidden;">
<tr><td style="height: 4px; background: {ACCENT};"></td></tr>
<tr><td style="padding: 40px 40px 30px; text-align: center; border-bottom: 1px solid #e5e7eb;">
<h1 style="margin: 0 0 8px; font-size: 24px; color: #111827;">New Contact Submission</h1>
<p style="margin: 0; font-size: 14px; color: #6b7280;">{when}</p>
</td></tr>
<tr><td style="padding: 40px;">
<table width="100%" cellpadding="0" cellspacing="0" style="margin-bottom: 24px;">{rows}</table>
<table width="100%" cellpadding="0" cellspacing="0" style="margin-bottom: 32px;">
<tr><td style="padding: 20px; background-color: #f9fafb; border-radius: 8px; border: 1px solid #e5e7eb;">
<p style="margin: 0 0 12px; font-size: 11px; font-weight: 600; text-transform: uppercase; color: #6b7280;">Message</p>
<p style="margin: 0; font-size: 15px; line-height: 1.6; color: #374151; white-space: pre-wrap;">{message}</p>
</td></tr>
</table>
<table width="100%" cellpadding="0" cellspacing="0">
<tr><td align="center" style="padding: 20px 0;">
<a href="mailto:{mailto}?subject={reply_subject}" style="display: inline-block; padding: 14px 32px; background: {ACCENT}; color: #ffffff; text-decoration: none; font-weight: 600; font-size: 14px; border-radius: 8px;">REPLY TO {reply_label}</a>
</td></tr>
</table>
</td></tr>
<tr><td style="padding: 30px 40px; background-color: #f9fafb; border-top: 1px solid #e5e7eb; text-align: center;">
<p style="margin: 0 0 8px; font-size: 12px; color: #6b7280;">Automated notification from your {escape(brand)}</p>
<p style="margin: 0; font-size: 11px; color: #9ca3af;">Submission ID: {record.id}</p>
</td></tr>
</table>
</td></tr>
</table>
</body>
</html>
"""
