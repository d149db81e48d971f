"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html

from core.models import PriceAlert


def format_rupiah(amount: int) -> str:
    """Format an integer amount as ``Rp1.850.000``."""

    return "Rp" + f"{amount:,}".replace(",", ".")


def _format_markdown(alert: PriceAlert) -> str:
    """Create the Markdown notification body used by the Telethon client."""

    # Telegram Markdown is supported by passing parse_mode="md".
    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    divider = "──────────────"
    lines = [
        "📉 **Gold price dropped!**",
        divider,
        f"**Buying rate:** {format_rupiah(alert.record.buying_rate)}",
        f"**Threshold:**   {format_rupiah(alert.threshold)}",
        f"**Date:**        {escape_md(alert.record.date)}",
        "",
        f"[{escape_md(alert.display_date)}] record #{alert.record.id}",
        divider,
    ]
    return "\n".join(lines)


def _format_html(alert: PriceAlert) -> str:
    """Create the HTML notification body used by the Bot API adapter."""

    parts = [
        "📉 <b>Gold price dropped!</b>",
        "──────────────",
        f"<b>Buying rate:</b> {format_rupiah(alert.record.buying_rate)}",
        f"<b>Threshold:</b> {format_rupiah(alert.threshold)}",
        f"<b>Date:</b> {html.escape(alert.record.date)}",
        "",
        f"[{html.escape(alert.display_date)}] record #{alert.record.id}",
        "──────────────",
    ]
    return "\n".join(parts)


def format_notification(alert: PriceAlert, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(alert)
    if mode == "html":
        return _format_html(alert)
    raise ValueError(f"Unsupported notification format: {mode}")
