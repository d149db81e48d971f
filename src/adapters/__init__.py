"""Adapters connecting the goldwatch core to Telegram, HTTP, storage and scheduling."""
