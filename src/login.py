"""Interactive Telegram login (QR code or phone code)."""

from __future__ import annotations

import asyncio
import logging
import os
from getpass import getpass
from typing import Callable, Optional

import qrcode
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

QR_TIMEOUT_SECONDS = 120
QR_ATTEMPTS = 3


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    for attempt in range(1, QR_ATTEMPTS + 1):
        print("Scan this QR code with Telegram (Settings > Devices > Link Desktop Device):\n")
        _print_qr(qr.url)
        try:
            await qr.wait(timeout=QR_TIMEOUT_SECONDS)
            return
        except asyncio.TimeoutError:
            if attempt == QR_ATTEMPTS:
                raise
            LOGGER.info("QR code expired, generating a new one")
            await qr.recreate()


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        print("Select a login method: \n")
        choice = input("goldwatch > ").strip()
        if choice == "1":
            return "qr"
        elif choice == "2":
            return "phone"
        elif choice == "3":
            raise SystemExit(0)
        else:
            print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient, on_challenge: Optional[Callable[[], None]] = None) -> None:
    """Log the client in unless the stored session is already authorized.

    ``on_challenge`` is called right before a login credential is shown, so
    the caller can mark the channel as awaiting authentication.
    """

    if await client.is_user_authorized():
        return

    if on_challenge is not None:
        on_challenge()
    try:
        method = _pick_login_method()
        if method == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def login(client: TelegramClient) -> None:
    """One-shot login: authorize, report the account, disconnect."""

    await client.connect()
    try:
        await authorize(client)
        me = await client.get_me()
        LOGGER.info("Logged in as: %s", getattr(me, "first_name", None) or getattr(me, "username", "unknown"))
    finally:
        await client.disconnect()
