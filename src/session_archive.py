"""Push/pull the Telegram session file to Supabase Storage.

A fresh deployment can pull a previously pushed session instead of
repeating the interactive QR/phone login.
"""

from __future__ import annotations

import glob
import io
import logging
import os
import zipfile
from typing import List

from supabase import Client

LOGGER = logging.getLogger(__name__)


def session_files(session_path: str) -> List[str]:
    """Return the Telethon session file plus any SQLite side files."""

    base = session_path if session_path.endswith(".session") else f"{session_path}.session"
    return sorted(path for path in glob.glob(f"{glob.escape(base)}*") if os.path.isfile(path))


def zip_session(session_path: str, archive_path: str) -> List[str]:
    """Write the session files into ``archive_path``; return what was added."""

    files = session_files(session_path)
    if not files:
        raise FileNotFoundError(f"No session file found for {session_path}; run `goldwatch login` first")

    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for path in files:
            archive.write(path, arcname=os.path.basename(path))
    return [os.path.basename(path) for path in files]


def unzip_session(data: bytes, target_dir: str) -> List[str]:
    """Extract an archive produced by zip_session into ``target_dir``."""

    os.makedirs(target_dir, exist_ok=True)
    extracted: List[str] = []
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        for member in archive.namelist():
            # Archives only ever hold flat session files; refuse anything else.
            name = os.path.basename(member)
            if not name or name != member:
                raise ValueError(f"Unexpected entry in session archive: {member!r}")
            with archive.open(member) as source, open(os.path.join(target_dir, name), "wb") as target:
                target.write(source.read())
            extracted.append(name)
    return extracted


def push_session(client: Client, session_path: str, bucket: str, archive_name: str) -> None:
    """Zip the session, upload it (overwriting), and remove the local zip."""

    archive_path = os.path.join(os.path.dirname(os.path.abspath(session_path)), archive_name)
    names = zip_session(session_path, archive_path)
    LOGGER.info("Zipped %s into %s", ", ".join(names), archive_name)
    try:
        with open(archive_path, "rb") as handle:
            client.storage.from_(bucket).upload(
                path=archive_name,
                file=handle.read(),
                file_options={"content-type": "application/zip", "upsert": "true"},
            )
        LOGGER.info("Uploaded %s to bucket %s", archive_name, bucket)
    finally:
        os.remove(archive_path)


def pull_session(client: Client, session_path: str, bucket: str, archive_name: str) -> None:
    """Download the archived session and unpack it next to ``session_path``."""

    data = client.storage.from_(bucket).download(archive_name)
    target_dir = os.path.dirname(os.path.abspath(session_path))
    names = unzip_session(data, target_dir)
    LOGGER.info("Restored %s from bucket %s", ", ".join(names), bucket)


def restore_session_if_missing(client: Client, session_path: str, bucket: str, archive_name: str) -> bool:
    """Pull the archived session unless one exists locally; True if restored.

    A missing or unreadable archive is not fatal: the channel falls back to
    the interactive login.
    """

    if session_files(session_path):
        LOGGER.debug("Local session found, not pulling %s", archive_name)
        return False
    try:
        pull_session(client, session_path, bucket, archive_name)
    except Exception as exc:
        LOGGER.warning("No session restored from bucket %s: %s", bucket, exc)
        return False
    return True
