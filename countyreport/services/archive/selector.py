"""Pick the latest Community Profile Report among archive attachments."""

from __future__ import annotations

import re
from typing import Sequence
from urllib.parse import quote

from countyreport.config import DEFAULT_DOWNLOAD_URL_TEMPLATE
from countyreport.core.errors import NoAttachments, UnrecognizedFilename
from countyreport.core.logger import get_logger

from .models import Attachment

LOGGER = get_logger()

ORDERING_TOKEN_PATTERN = re.compile(r"(\d+)\.xlsx$", re.IGNORECASE)


def ordering_token(filename: str) -> int:
    """Return the run of digits right before the extension of ``filename``."""

    match = ORDERING_TOKEN_PATTERN.search(filename)
    if match is None:
        raise UnrecognizedFilename(
            f"Attachment filename has no numeric ordering token: {filename}",
            payload={"filename": filename},
        )
    return int(match.group(1))


def build_download_url(attachment: Attachment, template: str = DEFAULT_DOWNLOAD_URL_TEMPLATE) -> str:
    """Render the file download URL for ``attachment``."""

    return template.format(
        asset_id=quote(attachment.asset_id, safe=""),
        filename=quote(attachment.filename, safe=""),
    )


def select_latest(
    attachments: Sequence[Attachment],
    *,
    template: str = DEFAULT_DOWNLOAD_URL_TEMPLATE,
) -> str:
    """Return the download URL of the attachment with the highest ordering token.

    Ties keep the earliest-listed attachment. Every candidate must carry a
    token; one that does not fails the whole selection.
    """

    if not attachments:
        raise NoAttachments("Latest archive entry has no spreadsheet attachments")
    ranked = [(ordering_token(item.filename), item) for item in attachments]
    ranked.sort(key=lambda pair: pair[0], reverse=True)
    token, latest = ranked[0]
    LOGGER.info(
        "countyreport.selector latest filename=%s token=%d candidates=%d",
        latest.filename,
        token,
        len(ranked),
    )
    return build_download_url(latest, template)


__all__ = ["ordering_token", "build_download_url", "select_latest", "ORDERING_TOKEN_PATTERN"]
