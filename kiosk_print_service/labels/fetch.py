"""
Label Fetching
==============

Download label templates from the check-in server.
"""

import asyncio
import logging

import requests

from ..config import LABEL_FETCH_TIMEOUT
from ..errors import LabelFetchError

logger = logging.getLogger(__name__)


def fetch_label_sync(url: str, timeout: int = LABEL_FETCH_TIMEOUT) -> str:
    """Fetch the label contents from the network."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise LabelFetchError(f'Timeout fetching label {url}') from e
    except requests.exceptions.RequestException as e:
        raise LabelFetchError(f'Failed to fetch label {url}: {e}') from e

    logger.debug("Fetched label %s (%d bytes)", url, len(response.content))
    return response.text


async def fetch_label(url: str, timeout: int = LABEL_FETCH_TIMEOUT) -> str:
    """Fetch a label without blocking the event loop."""
    return await asyncio.to_thread(fetch_label_sync, url, timeout)
