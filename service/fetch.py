"""
Concurrent archive download
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from service.session import HttpSession

logger = logging.getLogger(__name__)


def fetch_archives(session: HttpSession, urls: Sequence[str], labels: Sequence[str],
                   silent: bool = False, max_workers: Optional[int] = 4) -> List[bytes]:
    """
    Download several archives at once

    Args:
        session (HttpSession): Session the requests are sent through (cookies included)
        urls (Sequence[str]): Archive URLs
        labels (Sequence[str]): One label per URL, shown in the progress bar
        silent (bool): Hide the progress bar
        max_workers (Optional[int]): Concurrent downloads

    Returns:
        List[bytes]: One body per URL, in the order of `urls`

    Raises:
        NetworkError, UnexpectedStatusError: If any download fails
    """
    if len(urls) != len(labels):
        raise ValueError(f"{len(urls)} URL(s) but {len(labels)} label(s)")
    if not urls:
        return []

    bodies: Dict[int, bytes] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(session.get(url).send): index for index, url in enumerate(urls)}
        progress = tqdm(as_completed(futures), total=len(futures), desc="Downloading archives",
                        unit="file", disable=silent)
        for future in progress:
            index = futures[future]
            response = future.result()
            bodies[index] = response.content
            logger.info(f"{labels[index]}: downloaded {len(response.content)} bytes")

    return [bodies[index] for index in range(len(urls))]
