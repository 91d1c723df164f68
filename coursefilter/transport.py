"""
Network and file adapters that drive a StreamInterceptor.

- fetch_and_filter(): stream a live catalog response with requests
- replay_file(): push a saved response body through in fixed-size chunks
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import requests

from coursefilter.interceptor import BufferStream, StreamInterceptor, url_matches
from coursefilter.pipeline import CatalogPipeline

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192


def run_chunks(chunks: Iterable[bytes], pipeline: CatalogPipeline, request_id: str = "") -> bytes:
    """Feed chunks through a fresh interceptor and return what it emitted."""
    sink = BufferStream()
    interceptor = StreamInterceptor(sink, pipeline, request_id=request_id)
    for chunk in chunks:
        if chunk:
            interceptor.on_data(chunk)
    interceptor.on_stop()
    return sink.getvalue()


def _file_chunks(path: Path, chunk_size: int) -> Iterable[bytes]:
    with path.open("rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                return
            yield chunk


def replay_file(path: str | Path, pipeline: CatalogPipeline, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    p = Path(path)
    return run_chunks(_file_chunks(p, chunk_size), pipeline, request_id=p.name)


def fetch_and_filter(
    url: str,
    pipeline: CatalogPipeline,
    data: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
    session: Optional[requests.Session] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    timeout: float = 30,
    url_pattern: Optional[str] = None,
) -> bytes:
    """
    POST `data` (or GET if there is none) and return the filtered body.

    If `url_pattern` is given and `url` does not match it, the body is
    returned exactly as received. HTTP errors are raised by requests before
    any interception starts.
    """
    method = "POST" if data is not None else "GET"
    requester: Any = session if session is not None else requests
    resp = requester.request(method, url, data=data, headers=headers, stream=True, timeout=timeout)
    resp.raise_for_status()

    logger.info("Fetched %s %s -> %s", method, url, resp.status_code)
    try:
        chunks = resp.iter_content(chunk_size=chunk_size)
        if url_pattern is not None and not url_matches(url_pattern, url):
            logger.info("%s is not the catalog endpoint, passing through", url)
            return b"".join(chunks)
        return run_chunks(chunks, pipeline, request_id=url)
    finally:
        resp.close()
